"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories and
the pure scoring/reputation logic. Services are intentionally thin: they
perform validation, execute domain logic and persist aggregates via
repositories. Failures are raised as `ValueError` (or one of the
subclasses below) and translated to HTTP errors by the controllers.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .reputation import ReputationProfile, apply_contribution, earned_badges, ordered_badges
from .scoring import match_score

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
DEFAULT_CONTRIBUTION_POINTS = 10

logger = logging.getLogger("thexempt.services")


class NotFoundError(LookupError):
    """The requested row does not exist."""


class PermissionDeniedError(ValueError):
    """The caller is authenticated but may not touch this resource."""


class ConflictError(ValueError):
    """The request conflicts with the current state of the resource."""


def _require_text(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(value.strip())


def user_payload(user: models.User, include_email: bool = True) -> dict:
    out = {
        'id': user.id,
        'name': user.name,
        'role': user.role,
        'reputation_points': user.reputation_points,
        'badges': ordered_badges(user.badges or []),
    }
    if include_email:
        out['email'] = user.email
    return out


class AuthService:
    """Authentication related operations (signup + login)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def signup(self, email: str, password: str, name: str) -> dict:
        """Create a user with a hashed password and return `{token, user}`."""
        if not (_require_text(email) and _require_text(password) and _require_text(name)):
            raise ValueError('All fields are required')
        if self.user_repo.get_by_email(email):
            raise ValueError('Email already exists')
        u = models.User(email=email, password_hash=PWD_CTX.hash(password), name=name)
        try:
            user = self.user_repo.create(u)
        except IntegrityError:
            # lost a race with a concurrent signup for the same email
            self.session.rollback()
            raise ValueError('Email already exists')
        logger.info("user_signup %s", json.dumps({"user_id": user.id}, ensure_ascii=True))
        return {'token': self.issue_token(user), 'user': user_payload(user)}

    def login(self, email: str, password: str) -> dict:
        """Verify credentials and return `{token, user}`.

        Unknown emails and wrong passwords give the same error.
        """
        if not (_require_text(email) and _require_text(password)):
            raise ValueError('Email and password are required')
        user = self.user_repo.get_by_email(email)
        if not user or not PWD_CTX.verify(password, user.password_hash):
            raise ValueError('Invalid credentials')
        return {'token': self.issue_token(user), 'user': user_payload(user)}

    @staticmethod
    def issue_token(user: models.User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(days=settings.JWT_EXPIRE_DAYS)
        payload = {"user_id": user.id, "email": user.email, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class UserService:
    """Profiles and skills."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.skill_repo = repositories.SkillRepository(session)

    def get_user(self, user_id: int) -> models.User:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError('User not found')
        return user

    def rename(self, user_id: int, name: str) -> models.User:
        if not _require_text(name):
            raise ValueError('Name is required')
        return self.user_repo.update_name(self.get_user(user_id), name.strip())

    def add_skill(self, user_id: int, skill: str, proficiency: int = 1) -> models.UserSkill:
        if not _require_text(skill):
            raise ValueError('Skill is required')
        return self.skill_repo.add(models.UserSkill(user_id=user_id, skill=skill, proficiency=proficiency))

    def list_skills(self, user_id: int) -> List[dict]:
        return [{'skill': s.skill, 'proficiency': s.proficiency} for s in self.skill_repo.list_for_user(user_id)]


def project_payload(project: models.Project, owner_name: Optional[str] = None) -> dict:
    out = {
        'id': project.id,
        'title': project.title,
        'description': project.description,
        'owner_id': project.owner_id,
        'status': project.status.value,
        'required_skills': list(project.required_skills or []),
        'created_at': project.created_at.isoformat() if project.created_at else None,
    }
    if owner_name is not None:
        out['owner_name'] = owner_name
    return out


class ProjectService:
    """Create, list and close project postings."""
    def __init__(self, session: Session):
        self.session = session
        self.project_repo = repositories.ProjectRepository(session)

    def create(self, owner_id: int, title: str, description: str, required_skills: Optional[List[str]] = None) -> models.Project:
        if not (_require_text(title) and _require_text(description)):
            raise ValueError('Title and description are required')
        p = models.Project(title=title, description=description, owner_id=owner_id, required_skills=list(required_skills or []))
        return self.project_repo.create(p)

    def list_open(self) -> List[dict]:
        return [project_payload(p, owner) for p, owner in self.project_repo.list_open_with_owner()]

    def get(self, project_id: int) -> dict:
        row = self.project_repo.get_with_owner(project_id)
        if not row:
            raise NotFoundError('Project not found')
        project, owner = row
        return project_payload(project, owner)

    def get_owned(self, project_id: int, user_id: int) -> models.Project:
        """Return the project if `user_id` owns it, else raise."""
        project = self.project_repo.get(project_id)
        if not project:
            raise NotFoundError('Project not found')
        if project.owner_id != user_id:
            raise PermissionDeniedError('Only the project owner can do this')
        return project

    def set_status(self, project_id: int, user_id: int, status: models.ProjectStatus) -> models.Project:
        return self.project_repo.set_status(self.get_owned(project_id, user_id), status)


def application_payload(application: models.Application) -> dict:
    return {
        'id': application.id,
        'project_id': application.project_id,
        'applicant_id': application.applicant_id,
        'message': application.message,
        'match_score': application.match_score,
        'status': application.status.value,
        'created_at': application.created_at.isoformat() if application.created_at else None,
    }


class ApplicationService:
    """Apply to projects and review applications."""
    def __init__(self, session: Session):
        self.session = session
        self.project_repo = repositories.ProjectRepository(session)
        self.skill_repo = repositories.SkillRepository(session)
        self.app_repo = repositories.ApplicationRepository(session)

    def apply(self, project_id: int, applicant_id: int, message: Optional[str] = None) -> models.Application:
        """Create an application scored against the project's current requirements."""
        project = self.project_repo.get(project_id)
        if not project:
            raise NotFoundError('Project not found')
        if project.status != models.ProjectStatus.OPEN:
            raise ConflictError('Project is not accepting applications')
        score = match_score(project.required_skills or [], self.skill_repo.skill_names(applicant_id))
        a = models.Application(project_id=project_id, applicant_id=applicant_id, message=message, match_score=score)
        return self.app_repo.create(a)

    def list_for_project(self, project_id: int, user_id: int) -> List[dict]:
        ProjectService(self.session).get_owned(project_id, user_id)
        out = []
        for application, applicant_name, points in self.app_repo.list_for_project(project_id):
            item = application_payload(application)
            item['applicant_name'] = applicant_name
            item['reputation_points'] = points
            out.append(item)
        return out

    def set_status(self, application_id: int, user_id: int, status: models.ApplicationStatus) -> models.Application:
        application = self.app_repo.get(application_id)
        if not application:
            raise NotFoundError('Application not found')
        ProjectService(self.session).get_owned(application.project_id, user_id)
        return self.app_repo.set_status(application, status)


class ContributionService:
    """Record contributions and keep the author's reputation in step."""
    def __init__(self, session: Session, max_retries: Optional[int] = None):
        self.session = session
        self.project_repo = repositories.ProjectRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.contrib_repo = repositories.ContributionRepository(session)
        self.max_retries = settings.REPUTATION_MAX_RETRIES if max_retries is None else max_retries

    def record(self, project_id: int, author_id: int, description: str, points: Optional[int] = None) -> dict:
        """Insert a contribution and apply its points in a single transaction.

        A missing `points` falls back to the default of 10. The reputation
        write is a compare-and-swap on the point total; if another request
        updated the same user in between, everything is rolled back and
        retried against a fresh snapshot.
        """
        if not _require_text(description):
            raise ValueError('Description is required')
        if points is None:
            points = DEFAULT_CONTRIBUTION_POINTS
        if not self.project_repo.get(project_id):
            raise NotFoundError('Project not found')

        for attempt in range(1, self.max_retries + 1):
            current = self.user_repo.read_reputation(author_id)
            if current is None:
                raise NotFoundError('User not found')
            updated = apply_contribution(current, points)
            contribution = self.contrib_repo.add(models.Contribution(
                project_id=project_id, author_id=author_id, description=description, points=points,
            ))
            if self.user_repo.compare_and_set_reputation(author_id, current.points, updated):
                self.session.commit()
                self.session.refresh(contribution)
                new_badges = ordered_badges(updated.badges - current.badges)
                if new_badges:
                    logger.info("badges_awarded %s", json.dumps(
                        {"user_id": author_id, "badges": new_badges, "points": updated.points}, ensure_ascii=True))
                return {
                    'id': contribution.id,
                    'project_id': contribution.project_id,
                    'author_id': contribution.author_id,
                    'description': contribution.description,
                    'points': contribution.points,
                    'reputation_points': updated.points,
                    'badges': ordered_badges(updated.badges),
                    'new_badges': new_badges,
                }
            self.session.rollback()
            logger.warning("reputation_conflict %s", json.dumps(
                {"user_id": author_id, "attempt": attempt}, ensure_ascii=True))
        raise ConflictError('Reputation update conflicted; please retry')

    def list_for_project(self, project_id: int) -> List[dict]:
        out = []
        for c, contributor_name in self.contrib_repo.list_for_project(project_id):
            item = contribution_payload(c)
            item['contributor_name'] = contributor_name
            out.append(item)
        return out

    def list_for_user(self, user_id: int) -> List[dict]:
        out = []
        for c, project_title in self.contrib_repo.list_for_user(user_id):
            item = contribution_payload(c)
            item['project_title'] = project_title
            out.append(item)
        return out


def contribution_payload(c: models.Contribution) -> dict:
    return {
        'id': c.id,
        'project_id': c.project_id,
        'author_id': c.author_id,
        'description': c.description,
        'points': c.points,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }


class ReputationService:
    """Maintenance operations over stored reputation profiles."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def recompute_badges(self, dry_run: bool = False) -> dict:
        """Bring every user's badges in line with their points.

        Badges are only ever added. Returns `{checked, updated, details}`
        where `details` lists the badges each updated user gained.
        """
        details = []
        users = self.user_repo.list_all()
        for user in users:
            profile = ReputationProfile(points=user.reputation_points or 0, badges=user.badges or [])
            target = profile.badges | earned_badges(profile.points)
            stored = list(user.badges or [])
            if target == profile.badges and len(stored) == len(target):
                continue
            details.append({'user_id': user.id, 'added': ordered_badges(target - profile.badges)})
            if not dry_run:
                user.badges = ordered_badges(target)
                self.session.add(user)
        if details and not dry_run:
            self.session.commit()
        return {'checked': len(users), 'updated': len(details), 'details': details}
