"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
skills, projects, applications, contributions). Repositories return
SQLModel objects and perform commits/refreshes where appropriate; the
contribution write path is the exception and leaves committing to
`ContributionService` so the contribution row and the reputation update
land in one transaction.
"""

from typing import List, Optional, Sequence, Tuple
from sqlalchemy import update
from sqlmodel import Session, select
from . import models
from .reputation import ReputationProfile, ordered_badges


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def list_all(self) -> List[models.User]:
        return self.session.exec(select(models.User).order_by(models.User.id)).all()

    def update_name(self, user: models.User, name: str) -> models.User:
        user.name = name
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def read_reputation(self, user_id: int) -> Optional[ReputationProfile]:
        """Fetch a fresh reputation snapshot straight from the database."""
        stmt = select(models.User.reputation_points, models.User.badges).where(models.User.id == user_id)
        row = self.session.exec(stmt).first()
        if row is None:
            return None
        points, badges = row
        return ReputationProfile(points=points or 0, badges=badges or [])

    def compare_and_set_reputation(self, user_id: int, expected_points: int, profile: ReputationProfile) -> bool:
        """Write `profile` only if the stored points still equal `expected_points`.

        Does not commit. Returns False when another writer got there first.
        """
        stmt = (
            update(models.User)
            .where(models.User.id == user_id, models.User.reputation_points == expected_points)
            .values(reputation_points=profile.points, badges=ordered_badges(profile.badges))
        )
        result = self.session.exec(stmt)
        return result.rowcount == 1


class SkillRepository:
    """Skills claimed by users."""
    def __init__(self, session: Session):
        self.session = session

    def add(self, skill: models.UserSkill) -> models.UserSkill:
        self.session.add(skill)
        self.session.commit()
        self.session.refresh(skill)
        return skill

    def list_for_user(self, user_id: int) -> List[models.UserSkill]:
        """List skill rows for `user_id` in insertion order."""
        stmt = select(models.UserSkill).where(models.UserSkill.user_id == user_id).order_by(models.UserSkill.id)
        return self.session.exec(stmt).all()

    def skill_names(self, user_id: int) -> List[str]:
        stmt = select(models.UserSkill.skill).where(models.UserSkill.user_id == user_id)
        return self.session.exec(stmt).all()


class ProjectRepository:
    """CRUD operations for `Project` postings."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, project: models.Project) -> models.Project:
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def get(self, project_id: int) -> Optional[models.Project]:
        """Fetch a project by id."""
        return self.session.get(models.Project, project_id)

    def get_with_owner(self, project_id: int) -> Optional[Tuple[models.Project, str]]:
        """Return `(project, owner_name)` or `None`."""
        stmt = (
            select(models.Project, models.User.name)
            .join(models.User, models.Project.owner_id == models.User.id)
            .where(models.Project.id == project_id)
        )
        return self.session.exec(stmt).first()

    def list_open_with_owner(self) -> List[Tuple[models.Project, str]]:
        """Open projects, newest first, joined with the owner's name."""
        stmt = (
            select(models.Project, models.User.name)
            .join(models.User, models.Project.owner_id == models.User.id)
            .where(models.Project.status == models.ProjectStatus.OPEN)
            .order_by(models.Project.created_at.desc(), models.Project.id.desc())
        )
        return self.session.exec(stmt).all()

    def set_status(self, project: models.Project, status: models.ProjectStatus) -> models.Project:
        project.status = status
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project


class ApplicationRepository:
    """Persist and query project applications."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, application: models.Application) -> models.Application:
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get(self, application_id: int) -> Optional[models.Application]:
        return self.session.get(models.Application, application_id)

    def list_for_project(self, project_id: int) -> List[Tuple[models.Application, str, int]]:
        """Applications for a project as `(application, applicant_name, reputation_points)`.

        Best matches come first; ties are broken by the newest application.
        """
        stmt = (
            select(models.Application, models.User.name, models.User.reputation_points)
            .join(models.User, models.Application.applicant_id == models.User.id)
            .where(models.Application.project_id == project_id)
            .order_by(
                models.Application.match_score.desc(),
                models.Application.created_at.desc(),
                models.Application.id.desc(),
            )
        )
        return self.session.exec(stmt).all()

    def set_status(self, application: models.Application, status: models.ApplicationStatus) -> models.Application:
        """Update only the status; `match_score` is immutable."""
        application.status = status
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application


class ContributionRepository:
    """Insert and list contributions."""
    def __init__(self, session: Session):
        self.session = session

    def add(self, contribution: models.Contribution) -> models.Contribution:
        """Stage a contribution and flush it to get an id. Does not commit."""
        self.session.add(contribution)
        self.session.flush()
        return contribution

    def list_for_project(self, project_id: int) -> List[Tuple[models.Contribution, str]]:
        """`(contribution, contributor_name)` rows, newest first."""
        stmt = (
            select(models.Contribution, models.User.name)
            .join(models.User, models.Contribution.author_id == models.User.id)
            .where(models.Contribution.project_id == project_id)
            .order_by(models.Contribution.created_at.desc(), models.Contribution.id.desc())
        )
        return self.session.exec(stmt).all()

    def list_for_user(self, user_id: int) -> Sequence[Tuple[models.Contribution, str]]:
        """`(contribution, project_title)` rows, newest first."""
        stmt = (
            select(models.Contribution, models.Project.title)
            .join(models.Project, models.Contribution.project_id == models.Project.id)
            .where(models.Contribution.author_id == user_id)
            .order_by(models.Contribution.created_at.desc(), models.Contribution.id.desc())
        )
        return self.session.exec(stmt).all()
