"""SQLModel data models.

This module defines the application's database tables using SQLModel.
List-valued attributes (`badges`, `required_skills`) are stored as JSON
columns; skills of a user live in their own table so they can be queried
and appended one at a time.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class User(SQLModel, table=True):
    """A registered member.

    Fields:
    - `email`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `reputation_points` / `badges`: the reputation profile, only ever
      written by `ContributionService` and the badge backfill
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    name: str
    role: str = "member"
    reputation_points: int = Field(default=0, nullable=False)
    badges: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow)


class UserSkill(SQLModel, table=True):
    """A skill a user claims, with a 1-5 proficiency."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    skill: str
    proficiency: int = 1


class Project(SQLModel, table=True):
    """A project posting. `required_skills` keeps the order the owner typed."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    owner_id: int = Field(foreign_key='user.id', index=True)
    status: ProjectStatus = Field(default=ProjectStatus.OPEN, index=True)
    required_skills: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow)


class Application(SQLModel, table=True):
    """An application to join a project.

    `match_score` is computed once when the application is created and is
    never updated afterwards; only `status` changes.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    applicant_id: int = Field(foreign_key='user.id', index=True)
    message: Optional[str] = None
    match_score: int = 0
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    created_at: datetime = Field(default_factory=_utcnow)


class Contribution(SQLModel, table=True):
    """An immutable record of work done on a project."""
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    author_id: int = Field(foreign_key='user.id', index=True)
    description: str
    points: int = 10
    created_at: datetime = Field(default_factory=_utcnow)
