"""Pydantic request schemas used by the API.

Presence of required text fields is checked by the services so the API
can answer with the same 400 messages the clients already expect; these
models only pin down types, ranges and enums (422 on mismatch).
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from .models import ApplicationStatus, ProjectStatus


class SignupIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = None


class SkillIn(BaseModel):
    """A skill to add to the caller's profile."""
    skill: str = Field(min_length=1)
    proficiency: int = Field(default=1, ge=1, le=5)


class ProjectIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)


class ProjectStatusIn(BaseModel):
    status: ProjectStatus


class ApplicationIn(BaseModel):
    message: Optional[str] = None


class ApplicationStatusIn(BaseModel):
    status: ApplicationStatus


class ContributionIn(BaseModel):
    """`points` may be omitted (defaults to 10) but never zero or negative."""
    description: Optional[str] = None
    points: Optional[int] = Field(default=None, gt=0)
