"""Request bodies for the family API."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Gender = Literal["male", "female", "unknown"]
RelationshipType = Literal["spouse", "parent-child"]


class MemberCreate(BaseModel):
    # Unknown fields are kept on the stored member.
    model_config = ConfigDict(extra="allow")

    firstName: str = ""
    lastName: str = ""
    maidenName: str = ""
    gender: Gender = "unknown"
    birthDate: str = ""
    deathDate: str = ""
    photoUrl: str = ""
    bio: str = ""
    generationOverride: Optional[int] = Field(default=None, ge=0)


class MemberUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    maidenName: Optional[str] = None
    gender: Optional[Gender] = None
    birthDate: Optional[str] = None
    deathDate: Optional[str] = None
    photoUrl: Optional[str] = None
    bio: Optional[str] = None
    generationOverride: Optional[int] = Field(default=None, ge=0)


class RelationshipCreate(BaseModel):
    type: RelationshipType
    person1: str = Field(min_length=1)
    person2: str = Field(min_length=1)


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    subtitle: Optional[str] = None


class OffsetUpdate(BaseModel):
    dx: float
