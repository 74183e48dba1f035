from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional

import pydantic
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from stepgoals.domain.value_objects.timestamps import as_utc

# offset-less timestamps are read as UTC so ranges always compare
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, loc_by_alias=False, extra="ignore")


def _ref_id(value: Any) -> Any:
    # populated sub-documents arrive as {"_id": ..., ...}
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


def _with_id(data: Any) -> Any:
    if isinstance(data, dict) and "id" not in data and "_id" in data:
        data = {**data, "id": data["_id"]}
    return data


class GroupGoalOut(WireModel):
    id: str
    name: str
    description: str | None = None
    target_steps: int = Field(gt=0)
    start_date: UtcDatetime
    end_date: UtcDatetime
    creator_id: str
    status: Literal["active", "completed", "cancelled"] = "active"
    created_at: UtcDatetime

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        data = _with_id(data)
        if isinstance(data, dict) and "creatorId" in data:
            data = {**data, "creatorId": _ref_id(data["creatorId"])}
        return data

    @field_validator("end_date")
    @classmethod
    def validate_range(cls, end_date: datetime, info: ValidationInfo):
        start_date = info.data.get("start_date")
        if start_date and end_date <= start_date:
            raise ValueError("end_date must be after start_date")
        return end_date


# older API versions still send these spellings
_LEGACY_ROLES = {"owner": "creator"}
_LEGACY_MEMBERSHIP_STATUSES = {"accepted": "active", "rejected": "left"}


class GoalMembershipOut(WireModel):
    id: str
    goal_id: str
    user_id: str
    username: str = ""
    profile_image_url: str | None = None
    role: Literal["creator", "admin", "member"] = "member"
    status: Literal["pending", "active", "left"] = "pending"
    joined_at: UtcDatetime

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        data = _with_id(data)
        if not isinstance(data, dict):
            return data
        data = dict(data)
        user = data.get("userId")
        if isinstance(user, dict):
            data.setdefault("username", user.get("username", ""))
            data.setdefault("profileImageUrl", user.get("profileImageUrl"))
            data["userId"] = _ref_id(user)
        if "goalId" in data:
            data["goalId"] = _ref_id(data["goalId"])
        if data.get("role") in _LEGACY_ROLES:
            data["role"] = _LEGACY_ROLES[data["role"]]
        if data.get("status") in _LEGACY_MEMBERSHIP_STATUSES:
            data["status"] = _LEGACY_MEMBERSHIP_STATUSES[data["status"]]
        return data


class MemberProgressOut(WireModel):
    user_id: str
    username: str = ""
    total_steps: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("userId"), dict):
            user = data["userId"]
            data = {**data, "userId": _ref_id(user), "username": data.get("username") or user.get("username", "")}
        return data


class GoalProgressOut(WireModel):
    goal_id: str
    total_steps: int = Field(ge=0)
    target_steps: int = Field(gt=0)
    percent_complete: float | None = None
    member_progress: list[MemberProgressOut] = Field(default_factory=list)
    last_updated: Optional[UtcDatetime] = None


class CreateGoalIn(WireModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    target_steps: int = Field(gt=0)
    start_date: UtcDatetime
    end_date: UtcDatetime

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("end_date")
    @classmethod
    def validate_range(cls, end_date: datetime, info: ValidationInfo):
        start_date = info.data.get("start_date")
        if start_date and end_date <= start_date:
            raise ValueError("end_date must be after start_date")
        return end_date


class UpdateGoalIn(WireModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    target_steps: int | None = Field(default=None, gt=0)
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None

    @model_validator(mode="after")
    def validate_range(self) -> "UpdateGoalIn":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class InviteUserIn(WireModel):
    user_id: str = Field(min_length=1)


def field_errors_from(exc: pydantic.ValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by top-level field, keyed by the snake_case name."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        errors.setdefault(field, []).append(error["msg"])
    return errors
