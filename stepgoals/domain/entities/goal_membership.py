from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

MEMBERSHIP_ROLES = ("creator", "admin", "member")
MEMBERSHIP_STATUSES = ("pending", "active", "left")


@dataclass(frozen=True)
class GoalMembership:
    """A user's participation record in a group goal."""

    id: str
    goal_id: str
    user_id: str
    username: str
    role: str
    status: str
    joined_at: datetime
    profile_image_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role not in MEMBERSHIP_ROLES:
            raise ValueError(f"role must be one of {MEMBERSHIP_ROLES}, got '{self.role}'")
        if self.status not in MEMBERSHIP_STATUSES:
            raise ValueError(f"status must be one of {MEMBERSHIP_STATUSES}, got '{self.status}'")

    @property
    def key(self) -> tuple[str, str]:
        return self.goal_id, self.user_id

    @property
    def is_creator(self) -> bool:
        return self.role == "creator"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_member(self) -> bool:
        return self.role == "member"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def has_left(self) -> bool:
        return self.status == "left"

    @property
    def initials(self) -> str:
        return self.username[:2].upper()


def unique_memberships(memberships: list[GoalMembership]) -> list[GoalMembership]:
    """Keep one membership per (goal_id, user_id); the last one seen wins."""
    by_key: dict[tuple[str, str], GoalMembership] = {}
    for membership in memberships:
        by_key.pop(membership.key, None)
        by_key[membership.key] = membership
    return list(by_key.values())
