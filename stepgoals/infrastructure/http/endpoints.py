from __future__ import annotations

GOALS = "/goals"
USER_GOALS = "/goals/user"


def goal(goal_id: str) -> str:
    return f"/goals/{goal_id}"


def members(goal_id: str) -> str:
    return f"/goals/{goal_id}/members"


def progress(goal_id: str) -> str:
    return f"/goals/{goal_id}/progress"


def invite(goal_id: str) -> str:
    return f"/goals/{goal_id}/invite"


def accept_invite(goal_id: str) -> str:
    return f"/goals/{goal_id}/accept"


def reject_invite(goal_id: str) -> str:
    return f"/goals/{goal_id}/reject"


def join(goal_id: str) -> str:
    return f"/goals/{goal_id}/join"


def leave(goal_id: str) -> str:
    return f"/goals/{goal_id}/leave"
