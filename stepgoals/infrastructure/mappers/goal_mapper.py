from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from stepgoals.domain.entities.goal_membership import GoalMembership
from stepgoals.domain.entities.goal_progress import GoalProgress, build_member_progress
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.domain.entities.realtime_goal_update import RealtimeGoalUpdate
from stepgoals.schemas.goals import GoalMembershipOut, GoalProgressOut, GroupGoalOut
from stepgoals.schemas.realtime import RealtimeGoalUpdatePayload


class GoalMapper:
    """Converts wire schemas into domain entities and back."""

    @staticmethod
    def goal_to_domain(data: dict[str, Any] | GroupGoalOut) -> GroupGoal:
        out = data if isinstance(data, GroupGoalOut) else GroupGoalOut.model_validate(data)
        return GroupGoal(
            id=out.id,
            name=out.name,
            description=out.description,
            target_steps=out.target_steps,
            start_date=out.start_date,
            end_date=out.end_date,
            creator_id=out.creator_id,
            status=out.status,
            created_at=out.created_at,
        )

    @staticmethod
    def goal_to_payload(goal: GroupGoal) -> dict[str, Any]:
        return GroupGoalOut(
            id=goal.id,
            name=goal.name,
            description=goal.description,
            target_steps=goal.target_steps,
            start_date=goal.start_date,
            end_date=goal.end_date,
            creator_id=goal.creator_id,
            status=goal.status,
            created_at=goal.created_at,
        ).model_dump(mode="json", by_alias=True, exclude_none=True)

    @staticmethod
    def membership_to_domain(data: dict[str, Any] | GoalMembershipOut) -> GoalMembership:
        out = data if isinstance(data, GoalMembershipOut) else GoalMembershipOut.model_validate(data)
        return GoalMembership(
            id=out.id,
            goal_id=out.goal_id,
            user_id=out.user_id,
            username=out.username,
            profile_image_url=out.profile_image_url,
            role=out.role,
            status=out.status,
            joined_at=out.joined_at,
        )

    @staticmethod
    def progress_to_domain(data: dict[str, Any] | GoalProgressOut) -> GoalProgress:
        out = data if isinstance(data, GoalProgressOut) else GoalProgressOut.model_validate(data)
        # ranks are re-derived from steps; the server's percentComplete is ignored
        members = build_member_progress([(m.user_id, m.username, m.total_steps) for m in out.member_progress])
        return GoalProgress(
            goal_id=out.goal_id,
            total_steps=out.total_steps,
            target_steps=out.target_steps,
            member_progress=members,
            last_updated=out.last_updated or datetime.now(timezone.utc),
        )

    @staticmethod
    def progress_to_payload(progress: GoalProgress) -> dict[str, Any]:
        return {
            "goalId": progress.goal_id,
            "totalSteps": progress.total_steps,
            "targetSteps": progress.target_steps,
            "percentComplete": progress.percent_complete,
            "memberProgress": [
                {
                    "userId": m.user_id,
                    "username": m.username,
                    "totalSteps": m.steps,
                    "rank": m.rank,
                    "percentComplete": m.contribution_percentage,
                }
                for m in progress.member_progress
            ],
            "lastUpdated": progress.last_updated.isoformat(),
        }

    @staticmethod
    def realtime_to_domain(data: dict[str, Any]) -> RealtimeGoalUpdate:
        payload = RealtimeGoalUpdatePayload.model_validate(data)
        return RealtimeGoalUpdate(
            event_type=payload.event_type,
            goal_id=payload.goal_id,
            user_id=payload.user_id,
            current_progress=payload.current_progress,
            target_steps=payload.target_steps,
            timestamp=payload.timestamp,
        )
