"""Pure derivation rules for goal progress.

Inputs are server-validated integers. Nothing here rounds or clamps except
``clamp_percent``, which exists for display.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


def percent_complete(total_steps: int, target_steps: int) -> float:
    if target_steps > 0:
        return total_steps / target_steps * 100
    return 0.0


def steps_remaining(total_steps: int, target_steps: int) -> int:
    return max(target_steps - total_steps, 0)


def is_completed(total_steps: int, target_steps: int) -> bool:
    return total_steps >= target_steps


def clamp_percent(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def contribution_percentage(steps: int, group_total: int) -> float:
    if group_total > 0:
        return steps / group_total * 100
    return 0.0


@dataclass(frozen=True)
class RankedEntry:
    user_id: str
    steps: int
    rank: int
    contribution_percentage: float


def rank_members(entries: Iterable[tuple[str, int]]) -> list[RankedEntry]:
    """Rank ``(user_id, steps)`` pairs by steps descending.

    Ranks start at 1 and are strictly increasing; ties are ordered by user id
    so the result is stable across fetches.
    """
    ordered = sorted(entries, key=lambda item: (-item[1], item[0]))
    group_total = sum(steps for _, steps in ordered)
    return [
        RankedEntry(
            user_id=user_id,
            steps=steps,
            rank=position,
            contribution_percentage=contribution_percentage(steps, group_total),
        )
        for position, (user_id, steps) in enumerate(ordered, start=1)
    ]
