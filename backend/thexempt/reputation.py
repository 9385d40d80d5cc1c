"""Reputation points and badge thresholds.

A user's reputation is a point total plus the set of badges earned so far.
Badges are awarded when the total reaches a threshold and are never taken
away.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Tuple

# (threshold, badge) in ascending threshold order
BADGE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (100, "Contributor"),
    (500, "Expert"),
    (1000, "Master"),
)

_BADGE_RANK = {name: rank for rank, (_, name) in enumerate(BADGE_THRESHOLDS)}


@dataclass(frozen=True)
class ReputationProfile:
    points: int = 0
    badges: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.points < 0:
            raise ValueError("points must be >= 0")
        # accept any iterable (e.g. the JSON list stored on the user row)
        object.__setattr__(self, "badges", frozenset(self.badges))


def earned_badges(points: int) -> FrozenSet[str]:
    """Return every badge whose threshold is <= `points`."""
    return frozenset(name for threshold, name in BADGE_THRESHOLDS if points >= threshold)


def apply_contribution(current: ReputationProfile, points_earned: int) -> ReputationProfile:
    """Add `points_earned` to `current` and award any newly reached badges.

    `points_earned` must be a positive int; defaulting a missing amount is
    the caller's job. Existing badges are always kept.
    """
    if isinstance(points_earned, bool) or not isinstance(points_earned, int) or points_earned <= 0:
        raise ValueError(f"points_earned must be a positive integer, got {points_earned!r}")
    points = current.points + points_earned
    return ReputationProfile(points=points, badges=current.badges | earned_badges(points))


def ordered_badges(badges: Iterable[str]) -> List[str]:
    """Badges in threshold order; unknown names sort last alphabetically."""
    return sorted(set(badges), key=lambda b: (_BADGE_RANK.get(b, len(_BADGE_RANK)), b))
