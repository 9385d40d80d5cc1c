"""Skill match scoring for project applications.

The score is the percentage of a project's required skills that the
applicant has, compared case-insensitively. It is computed once when an
application is created and stored with it.
"""

from typing import Iterable, Sequence

DEFAULT_MATCH_SCORE = 50


def _round_half_up(numerator: int, denominator: int) -> int:
    """Round `numerator / denominator` to the nearest int, .5 going up.

    Integer arithmetic keeps exact halves (e.g. 1/8 -> 12.5) stable, which
    float `round()` (half-to-even) would not.
    """
    return (2 * numerator + denominator) // (2 * denominator)


def match_score(required_skills: Sequence[str], applicant_skills: Iterable[str]) -> int:
    """Return a 0-100 compatibility score.

    Skill names are compared after lower-casing only; surrounding
    whitespace is significant. Every entry of `required_skills` counts,
    so a repeated required skill weighs more than a single one. With no
    required skills the neutral `DEFAULT_MATCH_SCORE` is returned.
    """
    if not required_skills:
        return DEFAULT_MATCH_SCORE
    have = {s.lower() for s in applicant_skills}
    matched = sum(1 for skill in required_skills if skill.lower() in have)
    return _round_half_up(matched * 100, len(required_skills))
