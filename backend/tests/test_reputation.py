import pytest

from thexempt.reputation import (
    BADGE_THRESHOLDS,
    ReputationProfile,
    apply_contribution,
    earned_badges,
    ordered_badges,
)


def test_points_are_added():
    p = apply_contribution(ReputationProfile(points=40), 10)
    assert p.points == 50
    assert p.badges == frozenset()


def test_crossing_first_threshold():
    p = apply_contribution(ReputationProfile(points=90, badges=set()), 10)
    assert p.badges == {"Contributor"}


def test_crossing_three_thresholds_at_once():
    p = apply_contribution(ReputationProfile(points=95), 910)
    assert p.points == 1005
    assert p.badges == {"Contributor", "Expert", "Master"}


@pytest.mark.parametrize("threshold,badge", BADGE_THRESHOLDS)
def test_threshold_is_inclusive(threshold, badge):
    assert badge in earned_badges(threshold)
    assert badge not in earned_badges(threshold - 1)


def test_existing_badges_are_never_removed():
    # a legacy badge the table does not know about survives too
    current = ReputationProfile(points=10, badges={"Contributor", "Founder"})
    p = apply_contribution(current, 5)
    assert p.badges >= current.badges


def test_recomputing_same_points_is_idempotent():
    p = apply_contribution(ReputationProfile(points=120), 10)
    again = ReputationProfile(points=p.points, badges=p.badges | earned_badges(p.points))
    assert again.badges == p.badges
    assert ordered_badges(again.badges) == ["Contributor"]


def test_input_profile_is_untouched():
    current = ReputationProfile(points=99)
    apply_contribution(current, 1)
    assert current.points == 99
    assert current.badges == frozenset()


@pytest.mark.parametrize("bad", [0, -5, 1.5, None, True, "10"])
def test_non_positive_or_non_int_points_rejected(bad):
    with pytest.raises(ValueError):
        apply_contribution(ReputationProfile(points=0), bad)


def test_negative_point_total_rejected():
    with pytest.raises(ValueError):
        ReputationProfile(points=-1)


def test_profile_normalises_badge_list_to_set():
    p = ReputationProfile(points=150, badges=["Contributor", "Contributor"])
    assert p.badges == frozenset({"Contributor"})


def test_ordered_badges_follows_thresholds():
    assert ordered_badges({"Master", "Contributor", "Expert"}) == ["Contributor", "Expert", "Master"]
    assert ordered_badges(["Zed", "Expert", "Alpha"]) == ["Expert", "Alpha", "Zed"]
