"""
Unit tests for the bonus track catalogue.

Covers catalogue metadata, tier lookups and every track's ``applies``
rule, including local-timezone day boundaries.
"""

import pytest

from shared.clock import Clock
from shared.events import Commit, PushEvent
from shared.models import FlatPointsReward, MultiplierReward, PushHistory, PushHistoryEntry, Tier
from services.bonus_scoring.tracks import (
    ALL_TRACKS, BigPush, BonusTrack, CommitValue, FirstPush, FridayAfternoon,
    ManyLinesChanged, MultipleRepos, OneLineChange, PushContext, RapidFire,
    Streak, WeekendPush, consecutive_push_days, get_track, validate_tiers,
)

REPO = "git@github.com:user/repo.git"
OTHER_REPO = "git@github.com:user/other.git"

# 2026-01-28 (UTC)
TODAY_MORNING = 1769594400
TODAY_AFTERNOON = 1769616000
YESTERDAY_MORNING = 1769508000

# Same local day at UTC-5, different UTC days
JAN28_9AM_LOCAL = 1769522400
JAN28_11PM_LOCAL = 1769572800
UTC_MINUS_5 = -5 * 3600

# PST
UTC_MINUS_8 = -8 * 3600
FRI_11PM_LOCAL = 1769842800
SAT_2AM_LOCAL = 1769853600
SUN_11PM_LOCAL = 1770015600
MON_2AM_LOCAL = 1770026400
FRIDAY_MIDNIGHT_PST_AS_UTC = 1769760000


def make_push(lines=(10,), remote_url=REPO) -> PushEvent:
    commits = [Commit(id=f"c{i}", lines_changed=n, timestamp=0) for i, n in enumerate(lines)]
    return PushEvent(commits=commits, remote_url=remote_url)


def make_history(*timestamps, remote_url=REPO) -> PushHistory:
    return PushHistory.from_entries(
        PushHistoryEntry(timestamp=ts, remote_url=remote_url) for ts in timestamps
    )


def ctx(push=None, history=None, now=TODAY_MORNING, tz=0) -> PushContext:
    return PushContext(
        push=push if push is not None else make_push(),
        history=history if history is not None else PushHistory(),
        clock=Clock.at(now, tz),
    )


EMPTY_PUSH = PushEvent(commits=[], remote_url=REPO)


class TestCatalogue:
    """Catalogue metadata."""

    def test_track_ids_and_order(self):
        assert [t.id for t in ALL_TRACKS] == [
            "commit_value", "first_push", "rapid_fire", "big_push", "multiple_repos",
            "weekend_push", "friday_afternoon", "streak", "one_line_change",
            "many_lines_changed",
        ]

    def test_track_names(self):
        names = {t.id: t.name for t in ALL_TRACKS}
        assert names["multiple_repos"] == "Spread the Love"
        assert names["one_line_change"] == "Sniper"
        assert names["many_lines_changed"] == "Moby Diff"
        assert names["streak"] == "Hot Streak"

    def test_every_track_has_a_description(self):
        assert all(t.description for t in ALL_TRACKS)

    def test_tier_costs_increase(self):
        for track in ALL_TRACKS:
            costs = [tier.cost for tier in track.tiers]
            assert costs == sorted(set(costs)), track.id

    def test_multiplier_tiers(self):
        track = get_track("first_push")
        assert [t.cost for t in track.tiers] == [100, 500, 1500, 5000, 15000]
        assert [t.reward.value for t in track.tiers] == [2, 3, 4, 5, 6]

    def test_flat_tiers(self):
        track = get_track("one_line_change")
        assert [t.cost for t in track.tiers] == [50, 200, 800, 3000]
        assert [t.reward.points for t in track.tiers] == [5, 10, 20, 50]

    def test_commit_value_tiers(self):
        track = get_track("commit_value")
        assert [t.cost for t in track.tiers] == [0, 25, 100, 400, 1600]
        assert [t.reward.points for t in track.tiers] == [1, 2, 3, 4, 5]

    def test_get_track_unknown(self):
        with pytest.raises(KeyError):
            get_track("nope")

    def test_unordered_tiers_rejected(self):
        with pytest.raises(ValueError):
            validate_tiers("bad", [
                Tier(cost=100, reward=MultiplierReward(value=2)),
                Tier(cost=100, reward=MultiplierReward(value=3)),
            ])

    def test_subclass_with_unordered_tiers_rejected(self):
        with pytest.raises(ValueError):
            class Broken(BonusTrack):
                id = "broken"
                tiers = [
                    Tier(cost=50, reward=FlatPointsReward(points=5)),
                    Tier(cost=10, reward=FlatPointsReward(points=10)),
                ]

                def applies(self, ctx):
                    return 0


class TestTierLookup:
    """reward_at_level and next_tier."""

    @pytest.fixture
    def track(self):
        return get_track("rapid_fire")

    def test_level_zero_is_locked(self, track):
        assert track.reward_at_level(0) is None

    def test_levels_map_to_tiers(self, track):
        assert track.reward_at_level(1) == MultiplierReward(value=2)
        assert track.reward_at_level(5) == MultiplierReward(value=6)

    def test_beyond_last_tier(self, track):
        assert track.reward_at_level(6) is None

    def test_next_tier(self, track):
        assert track.next_tier(0).cost == 100
        assert track.next_tier(4).cost == 15000
        assert track.next_tier(5) is None

    def test_max_level(self, track):
        assert track.max_level == 5


class TestEmptyPushes:
    """No rule fires for a push without commits."""

    @pytest.mark.parametrize("track", ALL_TRACKS, ids=lambda t: t.id)
    def test_empty_push_never_applies(self, track):
        # Conditions that would otherwise fire: Saturday, recent push, 3-day streak
        history = make_history(
            SAT_2AM_LOCAL - 60, SAT_2AM_LOCAL - 86400, SAT_2AM_LOCAL - 2 * 86400,
            remote_url=OTHER_REPO,
        )
        assert track.applies(ctx(EMPTY_PUSH, history, now=SAT_2AM_LOCAL, tz=UTC_MINUS_8)) == 0


class TestFirstPush:
    """First Push of the Day."""

    def test_applies_when_no_pushes_today(self):
        history = make_history(YESTERDAY_MORNING)
        assert FirstPush().applies(ctx(history=history, now=TODAY_MORNING)) == 1

    def test_not_when_already_pushed_today(self):
        history = make_history(TODAY_MORNING)
        assert FirstPush().applies(ctx(history=history, now=TODAY_AFTERNOON)) == 0

    def test_applies_on_first_push_ever(self):
        assert FirstPush().applies(ctx(now=TODAY_MORNING)) == 1

    def test_respects_local_timezone(self):
        history = make_history(JAN28_9AM_LOCAL)

        local = ctx(history=history, now=JAN28_11PM_LOCAL, tz=UTC_MINUS_5)
        utc = ctx(history=history, now=JAN28_11PM_LOCAL)

        assert FirstPush().applies(local) == 0
        assert FirstPush().applies(utc) == 1


class TestRapidFire:
    """Rapid Fire."""

    def test_applies_within_window(self):
        history = make_history(1000)
        assert RapidFire().applies(ctx(history=history, now=1000 + 5 * 60)) == 1

    def test_applies_at_exact_boundary(self):
        history = make_history(1000)
        assert RapidFire().applies(ctx(history=history, now=1000 + 900)) == 1

    def test_not_outside_window(self):
        history = make_history(1000)
        assert RapidFire().applies(ctx(history=history, now=1000 + 901)) == 0

    def test_not_without_history(self):
        assert RapidFire().applies(ctx(now=1000)) == 0

    def test_window_clamped_at_epoch(self):
        history = make_history(0)
        assert RapidFire().applies(ctx(history=history, now=100)) == 1


class TestBigPush:
    """Big Push."""

    def test_applies_at_ten_commits(self):
        assert BigPush().applies(ctx(make_push([1] * 10))) == 1

    def test_not_below_ten(self):
        assert BigPush().applies(ctx(make_push([1] * 9))) == 0


class TestMultipleRepos:
    """Spread the Love."""

    def test_applies_for_second_repo_today(self):
        history = make_history(TODAY_MORNING, remote_url=OTHER_REPO)
        assert MultipleRepos().applies(ctx(history=history, now=TODAY_AFTERNOON)) == 1

    def test_not_for_first_push_of_day(self):
        history = make_history(YESTERDAY_MORNING, remote_url=OTHER_REPO)
        assert MultipleRepos().applies(ctx(history=history, now=TODAY_AFTERNOON)) == 0

    def test_not_when_repo_already_pushed_today(self):
        history = PushHistory.from_entries([
            PushHistoryEntry(timestamp=TODAY_MORNING, remote_url=OTHER_REPO),
            PushHistoryEntry(timestamp=TODAY_MORNING + 60, remote_url=REPO),
        ])
        assert MultipleRepos().applies(ctx(history=history, now=TODAY_AFTERNOON)) == 0


class TestWeekendPush:
    """Weekend Warrior."""

    @pytest.mark.parametrize("now", [SAT_2AM_LOCAL, SUN_11PM_LOCAL])
    def test_applies_on_weekend(self, now):
        assert WeekendPush().applies(ctx(now=now, tz=UTC_MINUS_8)) == 1

    @pytest.mark.parametrize("now", [FRI_11PM_LOCAL, MON_2AM_LOCAL])
    def test_not_on_weekdays(self, now):
        assert WeekendPush().applies(ctx(now=now, tz=UTC_MINUS_8)) == 0


class TestFridayAfternoon:
    """Friday Afternoon Deploy."""

    @staticmethod
    def friday_at(hour, day_offset=0):
        return FRIDAY_MIDNIGHT_PST_AS_UTC + day_offset * 86400 + hour * 3600

    @pytest.mark.parametrize("hour", [15, 16, 23])
    def test_applies_from_3pm(self, hour):
        assert FridayAfternoon().applies(ctx(now=self.friday_at(hour), tz=UTC_MINUS_8)) == 1

    @pytest.mark.parametrize("hour", [0, 14])
    def test_not_before_3pm(self, hour):
        assert FridayAfternoon().applies(ctx(now=self.friday_at(hour), tz=UTC_MINUS_8)) == 0

    @pytest.mark.parametrize("day_offset", [-1, 1])
    def test_not_on_other_days(self, day_offset):
        now = self.friday_at(16, day_offset)
        assert FridayAfternoon().applies(ctx(now=now, tz=UTC_MINUS_8)) == 0


class TestStreak:
    """Hot Streak."""

    @staticmethod
    def day(n):
        return n * 86400 + 3600

    def test_applies_after_three_days(self):
        history = make_history(self.day(8), self.day(9), self.day(10))
        assert Streak().applies(ctx(history=history, now=self.day(10) + 60)) == 1

    def test_not_with_two_days(self):
        history = make_history(self.day(9), self.day(10))
        assert Streak().applies(ctx(history=history, now=self.day(10) + 60)) == 0

    def test_gap_breaks_streak(self):
        history = make_history(self.day(6), self.day(7), self.day(9), self.day(10))
        assert Streak().applies(ctx(history=history, now=self.day(10) + 60)) == 0

    def test_needs_push_today(self):
        history = make_history(self.day(7), self.day(8), self.day(9))
        assert Streak().applies(ctx(history=history, now=self.day(10))) == 0

    def test_consecutive_days_counts_run(self):
        history = make_history(self.day(5), self.day(8), self.day(9), self.day(10), self.day(10))
        assert consecutive_push_days(history, Clock.at(self.day(10))) == 3


class TestLineCountTracks:
    """Sniper and Moby Diff count qualifying commits."""

    def test_one_line_change_counts(self):
        assert OneLineChange().applies(ctx(make_push([1, 1, 50]))) == 2

    def test_one_line_change_none(self):
        assert OneLineChange().applies(ctx(make_push([0, 2]))) == 0

    def test_many_lines_changed_counts(self):
        assert ManyLinesChanged().applies(ctx(make_push([999, 1000, 5000]))) == 2

    def test_commit_value_always_applies(self):
        assert CommitValue().applies(ctx(make_push([3]))) == 1
