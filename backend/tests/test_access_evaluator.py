import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.services.access import (
    NO_PLAN,
    evaluate_access,
    four_day_progress,
    four_day_unlock_time,
    four_day_unlocked_days,
    is_subscription_valid,
    should_show_four_day_plan,
)


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _sub(type_: str, start: datetime, *, active: bool = True, current_day=1, days: int = 4):
    return SimpleNamespace(
        id=f"{type_}-{start.isoformat()}",
        type=type_,
        start_date=start,
        end_date=start + timedelta(days=days),
        is_active=active,
        unlocked_content={"currentDay": current_day, "unlockedVideos": [1]} if type_ == "FOUR_DAY" else None,
    )


class TestEvaluateAccess(unittest.TestCase):
    def test_no_subscriptions(self):
        decision = evaluate_access([], now=NOW)
        self.assertIs(decision, NO_PLAN)
        self.assertFalse(decision.has_effective_plan)
        self.assertEqual(decision.dashboard_view, "upgrade")

    def test_inactive_subscriptions_give_no_plan(self):
        subs = [_sub("SIX_MONTH", NOW - timedelta(days=1), active=False), _sub("FOUR_DAY", NOW, active=False)]
        self.assertIs(evaluate_access(subs, now=NOW), NO_PLAN)

    def test_six_month_wins_over_newer_four_day(self):
        six = _sub("SIX_MONTH", NOW - timedelta(days=30), days=180)
        four = _sub("FOUR_DAY", NOW - timedelta(hours=1))
        decision = evaluate_access([four, six], now=NOW)
        self.assertIs(decision.effective_subscription, six)
        self.assertTrue(decision.is_premium_unlocked)
        self.assertFalse(decision.should_show_four_day_plan)
        self.assertEqual(decision.dashboard_view, "six_month")

    def test_six_month_dates_are_not_checked(self):
        stale = _sub("SIX_MONTH", NOW - timedelta(days=400), days=180)
        decision = evaluate_access([stale], now=NOW)
        self.assertIs(decision.effective_subscription, stale)
        self.assertTrue(decision.is_premium_unlocked)

    def test_latest_four_day_is_effective(self):
        older = _sub("FOUR_DAY", NOW - timedelta(days=10), current_day=4)
        newer = _sub("FOUR_DAY", NOW - timedelta(days=1), current_day=2)
        decision = evaluate_access([older, newer], now=NOW)
        self.assertIs(decision.effective_subscription, newer)
        self.assertFalse(decision.is_premium_unlocked)
        self.assertEqual(decision.dashboard_view, "four_day")

    def test_plan_type_is_case_insensitive(self):
        sub = _sub("six_month", NOW - timedelta(days=1))
        self.assertEqual(evaluate_access([sub], now=NOW).plan_type, "SIX_MONTH")

    def test_naive_start_dates_are_treated_as_utc(self):
        sub = _sub("FOUR_DAY", (NOW - timedelta(hours=2)).replace(tzinfo=None))
        decision = evaluate_access([sub], now=NOW)
        self.assertTrue(decision.should_show_four_day_plan)


class TestFourDayWelcomeWindow(unittest.TestCase):
    def test_just_inside_window(self):
        sub = _sub("FOUR_DAY", NOW - timedelta(hours=47, minutes=59))
        self.assertTrue(should_show_four_day_plan(sub, NOW))

    def test_just_outside_window(self):
        sub = _sub("FOUR_DAY", NOW - timedelta(hours=48, minutes=1))
        self.assertFalse(should_show_four_day_plan(sub, NOW))

    def test_requires_day_one(self):
        sub = _sub("FOUR_DAY", NOW - timedelta(hours=2), current_day=2)
        self.assertFalse(should_show_four_day_plan(sub, NOW))

    def test_missing_progress(self):
        sub = _sub("FOUR_DAY", NOW - timedelta(hours=2))
        sub.unlocked_content = None
        self.assertFalse(should_show_four_day_plan(sub, NOW))

    def test_welcome_view(self):
        decision = evaluate_access([_sub("FOUR_DAY", NOW - timedelta(hours=3))], now=NOW)
        self.assertEqual(decision.dashboard_view, "four_day_welcome")


class TestSubscriptionValidity(unittest.TestCase):
    def test_valid_until_end_date(self):
        sub = _sub("FOUR_DAY", NOW - timedelta(days=3))
        self.assertTrue(is_subscription_valid(sub, NOW))
        self.assertFalse(is_subscription_valid(sub, NOW + timedelta(days=2)))

    def test_inactive_is_invalid(self):
        sub = _sub("SIX_MONTH", NOW, active=False, days=180)
        self.assertFalse(is_subscription_valid(sub, NOW))


class TestFourDaySchedule(unittest.TestCase):
    def test_unlock_time_is_nine_pm_local(self):
        start = datetime(2026, 10, 18, 5, 0, tzinfo=timezone.utc)  # 10:30 in Kolkata
        self.assertEqual(
            four_day_unlock_time(start, 1, "Asia/Kolkata"),
            datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc),
        )
        self.assertEqual(
            four_day_unlock_time(start, 3, "Asia/Kolkata"),
            datetime(2026, 10, 20, 15, 30, tzinfo=timezone.utc),
        )

    def test_progress(self):
        sub = _sub("FOUR_DAY", datetime(2026, 10, 18, 5, 0, tzinfo=timezone.utc))
        progress = four_day_progress(sub, now=datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc), tz="Asia/Kolkata")
        self.assertEqual(progress["unlockedDays"], [1, 2])
        self.assertEqual(progress["currentDay"], 2)
        self.assertEqual(len(progress["schedule"]), 4)
        self.assertFalse(progress["schedule"][2]["isUnlocked"])

    def test_unlocked_days_include_granted_videos(self):
        sub = _sub("FOUR_DAY", datetime(2026, 10, 18, 5, 0, tzinfo=timezone.utc))
        sub.unlocked_content = {"currentDay": 1, "unlockedVideos": [1, 2, 3]}
        early = datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)
        self.assertEqual(four_day_unlocked_days(sub, now=early, tz="Asia/Kolkata"), {1, 2, 3})
        sub.unlocked_content = None
        self.assertEqual(four_day_unlocked_days(sub, now=early, tz="Asia/Kolkata"), set())

    def test_progress_before_first_unlock(self):
        sub = _sub("FOUR_DAY", datetime(2026, 10, 18, 5, 0, tzinfo=timezone.utc))
        progress = four_day_progress(sub, now=datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc), tz="Asia/Kolkata")
        self.assertEqual(progress["unlockedDays"], [])
        self.assertEqual(progress["currentDay"], 1)


if __name__ == "__main__":
    unittest.main()
