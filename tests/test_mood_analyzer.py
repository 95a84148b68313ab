"""Unit tests for mood trend analysis."""

from datetime import timedelta

from app.services.mood_analyzer import (
    MoodDirection,
    analyze,
    average_sentiment,
    count_consecutive_low_days,
    detect_direction,
    sentiment_for_emotion,
)
from tests.builders import moods


class TestSentimentMapping:
    """Test emotion label to sentiment mapping."""

    def test_known_emotions(self):
        assert sentiment_for_emotion("sad") == 1
        assert sentiment_for_emotion("worried") == 2
        assert sentiment_for_emotion("content") == 4
        assert sentiment_for_emotion("inspired") == 6

    def test_case_and_whitespace_insensitive(self):
        assert sentiment_for_emotion("  Happy ") == 6

    def test_unknown_emotion_is_neutral(self):
        assert sentiment_for_emotion("confused") == 3
        assert sentiment_for_emotion("") == 3


class TestAverageSentiment:
    def test_empty_is_neutral(self):
        assert average_sentiment([]) == 3.0

    def test_mean(self):
        assert average_sentiment(moods([2, 3, 2, 3])) == 2.5


class TestConsecutiveLowDays:
    """Test the low-mood streak counter."""

    def test_streak_resets_at_first_non_low_day(self):
        """[1,1,2,4,1] newest first counts the three most recent days."""
        assert count_consecutive_low_days(moods([1, 1, 2, 4, 1])) == 3

    def test_most_recent_not_low(self):
        assert count_consecutive_low_days(moods([4, 1, 1])) == 0

    def test_gap_in_days_ends_streak(self):
        samples = moods([1, 1])
        older = moods([1, 1, 1], newest=samples[-1].check_date - timedelta(days=3))
        assert count_consecutive_low_days(samples + older) == 2

    def test_multiple_samples_same_day_count_once(self):
        samples = moods([2, 1, 1])
        same_day = moods([1], newest=samples[0].check_date)
        assert count_consecutive_low_days(samples + same_day) == 3

    def test_same_day_order_does_not_matter(self):
        today = moods([1])[0].check_date
        happy_then_sad = moods([4], newest=today) + moods([1], newest=today)
        sad_then_happy = moods([1], newest=today) + moods([4], newest=today)

        # Mean of 4 and 1 is above the low threshold either way
        assert count_consecutive_low_days(happy_then_sad) == 0
        assert count_consecutive_low_days(sad_then_happy) == 0

    def test_low_day_average_extends_streak(self):
        samples = moods([1, 1])
        mixed = moods([3], newest=samples[0].check_date)
        # Today averages 2.0, still low
        assert count_consecutive_low_days(samples + mixed) == 2

    def test_input_order_does_not_matter(self):
        assert count_consecutive_low_days(list(reversed(moods([1, 2, 2, 5])))) == 3

    def test_empty(self):
        assert count_consecutive_low_days([]) == 0


class TestDirection:
    """Test trend direction over the trailing seven samples."""

    def test_improving(self):
        # Newest first: recent half is clearly higher
        assert detect_direction(moods([5, 5, 5, 1, 1, 1])) == MoodDirection.IMPROVING

    def test_declining(self):
        assert detect_direction(moods([1, 1, 1, 5, 5, 5])) == MoodDirection.DECLINING

    def test_small_change_is_stable(self):
        assert detect_direction(moods([4, 4, 4, 4])) == MoodDirection.STABLE
        assert detect_direction(moods([3, 3, 3, 3, 3, 2])) == MoodDirection.STABLE

    def test_too_few_samples_is_stable(self):
        assert detect_direction(moods([6, 1])) == MoodDirection.STABLE

    def test_only_last_seven_considered(self):
        # Older samples beyond the window would make this look improving
        samples = moods([3, 3, 3, 3, 3, 3, 3, 1, 1, 1, 1])
        assert detect_direction(samples) == MoodDirection.STABLE


class TestAnalyze:
    def test_trend_fields(self):
        trend = analyze(list(reversed(moods([2, 2, 2, 2, 2, 4, 4, 4, 4]))))

        assert trend.average == (2 * 5 + 4 * 4) / 9
        assert len(trend.recent) == 7
        assert trend.recent[0].check_date > trend.recent[-1].check_date
        assert trend.consecutive_low_days == 5
        assert trend.direction == MoodDirection.DECLINING

    def test_no_samples(self):
        trend = analyze([])

        assert trend.average == 3.0
        assert trend.direction == MoodDirection.STABLE
        assert trend.recent == ()
        assert trend.consecutive_low_days == 0
