"""Mood trend analysis over recent check-ins.

Turns a list of mood samples into an aggregate trend:
- Average sentiment (neutral 3 when there is no data)
- Direction over the trailing window (improving / declining / stable)
- Length of the current run of consecutive low-mood days
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum


class MoodDirection(str, Enum):
    """Direction of the recent mood trend."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


# Emotion labels offered by the check-in widget, mapped to sentiment 1 (very
# negative) through 6 (excellent)
EMOTION_SENTIMENT = {
    "scared": 1,
    "sad": 1,
    "lonely": 1,
    "frustrated": 2,
    "worried": 2,
    "nervous": 2,
    "tired": 3,
    "bored": 3,
    "careless": 3,
    "peaceful": 4,
    "relieved": 4,
    "content": 4,
    "hopeful": 5,
    "proud": 5,
    "happy": 6,
    "excited": 6,
    "inspired": 6,
}

NEUTRAL_SENTIMENT = 3
LOW_SENTIMENT_MAX = 2
TREND_WINDOW = 7
TREND_MIN_SAMPLES = 3
TREND_THRESHOLD = 0.5


def sentiment_for_emotion(emotion: str) -> int:
    """Sentiment value for an emotion label; unknown labels are neutral."""
    return EMOTION_SENTIMENT.get((emotion or "").strip().lower(), NEUTRAL_SENTIMENT)


@dataclass(frozen=True)
class MoodSample:
    """A single mood check-in."""
    emotion: str
    sentiment: int
    intensity: int
    check_date: date


@dataclass(frozen=True)
class MoodTrend:
    """Aggregate mood state derived from recent samples."""
    average: float
    direction: MoodDirection
    recent: tuple[MoodSample, ...] = field(default_factory=tuple)  # last 7, newest first
    consecutive_low_days: int = 0


def average_sentiment(samples) -> float:
    """Arithmetic mean of sentiment; 3 (neutral) when there are no samples."""
    samples = list(samples)
    if not samples:
        return float(NEUTRAL_SENTIMENT)
    return sum(s.sentiment for s in samples) / len(samples)


def detect_direction(samples: list[MoodSample]) -> MoodDirection:
    """Compare the earlier half of the trailing window with the recent half."""
    window = sorted(samples, key=lambda s: s.check_date, reverse=True)[:TREND_WINDOW]
    if len(window) < TREND_MIN_SAMPLES:
        return MoodDirection.STABLE

    chronological = list(reversed(window))
    half = len(chronological) // 2
    earlier = average_sentiment(chronological[:half])
    recent = average_sentiment(chronological[-half:])

    diff = recent - earlier
    if diff > TREND_THRESHOLD:
        return MoodDirection.IMPROVING
    if diff < -TREND_THRESHOLD:
        return MoodDirection.DECLINING
    return MoodDirection.STABLE


def count_consecutive_low_days(samples: list[MoodSample]) -> int:
    """Length of the run of consecutive calendar days with sentiment <= 2.

    Several check-ins on one day are averaged, so a day is low when its mean
    sentiment is. Walks back from the most recent day and stops at the first
    gap in days or the first day above the low threshold.
    """
    by_day: dict[date, list[MoodSample]] = defaultdict(list)
    for sample in samples:
        by_day[sample.check_date].append(sample)

    count = 0
    last_day: date | None = None
    for day in sorted(by_day, reverse=True):
        if average_sentiment(by_day[day]) > LOW_SENTIMENT_MAX:
            break
        if last_day is not None and day != last_day - timedelta(days=1):
            break
        count += 1
        last_day = day

    return count


def analyze(samples: list[MoodSample]) -> MoodTrend:
    """Derive the mood trend for a list of samples (any order)."""
    ordered = sorted(samples, key=lambda s: s.check_date, reverse=True)
    return MoodTrend(
        average=average_sentiment(ordered),
        direction=detect_direction(ordered),
        recent=tuple(ordered[:TREND_WINDOW]),
        consecutive_low_days=count_consecutive_low_days(ordered),
    )
