"""Daily (and optional hourly) feedback volume and sentiment trends."""
from collections import defaultdict
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Tuple

from schemas import FeedbackRecord, FeedbackTrendPoint, SentimentTrendPoint, TrendSeries


def _utc(created_at: datetime) -> datetime:
    if created_at.tzinfo is not None:
        return created_at.astimezone(UTC).replace(tzinfo=None)
    return created_at


def day_key(created_at: datetime) -> str:
    """UTC calendar date as YYYY-MM-DD."""
    return _utc(created_at).strftime("%Y-%m-%d")


def _mean(total: float, count: int) -> float:
    return total / count if count else 0.0


def hourly_sentiment(records: Iterable[FeedbackRecord]) -> Dict[str, Dict[int, float]]:
    """Mean score per date and UTC hour, over classified records only."""
    buckets: Dict[str, Dict[int, Tuple[float, int]]] = defaultdict(dict)
    for record in records:
        if record.sentiment is None:
            continue
        created = _utc(record.created_at)
        hours = buckets[day_key(created)]
        total, count = hours.get(created.hour, (0.0, 0))
        hours[created.hour] = (total + record.sentiment.score, count + 1)

    return {
        date: {hour: _mean(total, count) for hour, (total, count) in sorted(hours.items())}
        for date, hours in buckets.items()
    }


def aggregate(records: List[FeedbackRecord], include_hourly: bool = False) -> TrendSeries:
    """Bucket feedback by UTC day.

    ``feedback_trends`` counts every record. ``sentiment_trends`` averages the
    score of classified records; a day with none is left out rather than
    reported as zero. Both series are sorted by date.
    """
    counts: Dict[str, int] = defaultdict(int)
    scores: Dict[str, Tuple[float, int]] = {}

    for record in records:
        date = day_key(record.created_at)
        counts[date] += 1
        if record.sentiment is not None:
            total, count = scores.get(date, (0.0, 0))
            scores[date] = (total + record.sentiment.score, count + 1)

    hourly = hourly_sentiment(records) if include_hourly else {}

    return TrendSeries(
        feedback_trends=[
            FeedbackTrendPoint(date=date, count=count)
            for date, count in sorted(counts.items())
        ],
        sentiment_trends=[
            SentimentTrendPoint(
                date=date,
                average_score=_mean(total, count),
                hourly_sentiment=hourly.get(date) if include_hourly else None
            )
            for date, (total, count) in sorted(scores.items())
        ],
    )
