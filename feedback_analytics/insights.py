"""Keyword/emotion rankings, recommendations and trend flags.

All thresholds are fixed percentage or score cut-points.
"""
from collections import Counter
from datetime import datetime, timedelta, UTC
from typing import Dict, Iterable, List, Optional

from schemas import AIInsights, FeedbackRecord, SentimentDistribution

TOP_KEYWORDS_LIMIT = 10
QUOTED_KEYWORDS_LIMIT = 3
FOCUS_KEYWORDS_LIMIT = 5
TOP_EMOTIONS_LIMIT = 8
RECENT_WINDOW = timedelta(days=7)
RECENT_KEYWORD_SAMPLE = 10
EMERGING_KEYWORD_MIN_MENTIONS = 2  # strictly more than this

START_COLLECTING_MESSAGE = "Start collecting feedback to generate AI-powered insights and recommendations."


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def _classified(records: Iterable[FeedbackRecord]) -> List[FeedbackRecord]:
    return [record for record in records if record.sentiment is not None]


def sentiment_distribution(records: Iterable[FeedbackRecord]) -> SentimentDistribution:
    """Count classified records per label."""
    counts = Counter(record.sentiment.label for record in _classified(records))
    return SentimentDistribution(
        positive=counts["Positive"],
        neutral=counts["Neutral"],
        negative=counts["Negative"]
    )


def average_score(records: Iterable[FeedbackRecord]) -> Optional[float]:
    """Mean sentiment score of classified records, None when there are none."""
    classified = _classified(records)
    if not classified:
        return None
    return sum(record.sentiment.score for record in classified) / len(classified)


def top_keywords(records: Iterable[FeedbackRecord], limit: int = TOP_KEYWORDS_LIMIT) -> List[str]:
    """Most frequent keywords; equal counts keep first-seen order."""
    counts = Counter(
        keyword
        for record in _classified(records)
        for keyword in record.sentiment.keywords
    )
    return [keyword for keyword, _ in counts.most_common(limit)]


def emotion_analysis(records: Iterable[FeedbackRecord], total_feedback: int) -> Dict[str, float]:
    """Percentage score for the most frequent emotions.

    Each of the top emotions gets ``occurrences / total_feedback * 100``,
    boosted by ``1 + (kept - rank) * 0.1`` where ``rank`` is its 0-based
    position, then capped at 100 and rounded to one decimal.
    """
    if total_feedback <= 0:
        return {}

    counts = Counter(
        emotion
        for record in _classified(records)
        for emotion in record.sentiment.emotions
    )
    top = counts.most_common(TOP_EMOTIONS_LIMIT)
    kept = len(top)

    analysis: Dict[str, float] = {}
    for rank, (emotion, occurrences) in enumerate(top):
        percentage = occurrences / total_feedback * 100
        boosted = percentage * (1 + (kept - rank) * 0.1)
        analysis[emotion] = min(100.0, round(boosted, 1))
    return analysis


def recommendations(
    distribution: SentimentDistribution,
    avg_score: Optional[float],
    total_feedback: int,
    keywords: List[str]
) -> List[str]:
    """Rule cascade, emitted in threshold order.

    The score rules only fire when at least one record is classified
    (``avg_score`` is not None).
    """
    if total_feedback == 0:
        return [START_COLLECTING_MESSAGE]

    negative_pct = distribution.negative / total_feedback * 100
    positive_pct = distribution.positive / total_feedback * 100
    neutral_pct = distribution.neutral / total_feedback * 100

    themes = ""
    if keywords:
        themes = f" (common themes: {', '.join(keywords[:QUOTED_KEYWORDS_LIMIT])})"

    messages = []

    if negative_pct > 40:
        messages.append(
            f"Urgent: {negative_pct:.0f}% of feedback is negative{themes}. "
            "Review recent complaints and address critical issues immediately."
        )
    elif negative_pct > 20:
        messages.append(
            f"Moderate negative sentiment ({negative_pct:.0f}%){themes}. "
            "Investigate recurring concerns before they escalate."
        )

    if positive_pct > 70:
        messages.append(
            f"Excellent! {positive_pct:.0f}% of feedback is positive. "
            "Leverage these responses as customer testimonials."
        )
    elif positive_pct > 50:
        messages.append(
            f"Good overall sentiment with {positive_pct:.0f}% positive feedback. "
            "Keep doing what works and look for quick wins."
        )

    if neutral_pct > 50:
        messages.append(
            f"{neutral_pct:.0f}% of feedback is neutral. "
            "Engage customers with follow-up questions to uncover stronger opinions."
        )

    if avg_score is None:
        pass
    elif avg_score < 0.3:
        messages.append(
            f"Critical: the average sentiment score is {avg_score:.2f}. "
            "Immediate action is needed to improve the customer experience."
        )
    elif avg_score < 0.5:
        messages.append(
            f"The average sentiment score ({avg_score:.2f}) is below average. "
            "Focus on the most common pain points."
        )
    elif avg_score > 0.8:
        messages.append(
            f"Outstanding average sentiment score ({avg_score:.2f}). Customers are highly satisfied."
        )

    if total_feedback < 10:
        messages.append(
            f"Collect more feedback to get more reliable insights (currently {total_feedback})."
        )

    return messages


def emerging_trends(
    records: List[FeedbackRecord],
    keywords: List[str],
    now: Optional[datetime] = None
) -> List[str]:
    """Recent sentiment direction and keywords gaining mentions."""
    now = _naive_utc(now) if now else datetime.now(UTC).replace(tzinfo=None)
    classified = _classified(records)
    trends = []

    recent = [
        record for record in classified
        if _naive_utc(record.created_at) >= now - RECENT_WINDOW
    ]
    if recent:
        recent_rate = sum(1 for r in recent if r.sentiment.label == "Positive") / len(recent) * 100
        overall_rate = sum(1 for r in classified if r.sentiment.label == "Positive") / len(classified) * 100

        if recent_rate > 70:
            trends.append(
                f"Sentiment is improving: {recent_rate:.0f}% of feedback from the last 7 days "
                f"is positive (overall {overall_rate:.0f}%)."
            )
        elif recent_rate < 30:
            trends.append(
                f"Sentiment is declining: only {recent_rate:.0f}% of feedback from the last 7 days "
                f"is positive (overall {overall_rate:.0f}%)."
            )

    latest = sorted(records, key=lambda r: _naive_utc(r.created_at), reverse=True)[:RECENT_KEYWORD_SAMPLE]
    mentions = Counter(
        keyword
        for record in _classified(latest)
        for keyword in record.sentiment.keywords
    )
    for keyword, count in mentions.items():
        if count > EMERGING_KEYWORD_MIN_MENTIONS and keyword not in keywords:
            trends.append(f'Increased mentions of "{keyword}" in recent feedback.')

    return trends


def actionable_insights(
    distribution: SentimentDistribution,
    keywords: List[str],
    avg_score: Optional[float]
) -> List[str]:
    insights = []

    if distribution.negative > 0:
        noun = "item" if distribution.negative == 1 else "items"
        insights.append(
            f"Address {distribution.negative} negative feedback {noun} to improve customer satisfaction."
        )
    if keywords:
        insights.append(f"Focus on these key themes: {', '.join(keywords[:FOCUS_KEYWORDS_LIMIT])}.")
    if avg_score is not None and avg_score > 0.7:
        insights.append("Use positive feedback in marketing materials and testimonials.")
    if distribution.neutral > distribution.positive:
        insights.append("Convert neutral respondents into promoters with targeted follow-ups.")

    return insights


def synthesize(
    records: List[FeedbackRecord],
    distribution: SentimentDistribution,
    total_feedback: int,
    now: Optional[datetime] = None
) -> AIInsights:
    """Build the insights block of an analytics snapshot.

    Args:
        records: Feedback in scope, classified or not
        distribution: Label counts for those records
        total_feedback: Number of records in scope, used as the percentage base
        now: Reference time for the recent-trend window (defaults to now, UTC)

    Returns:
        AIInsights
    """
    classified = _classified(records)
    avg_score = average_score(classified)
    keywords = top_keywords(classified)

    if total_feedback == 0:
        return AIInsights(recommendations=[START_COLLECTING_MESSAGE])

    average_confidence = (
        sum(record.sentiment.confidence for record in classified) / len(classified)
        if classified else 0.0
    )

    return AIInsights(
        recommendations=recommendations(distribution, avg_score, total_feedback, keywords),
        top_keywords=keywords,
        emerging_trends=emerging_trends(records, keywords, now),
        emotion_analysis=emotion_analysis(classified, total_feedback),
        actionable_insights=actionable_insights(distribution, keywords, avg_score),
        average_confidence=average_confidence,
        total_analyzed=len(classified)
    )
