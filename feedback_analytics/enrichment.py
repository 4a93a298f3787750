"""Attach sentiment verdicts to stored feedback that does not have one yet."""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from config import config
from database import FeedbackRepository
from schemas import FeedbackRecord
from sentiment_classifier import SentimentClassifier

logger = logging.getLogger(__name__)

# (key, value) -> rating or None
RatingMatcher = Callable[[str, Any], Optional[int]]


def _as_rating(value: Any) -> Optional[int]:
    """Numeric value (or numeric string) in [1, 5] as an int rating."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if number != number or not 1 <= number <= 5:
        return None
    return int(number + 0.5)


def match_rating_key(key: str, value: Any) -> Optional[int]:
    """Fields named like a rating ("rating", "stars", "overallScore")."""
    lowered = key.lower()
    if any(hint in lowered for hint in config.RATING_KEY_HINTS):
        return _as_rating(value)
    return None


def match_numeric_value(key: str, value: Any) -> Optional[int]:
    """Any field whose value is itself a number in [1, 5]."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _as_rating(value)
    return None


RATING_MATCHERS: Sequence[RatingMatcher] = (match_rating_key, match_numeric_value)


def extract_text(responses: Dict[str, Any]) -> str:
    """Join every non-empty string response in field order."""
    parts = [
        value.strip() for value in responses.values()
        if isinstance(value, str) and value.strip()
    ]
    return " ".join(parts)


def extract_rating(
    responses: Dict[str, Any],
    matchers: Sequence[RatingMatcher] = RATING_MATCHERS
) -> Optional[int]:
    """First response entry, in field order, that any matcher accepts."""
    for key, value in responses.items():
        for matcher in matchers:
            rating = matcher(key, value)
            if rating is not None:
                return rating
    return None


class FeedbackEnricher:
    """Classifies unclassified feedback and persists each verdict once.

    Records that already carry a verdict are returned untouched and the
    classifier is not called for them, which makes enrichment idempotent.
    """

    def __init__(
        self,
        classifier: SentimentClassifier,
        repository: FeedbackRepository,
        matchers: Sequence[RatingMatcher] = RATING_MATCHERS
    ):
        self.classifier = classifier
        self.repository = repository
        self.matchers = matchers

    async def enrich(self, records: List[FeedbackRecord]) -> List[FeedbackRecord]:
        """Enrich a batch of records.

        A record whose verdict cannot be persisted is logged and returned
        without sentiment; the rest of the batch still runs.

        Args:
            records: Feedback records, in any order

        Returns:
            Records in the same order, classified where possible
        """
        enriched: List[FeedbackRecord] = []
        pending = 0
        failed = 0

        for record in records:
            if record.sentiment is not None:
                enriched.append(record)
                continue

            pending += 1
            result = await self._enrich_one(record)
            if result.sentiment is None:
                failed += 1
            enriched.append(result)

        if pending:
            logger.info(f"Enriched {pending - failed}/{pending} unclassified feedback records")
        return enriched

    async def _enrich_one(self, record: FeedbackRecord) -> FeedbackRecord:
        text = extract_text(record.responses)
        rating = extract_rating(record.responses, self.matchers)
        verdict = await self.classifier.classify(text, rating)

        try:
            written = await self.repository.set_sentiment(record.id, verdict)
            if written:
                return record.model_copy(update={"sentiment": verdict})

            # Another request classified this record first; keep its verdict
            stored = await self.repository.get_feedback(record.id)
        except Exception as e:
            logger.error(f"Failed to persist sentiment for feedback {record.id}: {e}")
            return record

        if stored is not None and stored.sentiment is not None:
            logger.debug(f"Feedback {record.id} was already classified, using stored verdict")
            return stored
        logger.warning(f"Feedback {record.id} no longer exists, verdict not persisted")
        return record.model_copy(update={"sentiment": verdict})
