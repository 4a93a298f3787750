"""Sentiment classification with rating precedence and local fallbacks.

Decision order:

1. An explicit 1-5 rating fixes ``label`` and ``score``. Text, when present,
   only contributes keywords, emotions and a summary.
2. Otherwise non-empty text goes to the AI provider. Any provider failure
   drops to the lexical word-count heuristic.
3. With neither, a low-confidence neutral default is returned.

``classify`` never raises.
"""
import logging
from typing import Any, Dict, Optional

from ai_analyzer import AISentimentAnalyzer
from cache import VerdictCache
from config import Config
from lexical_analyzer import LABEL_EMOJIS, LexicalSentimentAnalyzer, extract_keywords
from schemas import SentimentVerdict

logger = logging.getLogger(__name__)

# rating -> (label, score, emotions, confidence)
RATING_VERDICTS = {
    1: ("Negative", 0.1, ["angry", "frustrated"], 0.9),
    2: ("Negative", 0.3, ["disappointed", "unsatisfied"], 0.9),
    3: ("Neutral", 0.5, ["neutral", "okay"], 0.8),
    4: ("Positive", 0.7, ["satisfied", "happy"], 0.9),
    5: ("Positive", 0.9, ["delighted", "excited"], 0.9),
}

# Confidence for a rating verdict whose keywords came from the local extractor
RATING_FALLBACK_CONFIDENCE = 0.8

MAX_KEYWORDS = 5
MAX_EMOTIONS = 3

DEFAULT_VERDICT = SentimentVerdict(
    label="Neutral",
    score=0.5,
    emoji=LABEL_EMOJIS["Neutral"],
    keywords=[],
    emotions=["neutral"],
    confidence=0.3,
    source="default"
)


def label_for_score(score: float) -> str:
    """Label band for AI-scored text: [0, 0.4) / [0.4, 0.6] / (0.6, 1]."""
    if score < 0.4:
        return "Negative"
    if score <= 0.6:
        return "Neutral"
    return "Positive"


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


class SentimentClassifier:
    """Produces a SentimentVerdict from feedback text and/or a rating."""

    def __init__(
        self,
        ai_analyzer: Optional[AISentimentAnalyzer] = None,
        fallback_analyzer: Optional[LexicalSentimentAnalyzer] = None,
        cache: Optional[VerdictCache] = None
    ):
        self.ai_analyzer = ai_analyzer
        self.fallback_analyzer = fallback_analyzer or LexicalSentimentAnalyzer()
        self.cache = cache

    @classmethod
    def from_config(cls, cfg: Config) -> "SentimentClassifier":
        """Build a classifier with an OpenAI-backed analyzer and verdict cache."""
        ai_analyzer = AISentimentAnalyzer(
            api_key=cfg.OPENAI_API_KEY,
            model=cfg.AI_MODEL,
            timeout=cfg.AI_TIMEOUT_SECONDS,
            enabled=cfg.AI_PROVIDER_ENABLED
        )
        cache = VerdictCache(max_size=cfg.CACHE_MAX_SIZE, ttl_seconds=cfg.CACHE_TTL_SECONDS)
        return cls(ai_analyzer=ai_analyzer, cache=cache)

    @property
    def ai_available(self) -> bool:
        return self.ai_analyzer is not None and getattr(self.ai_analyzer, "available", True)

    async def classify(self, text: Optional[str], rating: Optional[int] = None) -> SentimentVerdict:
        """Classify feedback.

        Args:
            text: Free-text feedback, may be empty
            rating: Explicit 1-5 rating; values outside that range are ignored

        Returns:
            SentimentVerdict
        """
        text = (text or "").strip()

        if rating is not None and (isinstance(rating, bool) or rating not in RATING_VERDICTS):
            logger.warning(f"Ignoring out-of-range rating {rating!r}")
            rating = None

        if rating is not None:
            return await self._classify_rating(text, rating)
        if text:
            return await self._classify_text(text)
        return DEFAULT_VERDICT

    async def _classify_rating(self, text: str, rating: int) -> SentimentVerdict:
        label, score, emotions, confidence = RATING_VERDICTS[int(rating)]

        if not text:
            return SentimentVerdict(
                label=label,
                score=score,
                emoji=LABEL_EMOJIS[label],
                keywords=[],
                emotions=list(emotions),
                confidence=confidence,
                source="rating"
            )

        cached = self._cached(text, rating)
        if cached:
            return cached

        ai_result = await self._call_ai(text)
        if ai_result is None:
            return SentimentVerdict(
                label=label,
                score=score,
                emoji=LABEL_EMOJIS[label],
                keywords=extract_keywords(text, MAX_KEYWORDS),
                emotions=list(emotions),
                confidence=RATING_FALLBACK_CONFIDENCE,
                source="rating"
            )

        verdict = SentimentVerdict(
            label=label,
            score=score,
            emoji=LABEL_EMOJIS[label],
            keywords=ai_result["keywords"],
            emotions=ai_result["emotions"] or list(emotions),
            confidence=confidence,
            summary=ai_result.get("summary"),
            source="rating"
        )
        self._remember(text, rating, verdict)
        return verdict

    async def _classify_text(self, text: str) -> SentimentVerdict:
        cached = self._cached(text, None)
        if cached:
            return cached

        ai_result = await self._call_ai(text)
        if ai_result is None:
            return self.fallback_analyzer.analyze(text)

        score = ai_result["score"]
        label = label_for_score(score)
        if ai_result["label"] and ai_result["label"] != label:
            logger.debug(f"AI label {ai_result['label']} disagrees with score {score}, using {label}")

        verdict = SentimentVerdict(
            label=label,
            score=score,
            emoji=LABEL_EMOJIS[label],
            keywords=ai_result["keywords"],
            emotions=ai_result["emotions"],
            confidence=ai_result["confidence"],
            summary=ai_result["summary"],
            source="ai"
        )
        self._remember(text, None, verdict)
        return verdict

    async def _call_ai(self, text: str) -> Optional[Dict[str, Any]]:
        """Ask the AI provider for clamped, capped fields.

        None means the caller should use a local fallback.
        """
        if self.ai_analyzer is None:
            return None
        try:
            result = await self.ai_analyzer.analyze(text)
            summary = result.get("summary")
            return {
                "label": result.get("label"),
                "score": round(_clamp(float(result["score"])), 4),
                "keywords": [str(k) for k in result.get("keywords") or []][:MAX_KEYWORDS],
                "emotions": [str(e) for e in result.get("emotions") or []][:MAX_EMOTIONS],
                "confidence": _clamp(float(result.get("confidence", 0.7))),
                "summary": summary if isinstance(summary, str) else None,
            }
        except Exception as e:
            logger.warning(f"AI analysis failed: {e}. Using fallback analyzer")
            return None

    def _cached(self, text: str, rating: Optional[int]) -> Optional[SentimentVerdict]:
        if self.cache is None:
            return None
        verdict = self.cache.get(text, rating)
        if verdict:
            logger.info("Cache hit for feedback")
        return verdict

    def _remember(self, text: str, rating: Optional[int], verdict: SentimentVerdict) -> None:
        if self.cache is not None:
            self.cache.set(text, rating, verdict)
