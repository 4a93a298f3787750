"""Word-list fallback analyzer used when the AI provider is unavailable."""
import logging
import re
from collections import Counter
from typing import List

from schemas import SentimentVerdict

logger = logging.getLogger(__name__)

LABEL_EMOJIS = {"Positive": "😊", "Neutral": "😐", "Negative": "😞"}

POSITIVE_WORDS = frozenset([
    "good", "great", "excellent", "amazing", "awesome", "fantastic", "wonderful",
    "love", "loved", "loving", "like", "liked", "best", "perfect", "happy",
    "satisfied", "helpful", "friendly", "easy", "fast", "quick", "nice",
    "pleasant", "recommend", "outstanding", "superb", "brilliant", "enjoy",
    "enjoyed", "smooth", "clean", "reliable", "impressed", "delighted", "thanks",
    "thank", "glad", "beautiful", "efficient", "intuitive",
])

NEGATIVE_WORDS = frozenset([
    "bad", "terrible", "awful", "horrible", "worst", "poor", "hate", "hated",
    "dislike", "disappointed", "disappointing", "slow", "broken", "bug", "bugs",
    "crash", "crashes", "crashed", "error", "errors", "useless", "rude",
    "confusing", "difficult", "hard", "annoying", "frustrating", "frustrated",
    "angry", "expensive", "late", "dirty", "unhelpful", "problem", "problems",
    "issue", "issues", "fail", "failed", "fails", "refund", "waste",
])

STOPWORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "if", "of", "at", "by", "for", "with",
    "about", "to", "from", "in", "on", "is", "are", "was", "were", "be", "been",
    "being", "it", "its", "it's", "this", "that", "these", "those", "i", "me",
    "my", "we", "our", "you", "your", "he", "she", "they", "them", "their",
    "have", "has", "had", "do", "does", "did", "so", "very", "too", "just",
    "really", "can", "could", "would", "should", "will", "not", "no", "all",
    "any", "some", "there", "here", "what", "when", "which", "who", "how",
    "than", "then", "also", "as", "am", "im", "i'm", "get", "got", "much",
])

TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation, drop stopwords."""
    tokens = (token.strip("'") for token in TOKEN_PATTERN.findall(text.lower()))
    return [token for token in tokens if token and token not in STOPWORDS]


def extract_keywords(text: str, limit: int = 5) -> List[str]:
    """Most frequent content words, ties kept in order of first appearance."""
    candidates = [
        token for token in tokenize(text)
        if len(token) > 2 and not token.isdigit()
    ]
    return [word for word, _ in Counter(candidates).most_common(limit)]


class LexicalSentimentAnalyzer:
    """Deterministic sentiment from positive/negative word counts.

    score = 0.5 + 0.1 * (positive - negative), clamped to [0.1, 0.9], so the
    label always agrees with which side of 0.5 the score falls on.
    """

    CONFIDENCE = 0.6

    def analyze(self, feedback_text: str) -> SentimentVerdict:
        """Analyze feedback by counting sentiment words.

        Args:
            feedback_text: The feedback to analyze

        Returns:
            SentimentVerdict with confidence 0.6
        """
        tokens = tokenize(feedback_text)
        positive = sum(1 for token in tokens if token in POSITIVE_WORDS)
        negative = sum(1 for token in tokens if token in NEGATIVE_WORDS)
        delta = positive - negative

        if delta > 0:
            label = "Positive"
            emotions = ["happy", "satisfied"] if delta >= 2 else ["satisfied"]
        elif delta < 0:
            label = "Negative"
            emotions = ["frustrated", "disappointed"] if delta <= -2 else ["disappointed"]
        else:
            label = "Neutral"
            emotions = ["neutral"]

        score = round(min(0.9, max(0.1, 0.5 + 0.1 * delta)), 2)
        logger.debug(f"Lexical sentiment: {label} (+{positive}/-{negative})")

        return SentimentVerdict(
            label=label,
            score=score,
            emoji=LABEL_EMOJIS[label],
            keywords=extract_keywords(feedback_text),
            emotions=emotions,
            confidence=self.CONFIDENCE,
            source="lexical"
        )
