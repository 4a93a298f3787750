"""Pydantic schemas for feedback records, sentiment verdicts and analytics snapshots."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SentimentLabel = Literal["Positive", "Neutral", "Negative"]
VerdictSource = Literal["rating", "ai", "lexical", "default"]
AuditSeverity = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SentimentVerdict(CamelModel):
    """Sentiment attached to a feedback record. Never changes once persisted."""

    model_config = ConfigDict(frozen=True)

    label: SentimentLabel
    score: float = Field(..., ge=0.0, le=1.0, description="0 = most negative, 1 = most positive")
    emoji: str = "😐"
    keywords: List[str] = Field(default_factory=list, max_length=5)
    emotions: List[str] = Field(default_factory=list, max_length=3)
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    summary: Optional[str] = None
    source: Optional[VerdictSource] = Field(None, description="Which tier produced the verdict")


class FeedbackRecord(CamelModel):
    """A stored form submission, optionally enriched with a sentiment verdict."""

    model_config = ConfigDict(frozen=True)

    id: str
    form_id: str
    user_id: str = Field(..., description="Owner of the form, not the respondent")
    responses: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    sentiment: Optional[SentimentVerdict] = None


class Form(CamelModel):
    """A feedback form owned by a user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    is_active: bool = True
    created_at: Optional[datetime] = None


class AuditLogEntry(CamelModel):
    """One audit trail entry. ``details`` carries free-form context."""

    timestamp: datetime
    action: str
    user_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    severity: AuditSeverity = "low"


# ---------------------------------------------------------------------------
# Analytics snapshot
# ---------------------------------------------------------------------------

class OverviewStats(CamelModel):
    total_feedback: int = 0
    average_sentiment_score: float = 0.0
    total_forms: int = 0
    active_forms: int = 0


class FeedbackTrendPoint(CamelModel):
    date: str
    count: int


class SentimentTrendPoint(CamelModel):
    date: str
    average_score: float
    hourly_sentiment: Optional[Dict[int, float]] = Field(
        None, description="Mean score per UTC hour of day, only when requested"
    )


class TrendSeries(CamelModel):
    feedback_trends: List[FeedbackTrendPoint] = Field(default_factory=list)
    sentiment_trends: List[SentimentTrendPoint] = Field(default_factory=list)


class FormPerformanceEntry(CamelModel):
    form_id: str
    title: str
    total_feedback: int
    average_sentiment_score: float


class SentimentDistribution(CamelModel):
    """Count of classified records per label. All three keys are always present."""

    positive: int = Field(0, alias="Positive")
    neutral: int = Field(0, alias="Neutral")
    negative: int = Field(0, alias="Negative")

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative


class AIInsights(CamelModel):
    recommendations: List[str] = Field(default_factory=list)
    top_keywords: List[str] = Field(default_factory=list)
    emerging_trends: List[str] = Field(default_factory=list)
    emotion_analysis: Dict[str, float] = Field(default_factory=dict)
    actionable_insights: List[str] = Field(default_factory=list)
    average_confidence: float = 0.0
    total_analyzed: int = 0


class AnalyticsSnapshot(CamelModel):
    """Composed analytics for one query. Recomputed on every request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "overview": {
                    "totalFeedback": 3,
                    "averageSentimentScore": 0.63,
                    "totalForms": 1,
                    "activeForms": 1,
                },
                "feedbackTrends": [{"date": "2026-10-01", "count": 3}],
                "sentimentTrends": [{"date": "2026-10-01", "averageScore": 0.63}],
                "formPerformance": [
                    {"formId": "form_1", "title": "Checkout survey", "totalFeedback": 3, "averageSentimentScore": 0.63}
                ],
                "sentimentDistribution": {"Positive": 2, "Neutral": 0, "Negative": 1},
                "aiInsights": {"recommendations": ["Collect more feedback to get more reliable insights."]},
            }
        }
    )

    overview: OverviewStats
    feedback_trends: List[FeedbackTrendPoint]
    sentiment_trends: List[SentimentTrendPoint]
    form_performance: List[FormPerformanceEntry]
    sentiment_distribution: SentimentDistribution
    ai_insights: AIInsights


class InsightsResponse(CamelModel):
    ai_insights: AIInsights
    sentiment_distribution: SentimentDistribution


# ---------------------------------------------------------------------------
# Request / response schemas for the HTTP surface
# ---------------------------------------------------------------------------

class FeedbackSubmission(CamelModel):
    """Request schema for a raw form submission."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "formId": "form_1",
                "userId": "user_1",
                "responses": {"rating": "4", "comments": "Checkout was quick and easy."},
            }
        }
    )

    form_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, description="Owner of the form")
    responses: Dict[str, Any] = Field(..., description="Field key to submitted value")
    created_at: Optional[datetime] = None


class FeedbackSubmissionResponse(CamelModel):
    id: str
    created_at: str


class FormCreateRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True
