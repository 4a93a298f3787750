"""Compose an analytics snapshot for one owner, optionally narrowed to a form."""
import logging
from datetime import datetime, UTC
from typing import Callable, Optional

import form_performance
import insights
import trends
from config import config
from database import FeedbackRepository
from enrichment import FeedbackEnricher
from schemas import AnalyticsSnapshot, InsightsResponse, OverviewStats

logger = logging.getLogger(__name__)

AUDIT_ANALYTICS_VIEWED = "Analytics Viewed"
AUDIT_ANALYTICS_FAILED = "Analytics Fetch Failed"
AUDIT_INSIGHTS_GENERATED = "AI Insights Generated"
AUDIT_INSIGHTS_FAILED = "AI Insights Generation Failed"


class InvalidQueryError(ValueError):
    """The analytics query is missing a required parameter."""


class FormAccessError(Exception):
    """The requested form does not exist or belongs to someone else."""


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _normalize_form_id(form_id: Optional[str]) -> Optional[str]:
    if not form_id or form_id == "all":
        return None
    return form_id


class AnalyticsService:
    """Reads feedback, enriches what is unclassified, then aggregates.

    Nothing is cached between calls; every query recomputes from the stored
    records. Each query leaves an audit entry, including failed ones.
    """

    def __init__(
        self,
        repository: FeedbackRepository,
        enricher: FeedbackEnricher,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.repository = repository
        self.enricher = enricher
        self.clock = clock

    async def get_analytics(
        self,
        user_id: Optional[str],
        form_id: Optional[str] = None,
        include_hourly: bool = False
    ) -> AnalyticsSnapshot:
        """Build the analytics snapshot.

        Args:
            user_id: Owner whose forms and feedback are in scope
            form_id: A single form id, or None / "all" for every form
            include_hourly: Attach hourly means to each sentiment trend point

        Returns:
            AnalyticsSnapshot

        Raises:
            InvalidQueryError: If user_id is missing
        """
        if not user_id:
            raise InvalidQueryError("User ID required")
        form_id = _normalize_form_id(form_id)

        try:
            snapshot = await self._build_snapshot(user_id, form_id, include_hourly)
        except Exception as e:
            logger.error(f"Analytics failed for user {user_id}: {e}")
            await self.repository.log_audit(
                AUDIT_ANALYTICS_FAILED,
                user_id=user_id,
                details={"error": str(e), "formId": form_id},
                severity="high"
            )
            raise

        await self.repository.log_audit(
            AUDIT_ANALYTICS_VIEWED,
            user_id=user_id,
            resource_type="analytics",
            resource_id=form_id or "all",
            details={"formId": form_id, "feedbackCount": snapshot.overview.total_feedback}
        )
        return snapshot

    async def _build_snapshot(
        self,
        user_id: str,
        form_id: Optional[str],
        include_hourly: bool
    ) -> AnalyticsSnapshot:
        forms = await self.repository.list_forms(user_id, form_id)
        records = await self.repository.list_feedback(user_id, form_id)
        records = await self.enricher.enrich(records)

        distribution = insights.sentiment_distribution(records)
        series = trends.aggregate(records, include_hourly=include_hourly)
        avg_score = insights.average_score(records)

        snapshot = AnalyticsSnapshot(
            overview=OverviewStats(
                total_feedback=len(records),
                average_sentiment_score=avg_score if avg_score is not None else 0.0,
                total_forms=len(forms),
                active_forms=sum(1 for form in forms if form.is_active)
            ),
            feedback_trends=series.feedback_trends,
            sentiment_trends=series.sentiment_trends,
            form_performance=form_performance.rank(records, forms),
            sentiment_distribution=distribution,
            ai_insights=insights.synthesize(records, distribution, len(records), now=self.clock())
        )

        logger.info(
            f"Analytics computed for user {user_id} (form={form_id or 'all'}): "
            f"{len(records)} feedback, {len(forms)} forms"
        )
        return snapshot

    async def get_insights(self, user_id: Optional[str], form_id: Optional[str] = None) -> InsightsResponse:
        """Insights over the most recent feedback of one owner.

        Raises:
            InvalidQueryError: If user_id is missing
            FormAccessError: If form_id is given but not owned by user_id
        """
        if not user_id:
            raise InvalidQueryError("User ID required")
        form_id = _normalize_form_id(form_id)

        if form_id:
            form = await self.repository.get_form(form_id)
            if form is None or form.user_id != user_id:
                raise FormAccessError("Form not found or not owned by user")

        try:
            records = await self.repository.list_feedback(
                user_id,
                form_id,
                newest_first=True,
                limit=config.INSIGHTS_FEEDBACK_LIMIT
            )
            records = await self.enricher.enrich(records)
            distribution = insights.sentiment_distribution(records)
            response = InsightsResponse(
                ai_insights=insights.synthesize(records, distribution, len(records), now=self.clock()),
                sentiment_distribution=distribution
            )
        except Exception as e:
            logger.error(f"Insights failed for user {user_id}: {e}")
            await self.repository.log_audit(
                AUDIT_INSIGHTS_FAILED,
                user_id=user_id,
                details={"error": str(e), "formId": form_id},
                severity="high"
            )
            raise

        await self.repository.log_audit(
            AUDIT_INSIGHTS_GENERATED,
            user_id=user_id,
            resource_type="analytics",
            resource_id=form_id or "all",
            details={"formId": form_id, "feedbackCount": len(records)}
        )
        return response
