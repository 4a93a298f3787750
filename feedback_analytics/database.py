"""Database connection and feedback/form persistence."""
import logging
import uuid
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from models import AuditLog, Base, Feedback, Form, utcnow
from schemas import AuditLogEntry, FeedbackRecord, Form as FormSchema, SentimentVerdict

logger = logging.getLogger(__name__)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a timestamp to timezone-naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


class Database:
    """Owns the async engine and session factory.

    Constructed by the process entrypoint and disposed on shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite"):
            # StaticPool for SQLite to avoid threading issues
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            engine_kwargs["poolclass"] = StaticPool

        self.url = url
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def init_db(self) -> None:
        """Initialize database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    def session(self) -> AsyncSession:
        """Get database session as context manager."""
        return self.session_factory()


class FeedbackRepository:
    """Access to the ``forms``, ``feedback`` and ``audit_logs`` tables.

    Every method opens its own short-lived session, so one repository can be
    shared by concurrent requests.
    """

    def __init__(self, database: Database):
        self.database = database

    async def list_forms(self, user_id: str, form_id: Optional[str] = None) -> List[FormSchema]:
        """Forms owned by ``user_id``, optionally narrowed to one form id."""
        query = select(Form).where(Form.user_id == user_id)
        if form_id:
            query = query.where(Form.id == form_id)
        query = query.order_by(Form.created_at, Form.id)

        async with self.database.session() as db:
            result = await db.execute(query)
            return [form.to_schema() for form in result.scalars()]

    async def get_form(self, form_id: str) -> Optional[FormSchema]:
        async with self.database.session() as db:
            form = await db.get(Form, form_id)
            return form.to_schema() if form else None

    async def list_feedback(
        self,
        user_id: str,
        form_id: Optional[str] = None,
        newest_first: bool = False,
        limit: Optional[int] = None
    ) -> List[FeedbackRecord]:
        """Feedback owned by ``user_id`` sorted by submission time.

        Args:
            user_id: Form owner
            form_id: Restrict to a single form
            newest_first: Sort descending instead of ascending
            limit: Maximum number of records

        Returns:
            List of FeedbackRecord
        """
        query = select(Feedback).where(Feedback.user_id == user_id)
        if form_id:
            query = query.where(Feedback.form_id == form_id)
        if newest_first:
            query = query.order_by(Feedback.created_at.desc(), Feedback.id.desc())
        else:
            query = query.order_by(Feedback.created_at, Feedback.id)
        if limit:
            query = query.limit(limit)

        async with self.database.session() as db:
            result = await db.execute(query)
            return [row.to_record() for row in result.scalars()]

    async def get_feedback(self, feedback_id: str) -> Optional[FeedbackRecord]:
        async with self.database.session() as db:
            feedback = await db.get(Feedback, feedback_id)
            return feedback.to_record() if feedback else None

    async def set_sentiment(self, feedback_id: str, verdict: SentimentVerdict) -> bool:
        """Attach a verdict to a record that has none yet.

        Returns:
            True if this call wrote the verdict, False if the record already
            had one (or does not exist)
        """
        statement = (
            update(Feedback)
            .where(Feedback.id == feedback_id, Feedback.sentiment.is_(None))
            .values(sentiment=verdict.model_dump(mode="json"))
        )
        async with self.database.session() as db:
            result = await db.execute(statement)
            await db.commit()
            return result.rowcount == 1

    async def save_form(
        self,
        user_id: str,
        title: str,
        is_active: bool = True,
        form_id: Optional[str] = None
    ) -> FormSchema:
        form = Form(
            id=form_id or f"form_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            title=title,
            is_active=is_active,
            created_at=utcnow()
        )
        async with self.database.session() as db:
            db.add(form)
            await db.commit()
            await db.refresh(form)
            return form.to_schema()

    async def save_feedback(
        self,
        form_id: str,
        user_id: str,
        responses: Dict[str, Any],
        created_at: Optional[datetime] = None,
        sentiment: Optional[SentimentVerdict] = None
    ) -> FeedbackRecord:
        """Store a raw submission.

        Args:
            form_id: Form the submission belongs to
            user_id: Owner of that form
            responses: Submitted field values in form order
            created_at: Submission time (defaults to now)
            sentiment: Pre-computed verdict, normally left empty

        Returns:
            The stored FeedbackRecord
        """
        feedback = Feedback(
            id=f"feedback_{uuid.uuid4().hex[:16]}",
            form_id=form_id,
            user_id=user_id,
            responses=responses,
            created_at=to_naive_utc(created_at) if created_at else utcnow(),
            sentiment=sentiment.model_dump(mode="json") if sentiment else None
        )
        async with self.database.session() as db:
            db.add(feedback)
            await db.commit()
            await db.refresh(feedback)
            logger.debug(f"Stored feedback {feedback.id} for form {form_id}")
            return feedback.to_record()

    async def log_audit(
        self,
        action: str,
        user_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: str = "low"
    ) -> None:
        """Append an audit entry.

        Never raises: a failed write is logged and the caller carries on.
        """
        entry = AuditLog(
            timestamp=utcnow(),
            action=action,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
            severity=severity
        )
        try:
            async with self.database.session() as db:
                db.add(entry)
                await db.commit()
        except Exception as e:
            logger.error(f"Failed to write audit log '{action}': {e}")

    async def list_audit_logs(self, user_id: Optional[str] = None, limit: int = 50) -> List[AuditLogEntry]:
        """Audit entries, newest first."""
        query = select(AuditLog)
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        query = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit)

        async with self.database.session() as db:
            result = await db.execute(query)
            return [row.to_entry() for row in result.scalars()]
