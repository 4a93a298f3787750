"""Database models for forms, feedback and audit log storage."""
from datetime import datetime, UTC
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Index
from sqlalchemy.orm import declarative_base

from schemas import AuditLogEntry, FeedbackRecord, Form as FormSchema, SentimentVerdict

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as timezone-naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


class Form(Base):
    """Form database model."""

    __tablename__ = "forms"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_schema(self) -> FormSchema:
        return FormSchema(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            is_active=bool(self.is_active),
            created_at=self.created_at,
        )


class Feedback(Base):
    """Feedback database model.

    ``responses`` keeps the submitted field order. ``sentiment`` stays NULL
    until enrichment writes it, and is never overwritten afterwards.
    """

    __tablename__ = "feedback"
    __table_args__ = (Index("ix_feedback_user_created", "user_id", "created_at"),)

    id = Column(String(64), primary_key=True)
    form_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    responses = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    sentiment = Column(JSON(none_as_null=True), nullable=True)

    def to_record(self) -> FeedbackRecord:
        return FeedbackRecord(
            id=self.id,
            form_id=self.form_id,
            user_id=self.user_id,
            responses=dict(self.responses or {}),
            created_at=self.created_at,
            sentiment=SentimentVerdict(**self.sentiment) if self.sentiment else None,
        )


class AuditLog(Base):
    """Audit trail of analytics queries and their failures."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)
    action = Column(String(100), nullable=False)
    user_id = Column(String(64), nullable=True, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    severity = Column(String(10), nullable=False, default="low")

    def to_entry(self) -> AuditLogEntry:
        return AuditLogEntry(
            timestamp=self.timestamp,
            action=self.action,
            user_id=self.user_id,
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            details=dict(self.details or {}),
            severity=self.severity,
        )
