from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UtcDateTime(TypeDecorator):
    """Stores naive UTC and hands back aware UTC datetimes on every backend."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(320), nullable=False, unique=True)
    timezone = Column(String(64), nullable=False, default="Asia/Kolkata")
    email_notifications = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False, index=True)
    email_verification_token = Column(String(128), nullable=True, index=True)
    email_verification_expires = Column(UtcDateTime, nullable=True)
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires = Column(UtcDateTime, nullable=True)
    created_at = Column(UtcDateTime, nullable=False, default=utcnow)
    updated_at = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TaskModel(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_archived_completed", "user_id", "is_archived", "completed_date"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    notes = Column(Text, nullable=True)
    completed_date = Column(UtcDateTime, nullable=False)
    tags = Column(Text, nullable=False, default="")
    priority = Column(String(10), nullable=False, default="medium")
    is_archived = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(UtcDateTime, nullable=False, default=utcnow)
    updated_at = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    revisions = relationship(
        "RevisionModel",
        order_by="RevisionModel.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )


class RevisionModel(Base):
    __tablename__ = "revisions"
    __table_args__ = (
        UniqueConstraint("task_id", "revision_id", name="uq_revisions_task_revision"),
    )

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    revision_id = Column(String(32), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    scheduled_date = Column(UtcDateTime, nullable=False, index=True)
    status = Column(String(10), nullable=False, default="pending")
    completed_at = Column(UtcDateTime, nullable=True)
    reminders_sent = Column(Integer, nullable=False, default=0)
    last_reminder_sent = Column(UtcDateTime, nullable=True)
