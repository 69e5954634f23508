from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import sessionmaker

from reviseflow.domain.entities import RevisionEntity, TaskEntity, UserEntity
from reviseflow.domain.enums import RevisionStatus, TaskPriority
from reviseflow.domain.errors import StaleTaskError
from reviseflow.domain.filters import SORT_FIELDS, TaskFilters

from .models import RevisionModel, TaskModel, UserModel, utcnow

STATUS_DONE = RevisionStatus.DONE.value
STATUS_PENDING = RevisionStatus.PENDING.value


def _split_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(tag for tag in raw.split(",") if tag)


def _revision_to_entity(model: RevisionModel) -> RevisionEntity:
    return RevisionEntity(
        id=model.revision_id,
        scheduled_date=model.scheduled_date,
        status=RevisionStatus(model.status),
        completed_at=model.completed_at,
        reminders_sent=model.reminders_sent,
        last_reminder_sent=model.last_reminder_sent,
    )


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        notes=model.notes,
        completed_date=model.completed_date,
        revisions=tuple(_revision_to_entity(r) for r in model.revisions),
        tags=_split_tags(model.tags),
        priority=TaskPriority(model.priority),
        is_archived=model.is_archived,
        created_at=model.created_at,
        updated_at=model.updated_at,
        version=model.version,
    )


def _user_to_entity(model: UserModel) -> UserEntity:
    return UserEntity(
        id=model.id,
        email=model.email,
        timezone=model.timezone,
        email_notifications=model.email_notifications,
        is_verified=model.is_verified,
    )


def _revision_rows(task_id: int | None, revisions: tuple[RevisionEntity, ...]) -> list[RevisionModel]:
    return [
        RevisionModel(
            task_id=task_id,
            revision_id=revision.id,
            position=position,
            scheduled_date=revision.scheduled_date,
            status=revision.status.value,
            completed_at=revision.completed_at,
            reminders_sent=revision.reminders_sent,
            last_reminder_sent=revision.last_reminder_sent,
        )
        for position, revision in enumerate(revisions)
    ]


def _apply_filters(stmt, user_id: int, filters: TaskFilters) -> object:
    stmt = stmt.where(TaskModel.user_id == user_id, TaskModel.is_archived == filters.archived)
    if filters.start_date:
        stmt = stmt.where(TaskModel.completed_date >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(TaskModel.completed_date <= filters.end_date)
    return stmt


def _order_by(sort_by: str):
    descending = sort_by.startswith("-")
    name = sort_by.lstrip("-")
    if name not in SORT_FIELDS:
        name, descending = "completed_date", True
    column = getattr(TaskModel, name)
    return column.desc() if descending else column.asc()


class TaskRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_tasks(self, user_id: int, filters: TaskFilters) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel)
            stmt = _apply_filters(stmt, user_id, filters)
            stmt = stmt.order_by(_order_by(filters.sort_by), TaskModel.id.asc())
            stmt = stmt.offset(filters.offset).limit(filters.limit)
            return [_to_entity(task) for task in session.scalars(stmt)]

    def count_tasks(self, user_id: int, filters: TaskFilters) -> int:
        with self._session_factory() as session:
            stmt = _apply_filters(select(func.count()).select_from(TaskModel), user_id, filters)
            return session.scalar(stmt) or 0

    def list_active_tasks(self, user_id: int) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(TaskModel.user_id == user_id, TaskModel.is_archived.is_(False))
                .order_by(TaskModel.id.asc())
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def get_task(self, task_id: int, user_id: int | None = None) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task or (user_id is not None and task.user_id != user_id):
                return None
            return _to_entity(task)

    def create_task(self, task: TaskEntity) -> TaskEntity:
        with self._session_factory() as session:
            model = TaskModel(
                user_id=task.user_id,
                title=task.title,
                notes=task.notes,
                completed_date=task.completed_date,
                tags=",".join(task.tags),
                priority=task.priority.value,
                is_archived=task.is_archived,
                version=1,
            )
            model.revisions = _revision_rows(None, task.revisions)
            session.add(model)
            session.commit()
            session.refresh(model)
            return _to_entity(model)

    def replace_task(self, task: TaskEntity) -> TaskEntity:
        """Rewrite the task and all of its revisions if ``task.version`` is current."""
        with self._session_factory() as session:
            result = session.execute(
                update(TaskModel)
                .where(TaskModel.id == task.id, TaskModel.version == task.version)
                .values(
                    title=task.title,
                    notes=task.notes,
                    completed_date=task.completed_date,
                    tags=",".join(task.tags),
                    priority=task.priority.value,
                    is_archived=task.is_archived,
                    version=TaskModel.version + 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                raise StaleTaskError(task.id, task.version)
            session.execute(delete(RevisionModel).where(RevisionModel.task_id == task.id))
            session.add_all(_revision_rows(task.id, task.revisions))
            session.commit()
            return _to_entity(session.get(TaskModel, task.id, populate_existing=True))

    def set_archived(self, task_id: int, user_id: int, archived: bool) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task or task.user_id != user_id:
                return None
            task.is_archived = archived
            task.version = task.version + 1
            session.commit()
            session.refresh(task)
            return _to_entity(task)

    def delete_task(self, task_id: int, user_id: int) -> bool:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task or task.user_id != user_id:
                return False
            session.delete(task)
            session.commit()
            return True

    def get_stats(
        self,
        user_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, int]:
        with self._session_factory() as session:
            task_filter = [TaskModel.user_id == user_id, TaskModel.is_archived.is_(False)]
            if start:
                task_filter.append(TaskModel.completed_date >= start)
            if end:
                task_filter.append(TaskModel.completed_date <= end)

            total_tasks = session.scalar(
                select(func.count()).select_from(TaskModel).where(*task_filter)
            ) or 0
            rows = session.execute(
                select(RevisionModel.status, func.count())
                .join(TaskModel, TaskModel.id == RevisionModel.task_id)
                .where(*task_filter)
                .group_by(RevisionModel.status)
            ).all()

        by_status = {status: count for status, count in rows}
        total_revisions = sum(by_status.values())
        completed = by_status.get(STATUS_DONE, 0)
        return {
            "total_tasks": total_tasks,
            "total_revisions": total_revisions,
            "completed_revisions": completed,
            "pending_revisions": by_status.get(STATUS_PENDING, 0),
            "completion_rate": round(completed * 100 / total_revisions) if total_revisions else 0,
        }

    def count_created_since(self, user_id: int, since: datetime) -> int:
        with self._session_factory() as session:
            return session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(TaskModel.user_id == user_id, TaskModel.created_at >= since)
            ) or 0

    def count_completed_revisions_since(self, user_id: int, since: datetime) -> int:
        with self._session_factory() as session:
            return session.scalar(
                select(func.count())
                .select_from(RevisionModel)
                .join(TaskModel, TaskModel.id == RevisionModel.task_id)
                .where(
                    TaskModel.user_id == user_id,
                    RevisionModel.status == STATUS_DONE,
                    RevisionModel.completed_at.is_not(None),
                    RevisionModel.completed_at >= since,
                )
            ) or 0


class UserRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_reminder_candidates(self) -> list[UserEntity]:
        with self._session_factory() as session:
            stmt = (
                select(UserModel)
                .where(UserModel.is_verified.is_(True), UserModel.email_notifications.is_(True))
                .order_by(UserModel.id.asc())
            )
            return [_user_to_entity(user) for user in session.scalars(stmt)]

    def purge_expired_tokens(self, now: datetime) -> int:
        with self._session_factory() as session:
            verification = session.execute(
                update(UserModel)
                .where(
                    UserModel.email_verification_expires.is_not(None),
                    UserModel.email_verification_expires < now,
                )
                .values(email_verification_token=None, email_verification_expires=None)
                .execution_options(synchronize_session=False)
            )
            reset = session.execute(
                update(UserModel)
                .where(
                    UserModel.password_reset_expires.is_not(None),
                    UserModel.password_reset_expires < now,
                )
                .values(password_reset_token=None, password_reset_expires=None)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return (verification.rowcount or 0) + (reset.rowcount or 0)
