"""Repository for quiz sessions, including the guarded status write."""

from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, select, update

from quiz_engine.models.session import QuizSession, SessionStatus
from quiz_engine.repositories.base import DocumentRepository


class SessionRepository(DocumentRepository[QuizSession]):
    model = QuizSession

    def find_by_token(self, session_token: str, user_id: str) -> QuizSession | None:
        return self.find_one(
            {"session_token": session_token, "user_id": user_id, "is_deleted": False}
        )

    def find_active(self, quiz_id: str, user_id: str) -> QuizSession | None:
        return self.find_one(
            {
                "quiz_id": quiz_id,
                "user_id": user_id,
                "status": SessionStatus.IN_PROGRESS,
                "is_deleted": False,
            }
        )

    def guarded_update(
        self,
        session_id: str,
        values: dict[str, Any],
        expected_status: SessionStatus = SessionStatus.IN_PROGRESS,
        conditions: tuple[ColumnElement[bool], ...] = (),
    ) -> bool:
        """
        Apply ``values`` only if the row still has ``expected_status``.

        This is the single conditional write every finalize path goes through.
        Two callers racing on the same session both issue it; exactly one sees a
        rowcount of 1.

        Extra ``conditions`` narrow the guard further, e.g. the deadline check of
        the timeout path.

        Returns:
            True if the row was updated, False if the status had already moved on
        """
        stmt = (
            update(QuizSession)
            .where(
                QuizSession.id == session_id,
                QuizSession.status == expected_status,
                *conditions,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        # Reload so callers holding the instance see the row as written
        self.db.get(QuizSession, session_id, populate_existing=True)
        return result.rowcount == 1

    def find_overdue(
        self,
        now: datetime,
        limit: int,
        after_id: str | None = None,
    ) -> list[QuizSession]:
        """In-progress sessions whose deadline has passed, keyset-paged by id."""
        stmt = select(QuizSession).where(
            QuizSession.status == SessionStatus.IN_PROGRESS,
            QuizSession.is_deleted.is_(False),
            QuizSession.expires_at.is_not(None),
            QuizSession.expires_at < now,
        )
        if after_id is not None:
            stmt = stmt.where(QuizSession.id > after_id)
        stmt = stmt.order_by(QuizSession.id).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def history(self, user_id: str, quiz_id: str | None = None) -> list[QuizSession]:
        filters: dict[str, Any] = {"user_id": user_id, "is_deleted": False}
        if quiz_id:
            filters["quiz_id"] = quiz_id
        return self.find(filters, sort={"created_at": "DESC", "started_at": "DESC"})

    def list_active(self, quiz_id: str | None = None) -> list[QuizSession]:
        filters: dict[str, Any] = {"status": SessionStatus.IN_PROGRESS, "is_deleted": False}
        if quiz_id:
            filters["quiz_id"] = quiz_id
        return self.find(filters, sort={"last_activity_at": "DESC"})
