"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from quiz_engine.db.session import get_db
from quiz_engine.services.session_engine import QuizSessionService


def get_current_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """
    Identity of the caller.

    Authentication happens upstream; the gateway forwards the learner's id in
    ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header missing",
        )
    return x_user_id.strip()


def get_session_service(db: Session = Depends(get_db)) -> QuizSessionService:
    return QuizSessionService(db)


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
SessionService = Annotated[QuizSessionService, Depends(get_session_service)]
