"""Quiz and question models (authored elsewhere, read by the session engine)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from quiz_engine.db.base import Base
from quiz_engine.models.types import JSONType, new_id
from quiz_engine.schemas.quiz_settings import QuizSettings


class Quiz(Base):
    """A quiz as authored by course content."""

    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Versioned QuizSettings payload
    settings_json = Column(JSONType, nullable=False, default=dict)

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now(), nullable=True)

    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
    )

    @property
    def settings(self) -> QuizSettings:
        return QuizSettings.from_stored(self.settings_json)


class QuizQuestion(Base):
    """A single question with one canonical correct answer."""

    __tablename__ = "quiz_questions"

    id = Column(String(36), primary_key=True, default=new_id)
    quiz_id = Column(
        String(36),
        ForeignKey("quizzes.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )

    question_text = Column(Text, nullable=False)
    question_type = Column(String(50), nullable=False, default="multiple_choice")
    options = Column(JSONType, nullable=False, default=list)  # ["A", "B", ...]
    correct_answer = Column(Text, nullable=False)  # compared verbatim, no normalization
    position = Column(Integer, nullable=False, default=0)  # authoring order

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    quiz = relationship("Quiz", back_populates="questions")

    __table_args__ = (Index("ix_quiz_questions_quiz_position", "quiz_id", "position"),)
