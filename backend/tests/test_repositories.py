"""Tests for the generic repository surface."""

from datetime import timedelta

from quiz_engine.repositories import SessionRepository
from tests.helpers.seed import START, create_test_quiz


def _start_many(service, db, clock, count: int):
    sessions = []
    for i in range(count):
        quiz = create_test_quiz(db, title=f"Quiz {i}")
        sessions.append(service.start(quiz.id, "learner-1").session)
        clock.advance(minutes=1)
    return sessions


def test_find_sorts_skips_and_limits(service, db, clock):
    sessions = _start_many(service, db, clock, 4)
    repo = SessionRepository(db)

    rows = repo.find({"user_id": "learner-1"}, sort={"started_at": "DESC"}, limit=2, skip=1)

    assert [row.id for row in rows] == [sessions[2].id, sessions[1].id]


def test_find_one_returns_none_without_match(db):
    assert SessionRepository(db).find_one({"user_id": "nobody"}) is None


def test_update_by_id(service, db, clock):
    session = _start_many(service, db, clock, 1)[0]
    repo = SessionRepository(db)

    updated = repo.update_by_id(session.id, {"last_activity_at": START + timedelta(hours=1)})

    assert updated.last_activity_at == START + timedelta(hours=1)
    assert repo.update_by_id("missing", {"answers_count": 3}) is None


def test_find_overdue_pages_by_id(service, db, clock):
    quiz = create_test_quiz(db, time_limit_minutes=1)
    ids = sorted(service.start(quiz.id, f"learner-{i}").session.id for i in range(3))
    repo = SessionRepository(db)
    now = clock() + timedelta(minutes=2)

    first = repo.find_overdue(now, limit=2)
    rest = repo.find_overdue(now, limit=2, after_id=first[-1].id)

    assert [row.id for row in first] == ids[:2]
    assert [row.id for row in rest] == ids[2:]
    assert repo.find_overdue(clock(), limit=10) == []
