"""Tests for lazy expiry, the expiry sweep and finalize idempotency."""

from datetime import timedelta

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from quiz_engine.core.app_exceptions import AlreadyCompleted, SessionExpired
from quiz_engine.models.session import QuizSession, QuizSubmission, SessionStatus
from quiz_engine.services.finalizer import TIMEOUT_FEEDBACK
from quiz_engine.services.timeout_enforcer import is_overdue
from tests.helpers.seed import START, create_test_quiz, question_ids


@pytest.fixture
def timed_quiz(db):
    return create_test_quiz(db, time_limit_minutes=1)


def _session(service, token: str, user_id: str = "learner-1") -> QuizSession:
    return service.sessions.find_by_token(token, user_id)


# ============================================================================
# Lazy expiry
# ============================================================================


def test_answer_after_deadline_auto_submits_saved_answers(service, db, timed_quiz, clock):
    ids = question_ids(timed_quiz)
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(seconds=10)
    service.submit_answer(token, "learner-1", ids[0], "A")
    clock.advance(seconds=51)

    with pytest.raises(SessionExpired) as exc_info:
        service.submit_answer(token, "learner-1", ids[1], "B")

    error = exc_info.value
    assert error.details["status"] == "expired"
    assert error.details["auto_submitted"] is True
    assert error.details["score"] == 1
    assert error.details["total_questions"] == 3
    assert error.details["percentage"] == 33.33
    assert "auto-submitted" in error.message

    session = _session(service, token)
    assert session.status == SessionStatus.EXPIRED
    assert session.auto_submitted is True
    assert session.completed_at == START + timedelta(seconds=61)
    # The rejected answer was never recorded
    assert session.answers_count == 1

    result = service.get_results(token, "learner-1")
    assert result.status == SessionStatus.EXPIRED
    assert result.score == 1
    assert result.auto_submitted is True
    assert result.time_taken_seconds == 61
    assert result.submission.feedback == TIMEOUT_FEEDBACK
    assert result.submission.meta.timeout_submission is True
    assert result.submission.meta.answered_questions == 1


def test_operation_exactly_at_deadline_is_allowed(service, timed_quiz, clock):
    ids = question_ids(timed_quiz)
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(seconds=60)

    snapshot = service.submit_answer(token, "learner-1", ids[0], "A")

    assert snapshot.session.status == SessionStatus.IN_PROGRESS
    assert snapshot.time_remaining_seconds == 0


def test_complete_after_deadline_expires_instead_of_completing(service, db, timed_quiz, clock):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(minutes=2)

    with pytest.raises(SessionExpired):
        service.complete(token, "learner-1")

    assert _session(service, token).status == SessionStatus.EXPIRED
    assert db.query(QuizSubmission).count() == 1


def test_every_operation_on_overdue_session_raises_session_expired(service, timed_quiz, clock):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(minutes=5)

    with pytest.raises(SessionExpired):
        service.next_question(token, "learner-1")
    # Already expired: the same error, no second submission
    with pytest.raises(SessionExpired) as exc_info:
        service.get_session(token, "learner-1")
    assert exc_info.value.details["auto_submitted"] is True
    with pytest.raises(SessionExpired):
        service.abandon(token, "learner-1")
    with pytest.raises(SessionExpired):
        service.extend(token, "learner-1", 5)


def test_results_of_overdue_session_auto_submit_instead_of_failing(service, timed_quiz, clock):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(minutes=2)

    result = service.get_results(token, "learner-1")

    assert result.status == SessionStatus.EXPIRED
    assert result.auto_submitted is True
    assert result.score == 0


def test_restart_after_timeout_counts_expired_attempt(service, timed_quiz, clock):
    service.start(timed_quiz.id, "learner-1")
    clock.advance(minutes=2)

    with pytest.raises(AlreadyCompleted):
        service.start(timed_quiz.id, "learner-1")


def test_restart_after_timeout_with_attempts_left_starts_fresh(service, db, clock):
    quiz = create_test_quiz(db, time_limit_minutes=1, max_attempts=2)
    first = service.start(quiz.id, "learner-1").session
    clock.advance(minutes=2)

    second = service.start(quiz.id, "learner-1").session

    assert second.id != first.id
    assert second.expires_at == clock() + timedelta(minutes=1)
    assert _session(service, first.session_token).status == SessionStatus.EXPIRED


def test_extended_session_does_not_expire_at_original_deadline(service, timed_quiz, clock):
    ids = question_ids(timed_quiz)
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    service.extend(token, "learner-1", 2)
    clock.advance(seconds=90)

    snapshot = service.submit_answer(token, "learner-1", ids[0], "A")

    assert snapshot.session.status == SessionStatus.IN_PROGRESS


def test_untimed_session_never_expires(service, db, clock):
    quiz = create_test_quiz(db)
    token = service.start(quiz.id, "learner-1").session.session_token
    clock.advance(days=30)

    assert service.get_session(token, "learner-1").session.status == SessionStatus.IN_PROGRESS


def test_is_overdue_is_strictly_after_deadline(service, timed_quiz):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)

    assert not is_overdue(session, session.expires_at)
    assert is_overdue(session, session.expires_at + timedelta(microseconds=1))


# ============================================================================
# Finalize idempotency
# ============================================================================


def test_complete_and_timeout_racing_produce_one_submission(service, db, timed_quiz):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)

    first = service.finalizer.finalize(session, SessionStatus.COMPLETED)
    second = service.enforcer.finalize_on_timeout(session)

    assert first.created is True
    assert second.created is False
    assert second.submission.id == first.submission.id
    assert second.session.status == SessionStatus.COMPLETED
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 1


def test_finalize_with_stale_read_loses_guarded_write(service, db, timed_quiz, monkeypatch):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)
    winner = service.finalizer.finalize(session, SessionStatus.COMPLETED)

    # A second caller that read the row before the winner committed
    set_committed_value(session, "status", SessionStatus.IN_PROGRESS)
    monkeypatch.setattr(db, "refresh", lambda instance, *args, **kwargs: None)

    loser = service.finalizer.finalize(session, SessionStatus.EXPIRED)

    assert loser.created is False
    assert loser.submission.id == winner.submission.id
    assert loser.session.status == SessionStatus.COMPLETED
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 1


def test_guarded_update_refuses_terminal_session(service, timed_quiz):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)
    service.complete(token, "learner-1")

    assert service.sessions.guarded_update(session.id, {"current_question_index": 2}) is False
    assert session.current_question_index == 0


def test_finalize_rejects_non_scored_status(service, timed_quiz):
    token = service.start(timed_quiz.id, "learner-1").session.session_token

    with pytest.raises(ValueError):
        service.finalizer.finalize(_session(service, token), SessionStatus.ABANDONED)


def test_timeout_finalize_before_deadline_is_a_no_op(service, db, timed_quiz, clock):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)
    clock.advance(seconds=30)

    outcome = service.enforcer.finalize_on_timeout(session)

    assert outcome.created is False
    assert outcome.submission is None
    assert outcome.session.status == SessionStatus.IN_PROGRESS
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 0


def test_timeout_finalize_with_stale_deadline_loses_guarded_write(service, db, timed_quiz, clock, monkeypatch):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    session = _session(service, token)
    original_deadline = session.expires_at
    clock.advance(minutes=5)
    service.sessions.guarded_update(session.id, {"expires_at": clock() + timedelta(minutes=30)})
    db.commit()
    db.refresh(session)

    # A caller that read the row before the extension committed
    set_committed_value(session, "expires_at", original_deadline)
    monkeypatch.setattr(db, "refresh", lambda instance, *args, **kwargs: None)

    outcome = service.enforcer.finalize_on_timeout(session)

    assert outcome.created is False
    assert outcome.submission is None
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.expires_at == START + timedelta(minutes=35)
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 0


def test_expiry_check_losing_to_complete_raises_already_completed(service, db, timed_quiz, clock, monkeypatch):
    ids = question_ids(timed_quiz)
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(minutes=5)
    original_check = service.enforcer.check

    def complete_first(session):
        service.finalizer.finalize(session, SessionStatus.COMPLETED)
        db.refresh(session)
        # The check read the row before the completion committed
        set_committed_value(session, "status", SessionStatus.IN_PROGRESS)
        monkeypatch.setattr(db, "refresh", lambda instance, *args, **kwargs: None)
        return original_check(session)

    monkeypatch.setattr(service.enforcer, "check", complete_first)

    with pytest.raises(AlreadyCompleted):
        service.submit_answer(token, "learner-1", ids[0], "A")

    monkeypatch.undo()
    session = _session(service, token)
    assert session.status == SessionStatus.COMPLETED
    assert session.auto_submitted is False
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 1


# ============================================================================
# Sweep
# ============================================================================


def test_sweep_finalizes_only_overdue_sessions(service, db, timed_quiz, clock):
    untimed = create_test_quiz(db, title="Untimed")
    long_quiz = create_test_quiz(db, title="Long", time_limit_minutes=60)

    overdue_a = service.start(timed_quiz.id, "learner-1").session
    overdue_b = service.start(timed_quiz.id, "learner-2").session
    running = service.start(long_quiz.id, "learner-1").session
    open_ended = service.start(untimed.id, "learner-1").session
    service.submit_answer(overdue_a.session_token, "learner-1", question_ids(timed_quiz)[0], "A")
    clock.advance(minutes=5)

    outcomes = service.sweep_expired()

    assert {outcome.session_id for outcome in outcomes} == {overdue_a.id, overdue_b.id}
    assert all(outcome.result.auto_submitted for outcome in outcomes)
    assert all(not outcome.already_finalized for outcome in outcomes)
    by_id = {outcome.session_id: outcome for outcome in outcomes}
    assert by_id[overdue_a.id].result.score == 1
    assert by_id[overdue_a.id].user_id == "learner-1"

    assert service.sessions.find_by_id(overdue_a.id).status == SessionStatus.EXPIRED
    assert service.sessions.find_by_id(running.id).status == SessionStatus.IN_PROGRESS
    assert service.sessions.find_by_id(open_ended.id).status == SessionStatus.IN_PROGRESS

    # Nothing left to do on a second pass
    assert service.sweep_expired() == []
    assert db.query(QuizSubmission).count() == 2


def test_sweep_pages_through_batches(service, db, timed_quiz, clock):
    service.enforcer.batch_size = 2
    sessions = [service.start(timed_quiz.id, f"learner-{i}").session for i in range(5)]
    clock.advance(minutes=5)

    outcomes = service.sweep_expired()

    assert {outcome.session_id for outcome in outcomes} == {s.id for s in sessions}


def test_sweep_continues_past_a_failing_session(service, db, timed_quiz, clock, monkeypatch):
    good = service.start(timed_quiz.id, "learner-1").session
    bad = service.start(timed_quiz.id, "learner-2").session
    clock.advance(minutes=5)

    original = service.enforcer._sweep_one

    def flaky(session_id):
        if session_id == bad.id:
            raise RuntimeError("database hiccup")
        return original(session_id)

    monkeypatch.setattr(service.enforcer, "_sweep_one", flaky)

    outcomes = service.sweep_expired()

    assert [outcome.session_id for outcome in outcomes] == [good.id]
    assert service.sessions.find_by_id(good.id).status == SessionStatus.EXPIRED
    assert service.sessions.find_by_id(bad.id).status == SessionStatus.IN_PROGRESS


def test_sweep_after_lazy_expiry_is_a_no_op(service, db, timed_quiz, clock):
    token = service.start(timed_quiz.id, "learner-1").session.session_token
    clock.advance(minutes=5)
    with pytest.raises(SessionExpired):
        service.get_session(token, "learner-1")

    assert service.sweep_expired() == []
    assert db.query(QuizSubmission).count() == 1


def test_sweep_skips_session_extended_after_selection(service, db, timed_quiz, clock, monkeypatch):
    session = service.start(timed_quiz.id, "learner-1").session
    clock.advance(minutes=5)
    original = service.sessions.find_overdue

    def select_then_extend(now, limit, after_id=None):
        batch = original(now, limit, after_id=after_id)
        for selected in batch:
            service.sessions.guarded_update(
                selected.id, {"expires_at": selected.expires_at + timedelta(minutes=30)}
            )
        db.commit()
        return batch

    monkeypatch.setattr(service.sessions, "find_overdue", select_then_extend)

    assert service.sweep_expired() == []
    assert service.sessions.find_by_id(session.id).status == SessionStatus.IN_PROGRESS
    assert db.query(QuizSubmission).filter_by(session_id=session.id).count() == 0
