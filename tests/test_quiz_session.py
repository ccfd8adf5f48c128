from datetime import timedelta
import threading

import pytest

from quizmaster.errors import AnswerWriteError, QuizLoadError, SessionStateError, SubmissionError
from quizmaster.services import QuizSession, SessionState
from quizmaster.services.quiz_session import Countdown, SessionRegistry
from quizmaster.utils import now_utc


def start(repository, **kwargs):
    kwargs.setdefault('ip_address', '10.0.0.1')
    return QuizSession(repository, 'KEY12345', 'Arnold', **kwargs).load()


class TestLoad:
    def test_opens_exactly_one_attempt(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5))
        session = start(repository)

        assert session.state is SessionState.IN_PROGRESS
        assert len(repository.attempts) == 1
        assert session.attempt_id in repository.attempts
        assert session.position == 0
        assert session.total_questions == 2

    def test_unknown_access_key(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1))
        session = QuizSession(repository, 'nope', 'Arnold')
        with pytest.raises(QuizLoadError):
            session.load()
        assert session.state is SessionState.LOADING
        assert repository.attempts == {}

    def test_quiz_without_questions(self, fake_repository_factory):
        repository = fake_repository_factory([])
        with pytest.raises(QuizLoadError):
            start(repository)

    def test_quiz_outside_window(self, fake_repository_factory, questions):
        repository = fake_repository_factory(
            questions(1), start_time=now_utc() + timedelta(hours=1)
        )
        with pytest.raises(QuizLoadError):
            start(repository)

    def test_ip_restriction_blocks_second_attempt(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1), ip_restriction=True)
        start(repository)
        with pytest.raises(QuizLoadError):
            start(repository)

    def test_load_twice_is_rejected(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1)))
        with pytest.raises(SessionStateError):
            session.load()

    def test_questions_do_not_expose_answer_key(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1)))
        assert 'correct_answer' not in session.snapshot()['question']


class TestAnswering:
    def test_answer_advances(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1, 1))
        session = start(repository)

        result = session.record_answer('a')

        assert result['advanced'] is True
        assert session.position == 1
        assert repository.answers == {(session.attempt_id, 1): 'a'}

    def test_progress(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1, 1, 1, 1)))
        assert session.progress == 0.25
        session.record_answer('a')
        assert session.progress == 0.5

    def test_last_answer_with_instant_results_submits(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5), show_instant_results=True)
        session = start(repository)

        session.record_answer('a')
        result = session.record_answer('a')

        assert result['submission'] == {'score': 100, 'show_results': True}
        assert session.state is SessionState.COMPLETED
        assert session.score == 100
        assert repository.finalize_calls == 1

    def test_last_answer_without_instant_results_waits(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5))
        session = start(repository)

        session.record_answer('a')
        result = session.record_answer('b')

        assert result['submission'] is None
        assert session.state is SessionState.IN_PROGRESS
        assert session.position == 1
        assert repository.finalize_calls == 0

    def test_revisit_overwrites_single_answer(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5))
        session = start(repository)

        session.record_answer('a')
        session.go_back()
        assert session.answer_for(session.current_question) == 'a'
        session.record_answer('b')

        stored = [k for k in repository.answers if k == (session.attempt_id, 1)]
        assert len(stored) == 1
        assert repository.answers[(session.attempt_id, 1)] == 'b'
        assert session.position == 1

    def test_write_failure_keeps_position(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1))
        session = start(repository)
        repository.fail_answers = True

        with pytest.raises(AnswerWriteError):
            session.record_answer('a')

        assert session.position == 0
        assert session.answers == {}
        assert session.state is SessionState.IN_PROGRESS

    def test_answer_after_close_is_rejected(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1, 1)))
        session.close()
        with pytest.raises(SessionStateError):
            session.record_answer('a')

    def test_close_during_write_leaves_state_alone(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1))
        session = start(repository)
        original_save = repository.save_answer

        def save_then_navigate_away(*args):
            original_save(*args)
            session.close()

        repository.save_answer = save_then_navigate_away
        result = session.record_answer('a')

        assert result['advanced'] is False
        assert session.position == 0
        assert session.answers == {}


class TestNavigation:
    def test_back_at_first_question_stays(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1, 1)))
        assert session.go_back() == 0

    def test_next_requires_answer(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1, 1)))
        with pytest.raises(SessionStateError):
            session.go_next()

    def test_back_then_next_keeps_answer(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1, 1))
        session = start(repository)
        session.record_answer('a')
        session.go_back()

        assert session.go_next() == 1
        assert repository.answer_writes == 1


class TestSubmit:
    def test_submit_sets_end_once(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5))
        session = start(repository)
        session.record_answer('a')

        first = session.submit()
        second = session.submit()

        assert first == {'score': None, 'show_results': False}
        assert second is None
        assert repository.finalize_calls == 1
        assert repository.attempts[session.attempt_id].end_time is not None

    def test_submit_while_in_flight_is_noop(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1))
        session = start(repository)
        nested = []
        repository.during_finalize = lambda: nested.append(session.submit(auto=True))

        session.submit()

        assert nested == [None]
        assert repository.finalize_calls == 1
        assert session.state is SessionState.COMPLETED

    def test_failed_submission_can_be_retried(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1))
        session = start(repository)
        repository.fail_submit = True

        with pytest.raises(SubmissionError):
            session.submit()
        assert session.state is SessionState.IN_PROGRESS

        repository.fail_submit = False
        assert session.submit() is not None
        assert session.state is SessionState.COMPLETED

    def test_answers_rejected_after_submit(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1, 1)))
        session.submit()
        with pytest.raises(SessionStateError):
            session.record_answer('a')

    def test_score_read_back_with_instant_results(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5), show_instant_results=True)
        session = start(repository)
        session.record_answer('a')
        session.record_answer('b')

        assert session.score == 50


class TestCountdown:
    def test_no_time_limit_no_countdown(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1)))
        assert session.countdown is None
        assert session.remaining_seconds is None
        assert session.tick() is False

    def test_one_minute_expires_after_sixty_ticks(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1), time_limit=1)
        session = start(repository)
        assert session.remaining_seconds == 60

        fired = [session.tick() for _ in range(59)]
        assert not any(fired)
        assert repository.finalize_calls == 0
        assert session.remaining_seconds == 1

        assert session.tick() is True
        assert repository.finalize_calls == 1
        assert session.state is SessionState.COMPLETED

        for _ in range(5):
            session.tick()
        assert repository.finalize_calls == 1

    def test_expiry_submits_regardless_of_position(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1, 1, 1), time_limit=1)
        session = start(repository)
        session.record_answer('a')

        for _ in range(60):
            session.tick()

        assert session.position == 1
        assert session.state is SessionState.COMPLETED

    def test_expiry_racing_manual_submit(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1), time_limit=1)
        session = start(repository)
        for _ in range(59):
            session.tick()
        repository.during_finalize = session.tick

        session.submit()

        assert repository.finalize_calls == 1

    def test_expiry_waits_for_answer_write(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(5, 5), time_limit=1)
        session = start(repository)
        for _ in range(59):
            session.tick()

        runner = threading.Thread(target=session.tick)

        def expire_mid_write():
            runner.start()
            runner.join(timeout=0.2)
            assert runner.is_alive()
            assert repository.finalize_calls == 0

        repository.during_save = expire_mid_write
        outcome = session.record_answer('a')
        runner.join(timeout=5)

        assert outcome['position'] == 1
        assert repository.finalize_calls == 1
        assert session.state is SessionState.COMPLETED
        assert repository.attempts[session.attempt_id].score == 50

    def test_deadline_check_expires_late_session(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1), time_limit=1)
        session = start(repository)

        assert session.check_deadline(session.started_at + timedelta(seconds=30)) is False
        assert session.remaining_seconds == 30
        assert session.check_deadline(session.started_at + timedelta(seconds=61)) is True
        assert repository.finalize_calls == 1

    def test_close_cancels_countdown(self, fake_repository_factory, questions):
        repository = fake_repository_factory(questions(1), time_limit=1)
        session = start(repository)
        session.close()

        for _ in range(60):
            session.tick()
        assert repository.finalize_calls == 0

    def test_newer_runner_supersedes_older(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1), time_limit=1))
        first = session.claim_countdown()
        second = session.claim_countdown()

        assert not session.runner_is_current(first)
        assert session.runner_is_current(second)
        session.release_countdown()
        assert not session.runner_is_current(second)

    def test_stale_release_keeps_newer_runner(self, fake_repository_factory, questions):
        session = start(fake_repository_factory(questions(1), time_limit=1))
        first = session.claim_countdown()
        second = session.claim_countdown()

        session.release_countdown(first)
        assert session.runner_is_current(second)
        session.release_countdown(second)
        assert not session.runner_is_current(second)

    def test_countdown_fires_once(self):
        calls = []
        countdown = Countdown(2, lambda: calls.append(1))
        countdown.tick()
        countdown.tick()
        countdown.expire()
        countdown.tick()
        assert calls == [1]
        assert countdown.remaining == 0


class TestSessionRegistry:
    def test_remove_closes_session(self, fake_repository_factory, questions):
        registry = SessionRegistry()
        session = registry.add(start(fake_repository_factory(questions(1))))

        assert registry.get(session.attempt_id) is session
        registry.remove(session.attempt_id)

        assert registry.get(session.attempt_id) is None
        assert session.closed

    def test_sweep_drops_finished_and_idle_sessions(self, fake_repository_factory, questions):
        registry = SessionRegistry()
        repository = fake_repository_factory(questions(1))
        opened = now_utc()

        finished = registry.add(start(repository), now=opened)
        finished.submit()
        idle = registry.add(start(repository), now=opened)
        busy = registry.add(start(repository), now=opened)
        registry.get(busy.attempt_id, now=opened + timedelta(minutes=50))

        dropped = registry.sweep(
            idle_seconds=3600, finished_seconds=600, now=opened + timedelta(minutes=61)
        )

        assert dropped == 2
        assert len(registry) == 1
        assert registry.get(busy.attempt_id) is busy
        assert finished.closed and idle.closed

    def test_sweep_keeps_recently_finished_session(self, fake_repository_factory, questions):
        registry = SessionRegistry()
        opened = now_utc()
        session = registry.add(start(fake_repository_factory(questions(1))), now=opened)
        session.submit()

        assert registry.sweep(3600, 600, now=opened + timedelta(minutes=5)) == 0
        assert registry.get(session.attempt_id) is session
