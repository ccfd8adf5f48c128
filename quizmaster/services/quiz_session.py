"""
Quiz Session
Drives one student through a quiz: question position, countdown and
the single final submission
"""
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Optional, Tuple

from quizmaster.errors import QuizLoadError, SessionStateError, SubmissionError
from quizmaster.models.question import QUESTION_TYPE_MCQ
from quizmaster.utils.helpers import now_utc

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = 'loading'
    IN_PROGRESS = 'in_progress'
    SUBMITTING = 'submitting'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class QuizInfo:
    """Detached copy of the quiz settings a session needs."""

    id: int
    title: str
    description: Optional[str]
    time_limit: Optional[int]
    show_instant_results: bool
    ip_restriction: bool

    @classmethod
    def from_model(cls, quiz):
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            time_limit=quiz.time_limit,
            show_instant_results=bool(quiz.show_instant_results),
            ip_restriction=bool(quiz.ip_restriction),
        )

    def get_total_time_seconds(self):
        return self.time_limit * 60 if self.time_limit else 0


@dataclass(frozen=True)
class QuestionInfo:
    """Detached copy of a question as shown to the student (no answer key)."""

    id: int
    type: str
    question: str
    options: Tuple[str, ...]
    points: int
    order: int
    image_url: Optional[str] = None

    @classmethod
    def from_model(cls, question):
        options = question.get_options() if question.type == QUESTION_TYPE_MCQ else []
        return cls(
            id=question.id,
            type=question.type,
            question=question.question,
            options=tuple(options),
            points=question.points,
            order=question.order,
            image_url=question.image_url,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'question': self.question,
            'options': list(self.options) if self.type == QUESTION_TYPE_MCQ else None,
            'points': self.points,
            'order': self.order,
            'image_url': self.image_url,
        }


class Countdown:
    """
    Whole-second countdown that fires ``on_expire`` exactly once

    ``tick()`` steps one second for callers that keep their own clock. The
    Socket.IO runner follows the wall clock through ``catch_up`` and
    ``expire`` instead (see ``QuizSession.check_deadline``).
    """

    def __init__(self, total_seconds, on_expire):
        self.total_seconds = total_seconds
        self.remaining = total_seconds
        self._on_expire = on_expire
        self._fired = False
        self._cancelled = False
        self._lock = threading.Lock()

    @property
    def expired(self):
        return self._fired

    @property
    def cancelled(self):
        return self._cancelled

    def tick(self):
        """Decrement by one second; returns True on the tick that expires"""
        with self._lock:
            if self._fired or self._cancelled:
                return False
            self.remaining = max(0, self.remaining - 1)
            if self.remaining > 0:
                return False
            self._fired = True
        self._on_expire()
        return True

    def expire(self):
        """Jump straight to zero (wall-clock deadline already passed)"""
        with self._lock:
            if self._fired or self._cancelled:
                return False
            self.remaining = 0
            self._fired = True
        self._on_expire()
        return True

    def catch_up(self, remaining):
        """Drop to ``remaining`` if ticks were missed (never adds time)"""
        with self._lock:
            if not (self._fired or self._cancelled):
                self.remaining = min(self.remaining, remaining)

    def cancel(self):
        with self._lock:
            self._cancelled = True


class QuizSession:
    """
    State machine for one attempt

    loading -> in_progress -> submitting -> completed. A failed submission
    returns to in_progress so the student can retry. ``close()`` is called
    when the student navigates away; it stops the countdown and makes any
    write still in flight leave the in-memory state alone.
    """

    def __init__(self, repository, access_key, student_name, ip_address=''):
        self.repository = repository
        self.access_key = access_key
        self.student_name = student_name
        self.ip_address = ip_address

        self.state = SessionState.LOADING
        self.quiz = None
        self.questions = []
        self.attempt_id = None
        self.started_at = None
        self.position = 0
        self.answers = {}
        self.score = None
        self.countdown = None
        self.closed = False

        self._generation = 0
        self._runner_generation = 0
        self._lock = threading.Lock()
        # Held across an answer write and across a submission, so the
        # countdown thread cannot finalize between the check and the write
        self._write_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, now=None):
        """Load the quiz and its questions and open the attempt"""
        if self.state is not SessionState.LOADING:
            raise SessionStateError("Quiz session already started.")

        now = now or now_utc()
        quiz = self.repository.get_quiz_by_access_key(self.access_key)
        if not quiz.is_open(now):
            raise QuizLoadError("This quiz is not open right now.")

        # Copy out before any commit expires the ORM instances
        quiz_info = QuizInfo.from_model(quiz)
        questions = [
            QuestionInfo.from_model(q) for q in self.repository.get_questions(quiz.id)
        ]
        if not questions:
            raise QuizLoadError("This quiz has no questions yet.")

        if quiz_info.ip_restriction and self.ip_address and \
                self.repository.has_attempt_from_ip(quiz_info.id, self.ip_address):
            raise QuizLoadError("This quiz has already been attempted from your network.")

        attempt = self.repository.create_attempt(
            quiz_info.id, self.student_name, self.ip_address, start_time=now
        )

        self.quiz = quiz_info
        self.questions = questions
        self.attempt_id = attempt.id
        self.started_at = now
        self.position = 0

        total_seconds = quiz_info.get_total_time_seconds()
        if total_seconds:
            self.countdown = Countdown(total_seconds, self._on_time_up)

        self.state = SessionState.IN_PROGRESS
        logger.info(
            "Attempt %s opened by %s on quiz %s (%d questions)",
            self.attempt_id, self.student_name, quiz_info.id, len(self.questions),
        )
        return self

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def total_questions(self):
        return len(self.questions)

    @property
    def current_question(self):
        if not self.questions:
            return None
        return self.questions[self.position]

    @property
    def is_last_question(self):
        return self.position >= self.total_questions - 1

    @property
    def progress(self):
        if not self.questions:
            return 0.0
        return (self.position + 1) / self.total_questions

    @property
    def remaining_seconds(self):
        return self.countdown.remaining if self.countdown else None

    @property
    def show_instant_results(self):
        return bool(self.quiz and self.quiz.show_instant_results)

    def answer_for(self, question):
        return self.answers.get(question.id)

    def snapshot(self):
        """JSON-friendly state for the quiz page"""
        question = self.current_question
        return {
            'state': self.state.value,
            'attempt_id': self.attempt_id,
            'position': self.position,
            'total_questions': self.total_questions,
            'progress': round(self.progress * 100),
            'remaining_seconds': self.remaining_seconds,
            'question': question.to_dict() if question else None,
            'answer': self.answer_for(question) if question else None,
            'score': self.score,
        }

    # ------------------------------------------------------------------
    # Answering and navigation
    # ------------------------------------------------------------------

    def _require_in_progress(self):
        if self.closed:
            raise SessionStateError("This quiz session has been closed.")
        if self.state is SessionState.LOADING:
            raise SessionStateError("Quiz is still loading.")
        if self.state is not SessionState.IN_PROGRESS:
            raise SessionStateError()

    def record_answer(self, answer_text):
        """
        Persist the answer for the current question and move on

        Returns a dict with the new position and, when the last answer
        triggered an instant-results submission, the submission outcome.
        """
        with self._write_lock:
            self._require_in_progress()
            question = self.current_question
            generation = self._generation

            self.repository.save_answer(self.attempt_id, question.id, answer_text)

            if generation != self._generation:
                logger.info("Discarding answer for closed attempt %s", self.attempt_id)
                return {'advanced': False, 'position': self.position, 'submission': None}

            self.answers[question.id] = answer_text

            if not self.is_last_question:
                self.position += 1
                return {'advanced': True, 'position': self.position, 'submission': None}

            submission = None
            if self.show_instant_results:
                submission = self.submit()
            return {'advanced': False, 'position': self.position, 'submission': submission}

    def go_back(self):
        self._require_in_progress()
        if self.position > 0:
            self.position -= 1
        return self.position

    def go_next(self):
        self._require_in_progress()
        question = self.current_question
        if question.id not in self.answers:
            raise SessionStateError("Answer this question before moving on.")
        if not self.is_last_question:
            self.position += 1
        return self.position

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, auto=False):
        """
        Finalize the attempt

        Returns None when a submission is already in flight or done, so
        a timer expiry racing a manual click only submits once. Otherwise
        returns ``{'score': ..., 'show_results': ...}``.
        """
        with self._write_lock:
            with self._lock:
                if self.closed or self.state in (SessionState.SUBMITTING, SessionState.COMPLETED):
                    return None
                if self.state is not SessionState.IN_PROGRESS:
                    raise SessionStateError("Quiz is still loading.")
                self.state = SessionState.SUBMITTING

            try:
                self.repository.finalize_attempt(self.attempt_id)
                score = None
                if self.show_instant_results:
                    score = self.repository.get_attempt_score(self.attempt_id)
            except SubmissionError:
                self.state = SessionState.IN_PROGRESS
                raise

            self.score = score
            self.state = SessionState.COMPLETED
            if self.countdown:
                self.countdown.cancel()
            logger.info(
                "Attempt %s submitted%s", self.attempt_id, " (time up)" if auto else "",
            )
            return {'score': score, 'show_results': self.show_instant_results}

    def _on_time_up(self):
        try:
            self.submit(auto=True)
        except SubmissionError:
            logger.warning("Automatic submission failed for attempt %s", self.attempt_id)

    # ------------------------------------------------------------------
    # Clock and lifecycle
    # ------------------------------------------------------------------

    def tick(self):
        """One elapsed second; returns True when this tick expired the quiz"""
        if not self.countdown or self.closed:
            return False
        return self.countdown.tick()

    def check_deadline(self, now=None):
        """Expire the countdown if the wall-clock deadline has passed"""
        if not self.countdown or self.started_at is None or self.closed:
            return False
        now = now or now_utc()
        left = self.countdown.total_seconds - int((now - self.started_at).total_seconds())
        if left <= 0:
            return self.countdown.expire()
        self.countdown.catch_up(left)
        return False

    def claim_countdown(self):
        """
        Register a new countdown runner and return its token

        Older runners see a stale token through ``runner_is_current`` and
        stop, so reconnecting clients never double the tick rate.
        """
        with self._lock:
            self._runner_generation += 1
            return self._runner_generation

    def runner_is_current(self, token):
        return (
            token == self._runner_generation
            and not self.closed
            and self.state is SessionState.IN_PROGRESS
        )

    def release_countdown(self, token=None):
        """
        The page stopped listening; stop the countdown runner

        With a token only that runner is released, so a late disconnect
        from a reloaded page leaves the newer runner alone.
        """
        with self._lock:
            if token is None or token == self._runner_generation:
                self._runner_generation += 1

    @property
    def is_finished(self):
        return self.state is SessionState.COMPLETED

    def close(self):
        """Navigation away: stop the clock and ignore late writes"""
        self.closed = True
        self._generation += 1
        if self.countdown:
            self.countdown.cancel()


class SessionRegistry:
    """
    In-process map of attempt id to live QuizSession

    Each lookup refreshes the session's last-seen time. ``sweep()`` drops
    finished sessions nobody has asked about for ``finished_seconds`` and
    any session left idle for ``idle_seconds``.
    """

    def __init__(self):
        self._sessions = {}
        self._last_seen = {}
        self._lock = threading.Lock()

    def add(self, session, now=None):
        with self._lock:
            self._sessions[session.attempt_id] = session
            self._last_seen[session.attempt_id] = now or now_utc()
        return session

    def get(self, attempt_id, now=None):
        if attempt_id is None:
            return None
        with self._lock:
            session = self._sessions.get(attempt_id)
            if session is not None:
                self._last_seen[attempt_id] = now or now_utc()
        return session

    def remove(self, attempt_id):
        with self._lock:
            session = self._sessions.pop(attempt_id, None)
            self._last_seen.pop(attempt_id, None)
        if session is not None:
            session.close()
        return session

    def sweep(self, idle_seconds, finished_seconds, now=None):
        """Remove stale sessions; returns how many were dropped"""
        now = now or now_utc()
        with self._lock:
            stale = []
            for attempt_id, session in self._sessions.items():
                quiet = (now - self._last_seen[attempt_id]).total_seconds()
                limit = finished_seconds if session.is_finished else idle_seconds
                if quiet >= limit:
                    stale.append(attempt_id)
            dropped = [self._sessions.pop(attempt_id) for attempt_id in stale]
            for attempt_id in stale:
                del self._last_seen[attempt_id]

        for session in dropped:
            session.close()
        if dropped:
            logger.info("Swept %d stale quiz sessions", len(dropped))
        return len(dropped)

    def clear(self):
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
            self._last_seen = {}
        for session in sessions:
            session.close()

    def __len__(self):
        return len(self._sessions)


# Live sessions for this process
active_sessions = SessionRegistry()
