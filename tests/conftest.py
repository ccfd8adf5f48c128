import itertools
from types import SimpleNamespace

import pytest

from quizmaster import create_app
from quizmaster.errors import AnswerWriteError, QuizLoadError, SubmissionError
from quizmaster.extensions import db as _db
from quizmaster.models import Question, Quiz, Teacher
from quizmaster.services import ScoringService, active_sessions
from quizmaster.utils import generate_access_key, now_utc


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()
    active_sessions.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def teacher(db):
    teacher = Teacher(email='frizzle@example.com', name='Ms Frizzle')
    teacher.set_password('magicbus')
    db.session.add(teacher)
    db.session.commit()
    return teacher


@pytest.fixture
def teacher_client(client, teacher):
    with client.session_transaction() as sess:
        sess['teacher_id'] = teacher.id
        sess['teacher_name'] = teacher.name
    return client


def build_questions(*points, correct='a'):
    """Question fields: one mcq per entry, options a/b, correct ``correct``"""
    return [
        {
            'type': 'mcq',
            'question': f'Question {i + 1}?',
            'options': ['a', 'b'],
            'correct_answer': correct,
            'points': p,
        }
        for i, p in enumerate(points)
    ]


@pytest.fixture
def make_quiz(db, teacher):
    def _make(questions=(), **kwargs):
        kwargs.setdefault('title', 'Solar System')
        kwargs.setdefault('access_key', generate_access_key())
        kwargs.setdefault('show_instant_results', False)
        kwargs.setdefault('ip_restriction', False)
        quiz = Quiz(teacher_id=teacher.id, **kwargs)
        db.session.add(quiz)
        db.session.flush()

        for order, fields in enumerate(questions):
            fields = dict(fields)
            options = fields.pop('options', None)
            fields.setdefault('points', 1)
            question = Question(quiz_id=quiz.id, order=order, **fields)
            question.set_options(options)
            db.session.add(question)

        db.session.commit()
        return quiz
    return _make


def transient_quiz(questions, **kwargs):
    """Unsaved Quiz plus Question objects for repository-free tests"""
    kwargs.setdefault('show_instant_results', False)
    kwargs.setdefault('ip_restriction', False)
    quiz = Quiz(id=1, teacher_id=1, title='Solar System', access_key='KEY12345', **kwargs)
    built = []
    for order, fields in enumerate(questions):
        fields = dict(fields)
        options = fields.pop('options', None)
        question = Question(id=order + 1, quiz_id=1, order=order, **fields)
        question.set_options(options)
        built.append(question)
    return quiz, built


class FakeRepository:
    """In-memory stand-in for QuizRepository"""

    def __init__(self, quiz, questions):
        self.quiz = quiz
        self.questions = questions
        self.answers = {}
        self.answer_writes = 0
        self.finalize_calls = 0
        self.attempts = {}
        self.ip_addresses = set()
        self.fail_answers = False
        self.fail_submit = False
        self.during_save = None
        self.during_finalize = None
        self._ids = itertools.count(1)

    def get_quiz_by_access_key(self, access_key):
        if access_key != self.quiz.access_key:
            raise QuizLoadError("Quiz not found. Check the access key and try again.")
        return self.quiz

    def get_questions(self, quiz_id):
        return list(self.questions)

    def has_attempt_from_ip(self, quiz_id, ip_address):
        return ip_address in self.ip_addresses

    def create_attempt(self, quiz_id, student_name, ip_address, start_time=None):
        attempt = SimpleNamespace(
            id=next(self._ids), quiz_id=quiz_id, student_name=student_name,
            ip_address=ip_address, start_time=start_time or now_utc(),
            end_time=None, score=None,
        )
        self.attempts[attempt.id] = attempt
        self.ip_addresses.add(ip_address)
        return attempt

    def save_answer(self, attempt_id, question_id, answer_text):
        if self.fail_answers:
            raise AnswerWriteError()
        if self.during_save:
            self.during_save()
        self.answer_writes += 1
        self.answers[(attempt_id, question_id)] = answer_text

    def finalize_attempt(self, attempt_id, end_time=None):
        self.finalize_calls += 1
        if self.during_finalize:
            self.during_finalize()
        if self.fail_submit:
            raise SubmissionError()

        attempt = self.attempts[attempt_id]
        if attempt.end_time is not None:
            return False
        attempt.end_time = end_time or now_utc()

        answers = [
            SimpleNamespace(question_id=qid, answer=text, is_correct=None, points_earned=None)
            for (aid, qid), text in self.answers.items() if aid == attempt_id
        ]
        ScoringService.grade_answers(answers, self.questions)
        attempt.score = ScoringService.calculate_score(answers, self.questions)
        return True

    def get_attempt_score(self, attempt_id):
        return self.attempts[attempt_id].score


@pytest.fixture
def fake_repository_factory():
    def _make(questions, **quiz_kwargs):
        quiz, built = transient_quiz(questions, **quiz_kwargs)
        return FakeRepository(quiz, built)
    return _make


@pytest.fixture
def questions():
    return build_questions
