"""
Student Routes
Quiz-taking: start or resume an attempt, answer, navigate, submit, results
"""
import logging

from flask import (
    Blueprint, current_app, flash, jsonify, redirect, render_template, request, session, url_for,
)

from quizmaster.errors import AnswerWriteError, QuizLoadError, SessionStateError, SubmissionError
from quizmaster.services import QuizRepository, QuizSession, active_sessions
from quizmaster.utils import get_client_ip

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__)


def get_quiz_session(access_key):
    """Live session for this browser and access key, if any"""
    attempt_id = session.get('attempts', {}).get(access_key)
    quiz_session = active_sessions.get(attempt_id)
    if quiz_session is None or quiz_session.access_key != access_key:
        return None
    return quiz_session


def remember_attempt(access_key, attempt_id):
    attempts = dict(session.get('attempts', {}))
    attempts[access_key] = attempt_id
    session['attempts'] = attempts


def forget_attempt(access_key):
    attempts = dict(session.get('attempts', {}))
    attempt_id = attempts.pop(access_key, None)
    session['attempts'] = attempts
    if attempt_id is not None:
        active_sessions.remove(attempt_id)


def remember_result(access_key, quiz_session):
    results = dict(session.get('results', {}))
    results[access_key] = {
        'title': quiz_session.quiz.title,
        'student_name': quiz_session.student_name,
        'score': quiz_session.score,
    }
    session['results'] = results


def completion_payload(access_key, quiz_session):
    """
    Where the page goes once the attempt is finalized

    The live session is dropped either way; an instant-results score is
    kept in the browser session for the result page.
    """
    if quiz_session.show_instant_results:
        remember_result(access_key, quiz_session)
        forget_attempt(access_key)
        return {
            'submitted': True,
            'score': quiz_session.score,
            'redirect': url_for('student.result', access_key=access_key),
        }
    forget_attempt(access_key)
    flash('Quiz submitted. Thank you!', 'success')
    return {'submitted': True, 'score': None, 'redirect': url_for('public.index')}


def session_response(access_key, quiz_session, status=200, **extra):
    body = {'success': status < 400, 'state': quiz_session.snapshot(), 'submitted': False}
    if quiz_session.is_finished:
        body.update(completion_payload(access_key, quiz_session))
    body.update(extra)
    return jsonify(body), status


def missing_session_response():
    return jsonify({
        'success': False,
        'error': 'Quiz session not found. Please start again.',
        'redirect': url_for('public.index'),
    }), 404


def request_payload():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else request.form


@student_bp.route('/<access_key>')
def take_quiz(access_key):
    """Start (or resume) an attempt and render the current question"""
    student_name = (request.args.get('name') or '').strip()
    quiz_session = get_quiz_session(access_key)

    if quiz_session is not None and student_name and quiz_session.student_name != student_name:
        # Same browser, different student: start over
        forget_attempt(access_key)
        quiz_session = None

    if quiz_session is None:
        if not student_name:
            return redirect(url_for('public.index'))

        quiz_session = QuizSession(
            QuizRepository(), access_key, student_name, ip_address=get_client_ip()
        )
        try:
            quiz_session.load()
        except QuizLoadError as e:
            logger.warning("Quiz load rejected for key %s: %s", access_key, e.message)
            flash(e.message, 'error')
            return redirect(url_for('public.index'))

        active_sessions.sweep(
            current_app.config['SESSION_IDLE_SECONDS'],
            current_app.config['FINISHED_SESSION_SECONDS'],
        )
        active_sessions.add(quiz_session)
        remember_attempt(access_key, quiz_session.attempt_id)

    quiz_session.check_deadline()
    if quiz_session.is_finished:
        payload = completion_payload(access_key, quiz_session)
        return redirect(payload['redirect'])

    return render_template(
        'take_quiz.html',
        quiz=quiz_session.quiz,
        access_key=access_key,
        quiz_session=quiz_session,
        question=quiz_session.current_question,
        state=quiz_session.snapshot(),
    )


@student_bp.route('/<access_key>/state')
def state(access_key):
    quiz_session = get_quiz_session(access_key)
    if quiz_session is None:
        return missing_session_response()
    quiz_session.check_deadline()
    return session_response(access_key, quiz_session)


@student_bp.route('/<access_key>/answer', methods=['POST'])
def answer(access_key):
    """Record the answer for the current question"""
    quiz_session = get_quiz_session(access_key)
    if quiz_session is None:
        return missing_session_response()

    quiz_session.check_deadline()
    payload = request_payload()
    answer_text = payload.get('answer')
    if answer_text is None:
        return session_response(access_key, quiz_session, 400, error='An answer is required.')

    question_id = payload.get('question_id')
    current = quiz_session.current_question
    if question_id not in (None, '') and current is not None and str(current.id) != str(question_id):
        return session_response(
            access_key, quiz_session, 409, error='This question is no longer current.'
        )

    try:
        quiz_session.record_answer(str(answer_text))
    except SessionStateError as e:
        return session_response(access_key, quiz_session, 409, error=e.message)
    except (AnswerWriteError, SubmissionError) as e:
        return session_response(access_key, quiz_session, 500, error=e.message)

    return session_response(access_key, quiz_session)


@student_bp.route('/<access_key>/back', methods=['POST'])
def back(access_key):
    quiz_session = get_quiz_session(access_key)
    if quiz_session is None:
        return missing_session_response()
    try:
        quiz_session.go_back()
    except SessionStateError as e:
        return session_response(access_key, quiz_session, 409, error=e.message)
    return session_response(access_key, quiz_session)


@student_bp.route('/<access_key>/next', methods=['POST'])
def next_question(access_key):
    quiz_session = get_quiz_session(access_key)
    if quiz_session is None:
        return missing_session_response()
    try:
        quiz_session.go_next()
    except SessionStateError as e:
        return session_response(access_key, quiz_session, 409, error=e.message)
    return session_response(access_key, quiz_session)


@student_bp.route('/<access_key>/submit', methods=['POST'])
def submit(access_key):
    """Final submission; a repeat while one is in flight is a no-op"""
    quiz_session = get_quiz_session(access_key)
    if quiz_session is None:
        return missing_session_response()

    try:
        quiz_session.submit()
    except SessionStateError as e:
        return session_response(access_key, quiz_session, 409, error=e.message)
    except SubmissionError as e:
        return session_response(access_key, quiz_session, 500, error=e.message)

    return session_response(access_key, quiz_session)


@student_bp.route('/<access_key>/leave', methods=['POST'])
def leave(access_key):
    """Student leaves the quiz page for good"""
    forget_attempt(access_key)
    return redirect(url_for('public.index'))


@student_bp.route('/<access_key>/result')
def result(access_key):
    """Instant-results score page"""
    quiz_session = get_quiz_session(access_key)
    if quiz_session is not None and quiz_session.is_finished:
        # Finalized by the countdown runner, not by a request from this page
        completion_payload(access_key, quiz_session)

    outcome = session.get('results', {}).get(access_key)
    if outcome is None:
        return redirect(url_for('public.index'))

    return render_template(
        'quiz_result.html',
        title=outcome['title'],
        score=outcome['score'],
        student_name=outcome['student_name'],
    )
