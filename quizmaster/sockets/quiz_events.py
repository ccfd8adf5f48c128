"""
Socket.IO Event Handlers
Server-driven quiz countdown
"""
import logging

from flask import current_app, session, url_for
from flask_socketio import emit, join_room, leave_room

from quizmaster.extensions import socketio
from quizmaster.services.quiz_session import active_sessions

logger = logging.getLogger(__name__)

TICK_SECONDS = 1


def attempt_room(attempt_id):
    return f'attempt_{attempt_id}'


def run_countdown(app, quiz_session, token, redirect_url):
    """
    Check the session's deadline once per second and broadcast the
    remaining time until the quiz expires or a newer runner takes over.
    A finished attempt without instant results leaves the registry here,
    since no result page will ask for it.
    """
    room = attempt_room(quiz_session.attempt_id)

    while True:
        socketio.sleep(TICK_SECONDS)
        if not quiz_session.runner_is_current(token):
            break

        # Wall clock only: the elapsed time already includes this second
        with app.app_context():
            expired = quiz_session.countdown.expired or quiz_session.check_deadline()

        if expired:
            logger.info("Time up for attempt %s", quiz_session.attempt_id)
            socketio.emit('quiz_submitted', {
                'score': quiz_session.score,
                'submitted': quiz_session.is_finished,
                'redirect': redirect_url,
            }, to=room)
            if quiz_session.is_finished and not quiz_session.show_instant_results:
                active_sessions.remove(quiz_session.attempt_id)
            break

        socketio.emit('timer_tick', {'remaining': quiz_session.remaining_seconds}, to=room)


def register_socket_events():
    """Register all Socket.IO event handlers"""
    from quizmaster.routes.student import get_quiz_session

    @socketio.on('join_attempt')
    def join_attempt(data):
        """Quiz page subscribes to its attempt's countdown"""
        access_key = str((data or {}).get('access_key', ''))
        quiz_session = get_quiz_session(access_key)
        if quiz_session is None:
            emit('session_missing', {'redirect': url_for('public.index')})
            return

        join_room(attempt_room(quiz_session.attempt_id))
        if quiz_session.countdown is None or quiz_session.is_finished:
            return

        quiz_session.check_deadline()
        emit('timer_tick', {'remaining': quiz_session.remaining_seconds})

        if quiz_session.show_instant_results:
            redirect_url = url_for('student.result', access_key=access_key)
        else:
            redirect_url = url_for('public.index')

        token = quiz_session.claim_countdown()
        session['live_runner'] = (access_key, token)
        socketio.start_background_task(
            run_countdown,
            current_app._get_current_object(),
            quiz_session,
            token,
            redirect_url,
        )
        logger.debug("Countdown runner %s started for attempt %s", token, quiz_session.attempt_id)

    @socketio.on('leave_attempt')
    def leave_attempt(data):
        """Quiz page unloading: stop ticking; the wall-clock deadline still applies"""
        access_key = str((data or {}).get('access_key', ''))
        quiz_session = get_quiz_session(access_key)
        if quiz_session is None:
            return
        session.pop('live_runner', None)
        quiz_session.release_countdown()
        leave_room(attempt_room(quiz_session.attempt_id))

    @socketio.on('disconnect')
    def on_disconnect(reason=None):
        """Dropped connection: stop this runner, a reconnect claims a new one"""
        live_runner = session.pop('live_runner', None)
        if live_runner is None:
            return
        access_key, token = live_runner
        quiz_session = get_quiz_session(access_key)
        if quiz_session is not None:
            quiz_session.release_countdown(token)
