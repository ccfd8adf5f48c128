"""
WSGI Entry Point
gunicorn --worker-class eventlet -w 1 wsgi:app
"""
import os

from quizmaster import create_app
from quizmaster.extensions import socketio

app = create_app()

if __name__ == '__main__':
    # Keep a single process: live quiz sessions are held in memory
    socketio.run(
        app,
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=True,
        use_reloader=False,
        allow_unsafe_werkzeug=True
    )
