"""
Sockets Package
"""
from quizmaster.sockets.quiz_events import register_socket_events

__all__ = ['register_socket_events']
