"""
Services Package
"""
from quizmaster.services.scoring_service import ScoringService
from quizmaster.services.results_service import ResultsService
from quizmaster.services.authoring_service import AuthoringService
from quizmaster.services.quiz_repository import QuizRepository
from quizmaster.services.quiz_session import QuizSession, SessionState, active_sessions

__all__ = [
    'ScoringService',
    'ResultsService',
    'AuthoringService',
    'QuizRepository',
    'QuizSession',
    'SessionState',
    'active_sessions',
]
