"""
Models Package
Exports all database models
"""
from quizmaster.models.teacher import Teacher
from quizmaster.models.quiz import Quiz
from quizmaster.models.question import Question
from quizmaster.models.attempt import StudentAttempt
from quizmaster.models.answer import StudentAnswer

__all__ = ['Teacher', 'Quiz', 'Question', 'StudentAttempt', 'StudentAnswer']
