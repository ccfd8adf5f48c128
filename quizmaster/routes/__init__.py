"""
Routes Package
Exports all route blueprints
"""
from quizmaster.routes.auth import auth_bp
from quizmaster.routes.public import public_bp
from quizmaster.routes.student import student_bp
from quizmaster.routes.teacher import teacher_bp

__all__ = ['auth_bp', 'public_bp', 'student_bp', 'teacher_bp']
