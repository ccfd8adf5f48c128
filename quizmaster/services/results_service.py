"""
Results Service
Aggregates attempts for the teacher dashboard and per-quiz results
"""
from sqlalchemy import func

from quizmaster.extensions import db
from quizmaster.models import Quiz, StudentAttempt


class ResultsService:
    """Attempt statistics for teachers"""

    @staticmethod
    def dashboard_summary(teacher_id):
        """
        Totals across all of a teacher's quizzes

        Returns:
            dict: quizzes, attempts, completed, average_score
        """
        quiz_count = Quiz.query.filter_by(teacher_id=teacher_id).count()

        row = db.session.query(
            func.count(StudentAttempt.id).label("attempts"),
            func.sum(
                db.case((StudentAttempt.end_time.isnot(None), 1), else_=0)
            ).label("completed"),
            func.avg(StudentAttempt.score).label("average_score"),
        ).join(Quiz, Quiz.id == StudentAttempt.quiz_id)\
         .filter(Quiz.teacher_id == teacher_id).one()

        return {
            "quizzes": quiz_count,
            "attempts": int(row.attempts or 0),
            "completed": int(row.completed or 0),
            "average_score": round(row.average_score) if row.average_score is not None else None,
        }

    @staticmethod
    def quiz_attempt_counts(teacher_id):
        """Map of quiz id to number of attempts"""
        rows = db.session.query(
            StudentAttempt.quiz_id,
            func.count(StudentAttempt.id).label("attempts"),
        ).join(Quiz, Quiz.id == StudentAttempt.quiz_id)\
         .filter(Quiz.teacher_id == teacher_id)\
         .group_by(StudentAttempt.quiz_id).all()

        return {row.quiz_id: int(row.attempts) for row in rows}

    @staticmethod
    def quiz_results(quiz_id):
        """Attempts for one quiz, best scores first, plus aggregates"""
        attempts = StudentAttempt.query.filter_by(quiz_id=quiz_id)\
            .order_by(StudentAttempt.score.desc().nulls_last(), StudentAttempt.start_time.asc())\
            .all()

        scored = [a.score for a in attempts if a.score is not None]
        return {
            "attempts": attempts,
            "total": len(attempts),
            "completed": sum(1 for a in attempts if a.end_time is not None),
            "average_score": round(sum(scored) / len(scored)) if scored else None,
            "best_score": max(scored) if scored else None,
        }
