"""
Quiz Repository
Database access for the quiz-taking flow
"""
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizmaster.errors import AnswerWriteError, QuizLoadError, SubmissionError
from quizmaster.extensions import db
from quizmaster.models import Question, Quiz, StudentAnswer, StudentAttempt
from quizmaster.services.scoring_service import ScoringService
from quizmaster.utils.helpers import now_utc

logger = logging.getLogger(__name__)


class QuizRepository:
    """
    Reads and writes quiz-taking records

    Every method commits its own work. SQLAlchemy failures are rolled back
    and re-raised as the matching domain error so callers only deal with
    ``quizmaster.errors``.
    """

    def get_quiz_by_access_key(self, access_key):
        try:
            quiz = Quiz.query.filter_by(access_key=access_key).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Quiz lookup failed for key %s", access_key)
            raise QuizLoadError() from exc

        if quiz is None:
            raise QuizLoadError("Quiz not found. Check the access key and try again.")
        return quiz

    def get_questions(self, quiz_id):
        """Questions of a quiz in display order"""
        try:
            return (
                Question.query
                .filter_by(quiz_id=quiz_id)
                .order_by(Question.order.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Question lookup failed for quiz %s", quiz_id)
            raise QuizLoadError() from exc

    def has_attempt_from_ip(self, quiz_id, ip_address):
        try:
            return db.session.query(
                StudentAttempt.query
                .filter_by(quiz_id=quiz_id, ip_address=ip_address)
                .exists()
            ).scalar()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise QuizLoadError() from exc

    def create_attempt(self, quiz_id, student_name, ip_address, start_time=None):
        attempt = StudentAttempt(
            quiz_id=quiz_id,
            student_name=student_name,
            ip_address=ip_address or '',
            start_time=start_time or now_utc(),
        )
        try:
            db.session.add(attempt)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Could not open attempt on quiz %s", quiz_id)
            raise QuizLoadError() from exc
        return attempt

    def save_answer(self, attempt_id, question_id, answer_text):
        """
        Store the answer for (attempt, question), replacing any earlier one
        """
        try:
            return self._upsert_answer(attempt_id, question_id, answer_text)
        except IntegrityError:
            # Lost an insert race against a concurrent request; update instead
            db.session.rollback()
            try:
                return self._upsert_answer(attempt_id, question_id, answer_text)
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.exception("Answer write failed (attempt %s)", attempt_id)
                raise AnswerWriteError() from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Answer write failed (attempt %s)", attempt_id)
            raise AnswerWriteError() from exc

    def _upsert_answer(self, attempt_id, question_id, answer_text):
        answer = StudentAnswer.query.filter_by(
            attempt_id=attempt_id, question_id=question_id
        ).first()
        if answer is None:
            answer = StudentAnswer(attempt_id=attempt_id, question_id=question_id)
            db.session.add(answer)
        answer.answer = answer_text
        db.session.commit()
        return answer

    def finalize_attempt(self, attempt_id, end_time=None):
        """
        Stamp the attempt's end time and score it

        The end time is only ever written once: the UPDATE is conditional on
        it still being NULL. Returns True when this call finalized the
        attempt, False when it was already finished.
        """
        end_time = end_time or now_utc()
        case_sensitive = current_app.config.get('FREE_TEXT_CASE_SENSITIVE', True)
        try:
            updated = (
                StudentAttempt.query
                .filter(StudentAttempt.id == attempt_id, StudentAttempt.end_time.is_(None))
                .update({StudentAttempt.end_time: end_time}, synchronize_session=False)
            )
            if not updated:
                db.session.rollback()
                return False

            attempt = db.session.get(StudentAttempt, attempt_id)
            questions = self.get_questions(attempt.quiz_id)
            answers = StudentAnswer.query.filter_by(attempt_id=attempt_id).all()
            ScoringService.grade_answers(answers, questions, case_sensitive)
            attempt.score = ScoringService.calculate_score(answers, questions)
            db.session.commit()
        except (SQLAlchemyError, QuizLoadError) as exc:
            db.session.rollback()
            logger.exception("Submission failed (attempt %s)", attempt_id)
            raise SubmissionError() from exc

        logger.info("Attempt %s finalized with score %s", attempt_id, attempt.score)
        return True

    def get_attempt_score(self, attempt_id):
        try:
            attempt = db.session.get(StudentAttempt, attempt_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise SubmissionError() from exc
        return attempt.score if attempt else None
