"""
Authoring Service
Quiz creation and question entry for teachers
"""
import logging

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizmaster.errors import QuizMasterError, ValidationError
from quizmaster.extensions import db
from quizmaster.models import Question, Quiz
from quizmaster.models.question import (
    QUESTION_TYPE_MCQ,
    QUESTION_TYPE_TRUE_FALSE,
    QUESTION_TYPES,
    TRUE_FALSE_VALUES,
)
from quizmaster.utils.helpers import generate_access_key

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
MAX_OPTIONS = 4
MIN_OPTIONS = 2
ACCESS_KEY_ATTEMPTS = 5


def _parse_positive_int(raw, field, errors, required=False):
    raw = (raw or '').strip() if isinstance(raw, str) else raw
    if raw in (None, ''):
        if required:
            errors[field] = 'This field is required'
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        errors[field] = 'Must be a whole number'
        return None
    if value < 1:
        errors[field] = 'Must be at least 1'
        return None
    return value


class AuthoringService:
    """Create quizzes and append questions"""

    @staticmethod
    def validate_quiz_form(form):
        """
        Clean the create-quiz form

        Returns a dict of column values or raises ValidationError.
        """
        errors = {}
        title = (form.get('title') or '').strip()
        if len(title) < MIN_TITLE_LENGTH:
            errors['title'] = f'Title must be at least {MIN_TITLE_LENGTH} characters'

        description = (form.get('description') or '').strip() or None
        time_limit = _parse_positive_int(form.get('time_limit'), 'time_limit', errors)

        if errors:
            raise ValidationError(errors)

        return {
            'title': title,
            'description': description,
            'time_limit': time_limit,
            'show_instant_results': form.get('show_instant_results') in ('on', 'true', '1', True),
            'ip_restriction': form.get('ip_restriction') in ('on', 'true', '1', True),
        }

    @staticmethod
    def create_quiz(teacher_id, form):
        """Create a quiz with a fresh access key"""
        values = AuthoringService.validate_quiz_form(form)
        length = current_app.config.get('ACCESS_KEY_LENGTH', 8)

        for _ in range(ACCESS_KEY_ATTEMPTS):
            quiz = Quiz(teacher_id=teacher_id, access_key=generate_access_key(length), **values)
            try:
                db.session.add(quiz)
                db.session.commit()
            except IntegrityError:
                # Access key collision; draw another
                db.session.rollback()
                continue
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.exception("Quiz creation failed for teacher %s", teacher_id)
                raise QuizMasterError("Failed to create quiz. Please try again.") from exc

            logger.info("Quiz %s created by teacher %s (key %s)", quiz.id, teacher_id, quiz.access_key)
            return quiz

        raise QuizMasterError("Failed to create quiz. Please try again.")

    @staticmethod
    def validate_question_form(form):
        """
        Clean the add-question form

        ``form`` is a MultiDict (``options`` may repeat) or a plain dict with
        an ``options`` list.
        """
        errors = {}

        qtype = (form.get('type') or QUESTION_TYPE_MCQ).strip()
        if qtype not in QUESTION_TYPES:
            errors['type'] = 'Choose a valid question type'

        text = (form.get('question') or '').strip()
        if not text:
            errors['question'] = 'Question is required'

        if hasattr(form, 'getlist'):
            raw_options = form.getlist('options')
        else:
            raw_options = form.get('options') or []
        options = [opt.strip() for opt in raw_options if opt and opt.strip()][:MAX_OPTIONS]

        correct = (form.get('correct_answer') or '').strip() or None

        points = _parse_positive_int(form.get('points', 1), 'points', errors, required=True)

        if qtype == QUESTION_TYPE_MCQ:
            if len(options) < MIN_OPTIONS:
                errors['options'] = f'Provide at least {MIN_OPTIONS} options'
            elif correct is not None and correct not in options:
                errors['correct_answer'] = 'Correct answer must match one of the options'
        else:
            options = []
            if qtype == QUESTION_TYPE_TRUE_FALSE and correct is not None:
                correct = correct.lower()
                if correct not in TRUE_FALSE_VALUES:
                    errors['correct_answer'] = 'Correct answer must be true or false'

        if errors:
            raise ValidationError(errors)

        return {
            'type': qtype,
            'question': text,
            'options': options,
            'correct_answer': correct,
            'points': points,
            'image_url': (form.get('image_url') or '').strip() or None,
        }

    @staticmethod
    def next_order(quiz_id):
        current_max = db.session.query(func.max(Question.order)).filter_by(quiz_id=quiz_id).scalar()
        return 0 if current_max is None else current_max + 1

    @staticmethod
    def add_question(quiz, form):
        """Append a question at the next order index"""
        values = AuthoringService.validate_question_form(form)
        options = values.pop('options')

        question = Question(quiz_id=quiz.id, order=AuthoringService.next_order(quiz.id), **values)
        question.set_options(options)
        try:
            db.session.add(question)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Adding question to quiz %s failed", quiz.id)
            raise QuizMasterError("Failed to add question.") from exc

        logger.info("Question %s added to quiz %s at order %s", question.id, quiz.id, question.order)
        return question

    @staticmethod
    def get_owned_quiz(teacher_id, quiz_id):
        """Quiz by id, only when it belongs to the teacher"""
        return Quiz.query.filter_by(id=quiz_id, teacher_id=teacher_id).first()
