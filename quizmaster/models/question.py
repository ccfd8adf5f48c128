"""
Question Model
Multiple-choice, free-text and true/false questions
"""
import json
import logging

from quizmaster.extensions import db
from quizmaster.utils.helpers import now_utc

logger = logging.getLogger(__name__)

QUESTION_TYPE_MCQ = 'mcq'
QUESTION_TYPE_TEXT = 'text'
QUESTION_TYPE_TRUE_FALSE = 'true_false'

QUESTION_TYPES = (QUESTION_TYPE_MCQ, QUESTION_TYPE_TEXT, QUESTION_TYPE_TRUE_FALSE)

QUESTION_TYPE_LABELS = {
    QUESTION_TYPE_MCQ: 'Multiple Choice',
    QUESTION_TYPE_TEXT: 'Text Answer',
    QUESTION_TYPE_TRUE_FALSE: 'True/False',
}

TRUE_FALSE_VALUES = ('true', 'false')


class Question(db.Model):
    """Question model"""
    __tablename__ = 'questions'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, default=QUESTION_TYPE_MCQ)
    question = db.Column(db.Text, nullable=False)

    # Ordered option strings, JSON encoded; only set for mcq
    options = db.Column(db.Text, nullable=True)

    correct_answer = db.Column(db.Text, nullable=True)
    points = db.Column(db.Integer, nullable=False, default=1)
    order = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'order', name='unique_question_order'),
        db.CheckConstraint('points >= 1', name='question_points_positive'),
    )

    def __repr__(self):
        return f'<Question {self.id}: {self.question[:50]}...>'

    def get_options(self):
        """Get options as a list of strings"""
        if not self.options:
            return []
        try:
            options = json.loads(self.options)
        except ValueError:
            logger.warning("Question %s has malformed options", self.id)
            return []
        return [str(opt) for opt in options] if isinstance(options, list) else []

    def set_options(self, options):
        self.options = json.dumps(list(options)) if options else None

    @property
    def type_label(self):
        return QUESTION_TYPE_LABELS.get(self.type, self.type)

    def to_dict(self, include_answer=False):
        data = {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'type': self.type,
            'question': self.question,
            'options': self.get_options() if self.type == QUESTION_TYPE_MCQ else None,
            'points': self.points,
            'order': self.order,
            'image_url': self.image_url,
        }
        if include_answer:
            data['correct_answer'] = self.correct_answer
        return data
