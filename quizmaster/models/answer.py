"""
StudentAnswer Model
Stores one answer per attempt and question
"""
from quizmaster.extensions import db
from quizmaster.utils.helpers import now_utc


class StudentAnswer(db.Model):
    """Student answer model"""
    __tablename__ = 'student_answers'

    id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(
        db.Integer, db.ForeignKey('student_attempts.id'), nullable=False, index=True
    )
    question_id = db.Column(
        db.Integer, db.ForeignKey('questions.id'), nullable=False, index=True
    )
    answer = db.Column(db.Text, nullable=False, default='')
    is_correct = db.Column(db.Boolean, nullable=True)
    points_earned = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        db.UniqueConstraint(
            'attempt_id', 'question_id',
            name='unique_answer_per_question'
        ),
    )

    def __repr__(self):
        return f'<StudentAnswer Q{self.question_id} in attempt {self.attempt_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'attempt_id': self.attempt_id,
            'question_id': self.question_id,
            'answer': self.answer,
            'is_correct': self.is_correct,
            'points_earned': self.points_earned,
        }
