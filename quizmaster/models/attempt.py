"""
StudentAttempt Model
One student's pass through a quiz
"""
from quizmaster.extensions import db
from quizmaster.utils.helpers import now_utc


class StudentAttempt(db.Model):
    """Student attempt model"""
    __tablename__ = 'student_attempts'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False, index=True)
    student_name = db.Column(db.String(100), nullable=False)
    ip_address = db.Column(db.String(64), nullable=False, default='', index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)

    # Set once on submission; score is computed at the same time
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    score = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    answers = db.relationship(
        'StudentAnswer', backref='attempt', lazy=True, order_by='StudentAnswer.id'
    )

    def __repr__(self):
        return f'<StudentAttempt {self.id}: {self.student_name} on quiz {self.quiz_id}>'

    @property
    def is_finished(self):
        return self.end_time is not None

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'student_name': self.student_name,
            'ip_address': self.ip_address,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'score': self.score,
        }
