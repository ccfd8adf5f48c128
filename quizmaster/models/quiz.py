"""
Quiz Model
A teacher-owned quiz that students open with its access key
"""
from datetime import timezone

from quizmaster.extensions import db
from quizmaster.utils.helpers import now_utc


def _aware(dt):
    # SQLite hands back naive datetimes even for timezone columns
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class Quiz(db.Model):
    """Quiz model"""
    __tablename__ = 'quizzes'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(
        db.Integer, db.ForeignKey('teachers.id'), nullable=False, index=True
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    access_key = db.Column(db.String(32), unique=True, nullable=False, index=True)

    # Minutes; NULL means no countdown
    time_limit = db.Column(db.Integer, nullable=True)

    # Optional availability window
    start_time = db.Column(db.DateTime(timezone=True), nullable=True)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    show_instant_results = db.Column(db.Boolean, nullable=False, default=False)
    ip_restriction = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    # Relationships
    questions = db.relationship(
        'Question', backref='quiz', lazy=True, order_by='Question.order'
    )
    attempts = db.relationship('StudentAttempt', backref='quiz', lazy='dynamic')

    def __repr__(self):
        return f'<Quiz {self.title}>'

    def get_total_time_seconds(self):
        """Get total quiz time in seconds - returns 0 if disabled"""
        return self.time_limit * 60 if self.time_limit else 0

    def is_open(self, now=None):
        """True when ``now`` falls inside the optional availability window"""
        now = now or now_utc()
        start, end = _aware(self.start_time), _aware(self.end_time)
        if start and now < start:
            return False
        if end and now > end:
            return False
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'teacher_id': self.teacher_id,
            'title': self.title,
            'description': self.description,
            'access_key': self.access_key,
            'time_limit': self.time_limit,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'show_instant_results': self.show_instant_results,
            'ip_restriction': self.ip_restriction,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
