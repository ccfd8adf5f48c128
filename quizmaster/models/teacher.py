"""
Teacher Model
Quiz owners who sign in with email and password
"""
from werkzeug.security import check_password_hash, generate_password_hash

from quizmaster.extensions import db
from quizmaster.utils.helpers import now_utc


class Teacher(db.Model):
    """Teacher model"""
    __tablename__ = 'teachers'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    quizzes = db.relationship(
        'Quiz', backref='teacher', lazy=True, order_by='Quiz.created_at.desc()'
    )

    def __repr__(self):
        return f'<Teacher {self.email}>'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
