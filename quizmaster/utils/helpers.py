"""
Helper Functions
Utility functions used across the application
"""
from datetime import datetime, timezone
from functools import wraps
import secrets
import string

from flask import current_app, flash, redirect, request, session, url_for
import pytz

ACCESS_KEY_ALPHABET = string.ascii_letters + string.digits


def now_utc():
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)


def to_local_time(utc_dt, fmt='%d %b %Y, %I:%M %p'):
    """Convert a UTC datetime to the configured timezone for display"""
    if not utc_dt:
        return ''
    tz = pytz.timezone(current_app.config.get('TIMEZONE', 'UTC'))
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=pytz.utc)
    return utc_dt.astimezone(tz).strftime(fmt)


def generate_access_key(length=8):
    """Generate random access key"""
    return "".join(secrets.choice(ACCESS_KEY_ALPHABET) for _ in range(length))


def get_client_ip():
    """Best-effort client address, honouring one reverse proxy hop"""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr or ''


def get_current_teacher():
    """Get current logged-in teacher"""
    from quizmaster.extensions import db
    from quizmaster.models import Teacher

    teacher_id = session.get("teacher_id")
    if teacher_id is None:
        return None
    return db.session.get(Teacher, teacher_id)


def login_teacher(teacher):
    session.clear()
    session["teacher_id"] = teacher.id
    session["teacher_name"] = teacher.name


# Decorators
def require_teacher(f):
    """
    Decorator to require a signed-in teacher
    Redirects to the login page when the session is missing or stale
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_teacher() is None:
            session.pop("teacher_id", None)
            session.pop("teacher_name", None)
            flash("Please log in to continue", "danger")
            return redirect(url_for("auth.login"))
        return f(*args, **kwargs)
    return decorated_function
