"""
Authentication Routes
Teacher sign-up, login and logout
"""
import logging

from flask import Blueprint, flash, redirect, render_template, request, session, url_for
from sqlalchemy.exc import IntegrityError

from quizmaster.extensions import db
from quizmaster.models import Teacher
from quizmaster.utils import get_current_teacher, login_teacher

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """Teacher registration"""
    if request.method == 'POST':
        email = (request.form.get('email') or '').strip().lower()
        name = (request.form.get('name') or '').strip()
        password = request.form.get('password') or ''

        if not email or '@' not in email or not name:
            flash('Enter a valid email and your name', 'error')

        elif len(password) < MIN_PASSWORD_LENGTH:
            flash(f'Password must be at least {MIN_PASSWORD_LENGTH} characters', 'error')

        elif Teacher.query.filter_by(email=email).first():
            flash('An account with this email already exists', 'error')

        else:
            teacher = Teacher(email=email, name=name)
            teacher.set_password(password)
            try:
                db.session.add(teacher)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                flash('An account with this email already exists', 'error')
                return render_template('register.html', email=email, name=name), 400

            logger.info("Teacher %s registered", teacher.id)
            login_teacher(teacher)
            flash('Account created. Welcome!', 'success')
            return redirect(url_for('teacher.dashboard'))

        return render_template('register.html', email=email, name=name), 400

    return render_template('register.html')


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Teacher login"""
    if get_current_teacher() is not None:
        return redirect(url_for('teacher.dashboard'))

    if request.method == 'POST':
        email = (request.form.get('email') or '').strip().lower()
        password = request.form.get('password') or ''

        teacher = Teacher.query.filter_by(email=email).first()

        if not teacher or not teacher.check_password(password):
            logger.warning("Failed login for %s", email)
            flash('Invalid email or password', 'error')
            return render_template('login.html', email=email), 401

        login_teacher(teacher)
        flash('Login successful!', 'success')
        return redirect(url_for('teacher.dashboard'))

    return render_template('login.html')


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """Teacher logout"""
    session.pop('teacher_id', None)
    session.pop('teacher_name', None)
    flash('Logged out successfully.', 'info')
    return redirect(url_for('public.index'))
