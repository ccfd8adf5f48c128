"""
Public Routes
Landing page and the student entry form
"""
from flask import Blueprint, flash, redirect, render_template, request, url_for

public_bp = Blueprint('public', __name__)


@public_bp.route('/')
def index():
    """Homepage"""
    return render_template('index.html')


@public_bp.route('/join', methods=['POST'])
def join():
    """Student entry form: name + access key"""
    student_name = (request.form.get('name') or '').strip()
    access_key = (request.form.get('access_key') or '').strip()

    if not student_name or not access_key:
        flash('Enter your name and the quiz access key.', 'error')
        return render_template('index.html', name=student_name, access_key=access_key), 400

    return redirect(url_for('student.take_quiz', access_key=access_key, name=student_name))
