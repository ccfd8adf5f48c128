"""
Teacher Routes
Dashboard, quiz creation, question editing and per-quiz results
"""
from flask import Blueprint, abort, flash, redirect, render_template, request, session, url_for

from quizmaster.errors import QuizMasterError, ValidationError
from quizmaster.models import Quiz
from quizmaster.models.question import QUESTION_TYPE_LABELS
from quizmaster.services import AuthoringService, ResultsService
from quizmaster.services.authoring_service import MAX_OPTIONS
from quizmaster.utils import require_teacher

teacher_bp = Blueprint('teacher', __name__)


def owned_quiz_or_404(quiz_id):
    quiz = AuthoringService.get_owned_quiz(session['teacher_id'], quiz_id)
    if quiz is None:
        abort(404)
    return quiz


@teacher_bp.route('/dashboard')
@require_teacher
def dashboard():
    """Teacher dashboard"""
    teacher_id = session['teacher_id']
    quizzes = Quiz.query.filter_by(teacher_id=teacher_id)\
        .order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()

    return render_template(
        'dashboard.html',
        quizzes=quizzes,
        summary=ResultsService.dashboard_summary(teacher_id),
        attempt_counts=ResultsService.quiz_attempt_counts(teacher_id),
        teacher_name=session.get('teacher_name'),
    )


@teacher_bp.route('/quizzes/create', methods=['GET', 'POST'])
@require_teacher
def create_quiz():
    """Quiz creation form"""
    if request.method == 'POST':
        try:
            quiz = AuthoringService.create_quiz(session['teacher_id'], request.form)
        except ValidationError as e:
            flash(e.message, 'error')
            return render_template('create_quiz.html', form=request.form, errors=e.errors), 400
        except QuizMasterError as e:
            flash(e.message, 'error')
            return render_template('create_quiz.html', form=request.form, errors={}), 500

        flash('Quiz created successfully. Now you can add questions to your quiz.', 'success')
        return redirect(url_for('teacher.edit_quiz', quiz_id=quiz.id))

    return render_template('create_quiz.html', form={}, errors={})


@teacher_bp.route('/quizzes/<int:quiz_id>/edit', methods=['GET', 'POST'])
@require_teacher
def edit_quiz(quiz_id):
    """List questions and add a new one at the end"""
    quiz = owned_quiz_or_404(quiz_id)
    errors = {}
    status = 200

    if request.method == 'POST':
        try:
            AuthoringService.add_question(quiz, request.form)
        except ValidationError as e:
            flash(e.message, 'error')
            errors, status = e.errors, 400
        except QuizMasterError as e:
            flash(e.message, 'error')
            status = 500
        else:
            flash('Question added successfully', 'success')
            return redirect(url_for('teacher.edit_quiz', quiz_id=quiz.id))

    return render_template(
        'edit_quiz.html',
        quiz=quiz,
        questions=quiz.questions,
        question_types=QUESTION_TYPE_LABELS,
        max_options=MAX_OPTIONS,
        form=request.form if errors else {},
        errors=errors,
    ), status


@teacher_bp.route('/quizzes/<int:quiz_id>')
@require_teacher
def quiz_results(quiz_id):
    """Attempts and scores for one quiz"""
    quiz = owned_quiz_or_404(quiz_id)
    return render_template(
        'quiz_results.html',
        quiz=quiz,
        results=ResultsService.quiz_results(quiz.id),
    )
