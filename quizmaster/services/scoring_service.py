"""
Scoring Service
Grades a finished attempt's answers against the questions' correct answers
"""
from quizmaster.models.question import QUESTION_TYPE_TEXT


class ScoringService:
    """Service for scoring answers"""

    @staticmethod
    def is_correct(question, answer_text, case_sensitive=True):
        """
        Check an answer against the question's single correct answer

        Returns None when the question has no correct answer to grade against.
        Free-text answers can be matched loosely (trimmed, case-folded) when
        ``case_sensitive`` is False; other types always match exactly.
        """
        if question.correct_answer is None:
            return None
        if answer_text is None:
            return False

        expected = question.correct_answer
        if question.type == QUESTION_TYPE_TEXT and not case_sensitive:
            return answer_text.strip().casefold() == expected.strip().casefold()
        return answer_text == expected

    @staticmethod
    def grade_answers(answers, questions, case_sensitive=True):
        """
        Set ``is_correct`` and ``points_earned`` on each answer in place

        Answers whose question is not in ``questions`` are left untouched.
        """
        by_id = {q.id: q for q in questions}
        for answer in answers:
            question = by_id.get(answer.question_id)
            if question is None:
                continue
            correct = ScoringService.is_correct(question, answer.answer, case_sensitive)
            answer.is_correct = correct
            answer.points_earned = question.points if correct else 0
        return answers

    @staticmethod
    def calculate_score(answers, questions):
        """
        Percentage score: points earned over the quiz's total points

        Unanswered questions still count towards the total. A quiz worth
        no points scores 0.
        """
        total_points = sum(q.points or 0 for q in questions)
        if total_points <= 0:
            return 0
        earned = sum(a.points_earned or 0 for a in answers)
        return round(earned / total_points * 100)
