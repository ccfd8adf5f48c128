"""
Domain Errors
Raised by the services layer and handled at the route call sites
"""


class QuizMasterError(Exception):
    """Base class for application errors"""

    message = "Something went wrong. Please try again."

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class QuizLoadError(QuizMasterError):
    """Quiz, question list or attempt could not be loaded"""

    message = "Failed to load quiz. Please try again."


class AnswerWriteError(QuizMasterError):
    """Answer could not be stored"""

    message = "Failed to submit answer. Please try again."


class SubmissionError(QuizMasterError):
    """Final submission could not be stored"""

    message = "Failed to submit quiz. Please try again."


class SessionStateError(QuizMasterError):
    """Operation is not valid in the session's current state"""

    message = "This quiz has already been submitted."


class ValidationError(QuizMasterError):
    """Form input rejected; ``errors`` maps field names to messages"""

    message = "Please correct the highlighted fields."

    def __init__(self, errors, message=None):
        super().__init__(message)
        self.errors = errors
