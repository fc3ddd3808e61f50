"""
Exception types shared by the quiz parsing pipeline and the session controller.
"""


class QuizlatorError(Exception):
    """Base exception for quiz errors."""
    pass


class FetchFailure(QuizlatorError):
    """Raised when the model endpoint rejects, times out or returns no text."""
    pass


class EmptyQuizResult(FetchFailure):
    """Raised when no valid question line survives parsing."""
    pass


class MalformedCategoryResponse(QuizlatorError):
    """Raised when a category response holds fewer than 8 usable fragments."""
    pass


class UnmatchedCorrectAnswer(QuizlatorError):
    """Raised when a question's correct answer is not one of its options."""

    def __init__(self, question_text: str, correct_answer: str, options):
        self.question_text = question_text
        self.correct_answer = correct_answer
        self.options = list(options)
        super().__init__(
            f"Correct answer '{correct_answer}' not among options {self.options} "
            f"for question '{question_text}'"
        )


class InvalidSessionStateError(QuizlatorError):
    """Raised when the session is in an invalid state for the requested operation."""
    pass
