"""Exception taxonomy for the feedback wizard."""


class WizardError(Exception):
    """Base class for all wizard errors."""


class ValidationError(WizardError):
    """Raised when an answer is missing or has the wrong shape.

    ``message`` is user-facing and safe to show in the presentation layer.
    """

    def __init__(self, message: str, question_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.question_id = question_id


class FileReadError(WizardError):
    """Raised when an uploaded file cannot be converted to base64."""

    def __init__(self, file_name: str, reason: str = ""):
        super().__init__(f"{file_name}: {reason}" if reason else file_name)
        self.file_name = file_name


class SubmissionError(WizardError):
    """Raised when the collector call does not succeed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(SubmissionError):
    """The collector could not be reached."""


class ServerError(SubmissionError):
    """The collector answered with an error or an unreadable body."""


class PersistenceParseError(WizardError):
    """The durable snapshot could not be parsed."""
