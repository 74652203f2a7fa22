# User-facing strings
class Strings:
    # Validation
    REQUIRED_FIELD = "This field is required."
    UPLOAD_REQUIRED = "Please upload at least one file"
    TOO_MANY_FILES = "You can only select up to {max_files} files."
    INVALID_OPTION = "Please choose one of the listed options."
    INVALID_EMAIL = "Please enter a valid email address."
    INVALID_PHONE = "Please enter a valid mobile number."
    INVALID_DATE = "Please enter a valid date."
    FUTURE_DATE = "The class date cannot be in the future."
    NAME_TOO_SHORT = "Name must be at least 2 characters."
    INVALID_ANSWER = "This answer has the wrong shape for the question."
    NO_SUCH_FILE = "There is no file at that position."
    NOT_ANSWERING = "Answers can only be changed while the questions are open."

    # Submission
    SUBMIT_SUCCESS = "Form submitted with {file_count} file(s)"
    SUBMIT_FAILED = "Failed to submit form"
    SUBMISSION_FAILED = "Submission failed"
    NETWORK_ERROR = "Could not reach the form server. Please try again."
    FILE_READ_FAILED = "Failed to read file"

    # Generic
    TRY_AGAIN_LATER = "Something went wrong. Please try again later."
    SESSION_NOT_FOUND = "Session not found."
    QUESTION_NOT_FOUND = "Question not found."
    UNAUTHORIZED = "Unauthorized"
