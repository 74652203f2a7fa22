from services.errors import (
    WizardError,
    ValidationError,
    FileReadError,
    SubmissionError,
    NetworkError,
    ServerError,
    PersistenceParseError,
)
from services.questions import QUESTIONS, QuestionRegistry
from services.storage import (
    Storage,
    MemoryStorage,
    SharedMemoryStorage,
    JsonFileStorage,
    DatabaseStorage,
    create_storage,
)
from services.answer_store import AnswerStore
from services.submission import SubmissionClient
from services.wizard import WizardController
from services.session import SessionManager

__all__ = [
    'WizardError',
    'ValidationError',
    'FileReadError',
    'SubmissionError',
    'NetworkError',
    'ServerError',
    'PersistenceParseError',
    'QUESTIONS',
    'QuestionRegistry',
    'Storage',
    'MemoryStorage',
    'SharedMemoryStorage',
    'JsonFileStorage',
    'DatabaseStorage',
    'create_storage',
    'AnswerStore',
    'SubmissionClient',
    'WizardController',
    'SessionManager',
]
