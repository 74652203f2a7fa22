from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from config import Config
from config.constants import (
    CLASS_OPTIONS,
    FEEDBACK_OPTIONS,
    MENTOR_OPTIONS,
    MULTI_SELECT_SEPARATOR,
    OFFLINE_DAY_OPTIONS,
)
from services.wizard_models import QuestionDefinition, QuestionKind

SELECT_KINDS = (QuestionKind.SINGLE_SELECT, QuestionKind.MULTI_SELECT)


class QuestionRegistry:
    """Ordered, id-indexed collection of questions.

    Order defines navigation order. Construction rejects duplicate ids,
    select questions without options and option labels that would not
    survive comma-joined storage.
    """

    def __init__(self, questions: Iterable[QuestionDefinition]):
        self.questions: List[QuestionDefinition] = list(questions)
        if not self.questions:
            raise ValueError("a wizard needs at least one question")
        self._by_id: Dict[str, QuestionDefinition] = {}
        for question in self.questions:
            if question.id in self._by_id:
                raise ValueError(f"duplicate question id: {question.id}")
            if question.kind in SELECT_KINDS:
                if not question.options:
                    raise ValueError(f"{question.id}: select questions need options")
                if any(MULTI_SELECT_SEPARATOR in option for option in question.options):
                    raise ValueError(f"{question.id}: options may not contain '{MULTI_SELECT_SEPARATOR}'")
            elif question.options:
                raise ValueError(f"{question.id}: only select questions take options")
            if question.kind is not QuestionKind.FILE_UPLOAD and question.max_files is not None:
                raise ValueError(f"{question.id}: only file-upload questions take max_files")
            if question.max_files is not None and question.max_files < 1:
                raise ValueError(f"{question.id}: max_files must be positive")
            self._by_id[question.id] = question

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self):
        return iter(self.questions)

    def __getitem__(self, index: int) -> QuestionDefinition:
        return self.questions[index]

    def get(self, question_id: str) -> Optional[QuestionDefinition]:
        return self._by_id.get(question_id)

    def index_of(self, question_id: str) -> int:
        return self.questions.index(self._by_id[question_id])

    def to_list(self) -> List[dict]:
        return [q.to_dict() for q in self.questions]


def max_files_for(question: QuestionDefinition) -> int:
    """Effective file cap for an upload question."""
    if question.max_files is not None:
        return question.max_files
    return Config.DEFAULT_MAX_FILES


QUESTIONS = QuestionRegistry([
    QuestionDefinition(
        id="name",
        kind=QuestionKind.SHORT_TEXT,
        title="1. Name",
        placeholder="Enter your full name",
    ),
    QuestionDefinition(
        id="email",
        kind=QuestionKind.EMAIL,
        title="2. Email Address",
        placeholder="Enter your email address",
    ),
    QuestionDefinition(
        id="mobile",
        kind=QuestionKind.PHONE,
        title="3. Mobile No",
        placeholder="Enter your mobile number",
    ),
    QuestionDefinition(
        id="classDate",
        kind=QuestionKind.DATE,
        title="4. Class Attended Date",
    ),
    QuestionDefinition(
        id="classAttended",
        kind=QuestionKind.SINGLE_SELECT,
        title="5. Class Attended",
        options=tuple(CLASS_OPTIONS),
    ),
    QuestionDefinition(
        id="mentor",
        kind=QuestionKind.SINGLE_SELECT,
        title="6. Mentor",
        options=tuple(MENTOR_OPTIONS),
    ),
    QuestionDefinition(
        id="classFeedback",
        kind=QuestionKind.SINGLE_SELECT,
        title="7. How was the class?",
        options=tuple(FEEDBACK_OPTIONS),
    ),
    QuestionDefinition(
        id="assignmentUpload",
        kind=QuestionKind.FILE_UPLOAD,
        title="8. Upload Your Assignment",
        subtitle="You can upload multiple files (PDF, images, or documents)",
        allow_multiple_files=True,
        max_files=5,
    ),
    QuestionDefinition(
        id="offlineClassAvailability",
        kind=QuestionKind.MULTI_SELECT,
        title="9. If we are planning extra offline classes, when will you be free?",
        required=False,
        options=tuple(OFFLINE_DAY_OPTIONS),
        payload_key="offlineAvailability",
    ),
])
