"""Presence, format and shape checks for wizard answers.

Everything here is a pure function of a question and an answer: the
controller uses ``validate_step`` to gate navigation, the presentation layer
runs ``validate_format`` before asking the controller to advance, and
``coerce_answer`` turns raw input into the answer variant the question's kind
expects.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Sequence

from config import Strings
from config.constants import MULTI_SELECT_SEPARATOR
from services.date_utils import is_future_date, is_valid_iso_date
from services.errors import ValidationError
from services.questions import max_files_for
from services.wizard_models import (
    AnswerValue,
    FileHandle,
    FilesAnswer,
    MultiSelectAnswer,
    QuestionDefinition,
    QuestionKind,
    StepValidation,
    TextAnswer,
)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_CHARS_RE = re.compile(r"^\+?[\d\s\-()]+$")
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
MIN_NAME_LENGTH = 2


def is_answer_present(question: QuestionDefinition, answer: Optional[AnswerValue]) -> bool:
    """Return True if ``answer`` counts as given for ``question``."""
    if answer is None:
        return False
    if question.kind is QuestionKind.FILE_UPLOAD:
        return isinstance(answer, FilesAnswer) and len(answer) > 0
    if question.kind is QuestionKind.MULTI_SELECT:
        return isinstance(answer, MultiSelectAnswer) and len(answer.values) > 0
    return isinstance(answer, TextAnswer) and answer.value.strip() != ""


def validate_step(question: QuestionDefinition, answer: Optional[AnswerValue]) -> StepValidation:
    """Gate navigation on presence: optional questions always pass."""
    if not question.required or is_answer_present(question, answer):
        return StepValidation(valid=True)
    if question.kind is QuestionKind.FILE_UPLOAD:
        return StepValidation(valid=False, message=Strings.UPLOAD_REQUIRED)
    return StepValidation(valid=False, message=Strings.REQUIRED_FIELD)


def validate_format(question: QuestionDefinition, answer: Optional[AnswerValue]) -> StepValidation:
    """Check the content of a given answer. Absent answers are left to ``validate_step``."""
    if not is_answer_present(question, answer):
        return StepValidation(valid=True)

    if isinstance(answer, TextAnswer):
        value = answer.value.strip()
        if question.kind is QuestionKind.EMAIL and not EMAIL_RE.match(value):
            return StepValidation(valid=False, message=Strings.INVALID_EMAIL)
        if question.kind is QuestionKind.PHONE and not _is_phone(value):
            return StepValidation(valid=False, message=Strings.INVALID_PHONE)
        if question.kind is QuestionKind.DATE:
            if not is_valid_iso_date(value):
                return StepValidation(valid=False, message=Strings.INVALID_DATE)
            if is_future_date(value):
                return StepValidation(valid=False, message=Strings.FUTURE_DATE)
        if question.kind is QuestionKind.SHORT_TEXT and question.id == "name" and len(value) < MIN_NAME_LENGTH:
            return StepValidation(valid=False, message=Strings.NAME_TOO_SHORT)
        if question.kind is QuestionKind.SINGLE_SELECT and value not in question.options:
            return StepValidation(valid=False, message=Strings.INVALID_OPTION)

    if isinstance(answer, MultiSelectAnswer) and any(v not in question.options for v in answer.values):
        return StepValidation(valid=False, message=Strings.INVALID_OPTION)

    if isinstance(answer, FilesAnswer) and len(answer) > max_files_for(question):
        return StepValidation(
            valid=False, message=Strings.TOO_MANY_FILES.format(max_files=max_files_for(question))
        )

    return StepValidation(valid=True)


def _is_phone(value: str) -> bool:
    if not PHONE_CHARS_RE.match(value):
        return False
    digits = sum(ch.isdigit() for ch in value)
    return MIN_PHONE_DIGITS <= digits <= MAX_PHONE_DIGITS


def check_file_selection(question: QuestionDefinition, files: Sequence[FileHandle]) -> None:
    """Reject a file selection larger than the question allows."""
    max_files = max_files_for(question)
    if len(files) > max_files:
        raise ValidationError(Strings.TOO_MANY_FILES.format(max_files=max_files), question.id)


def variant_for(question: QuestionDefinition) -> type:
    """Answer class a question of this kind stores."""
    if question.kind is QuestionKind.FILE_UPLOAD:
        return FilesAnswer
    if question.kind is QuestionKind.MULTI_SELECT:
        return MultiSelectAnswer
    return TextAnswer


def coerce_answer(question: QuestionDefinition, raw: Any) -> AnswerValue:
    """Convert raw presentation input into the answer variant for ``question``.

    Text kinds take a string. Single-select takes one of the options (or an
    empty string to clear). Multi-select takes a comma-joined string or a
    list of options. File uploads take a ``FilesAnswer`` or a list of
    ``FileHandle``.
    """
    if isinstance(raw, (TextAnswer, MultiSelectAnswer, FilesAnswer)):
        if not isinstance(raw, variant_for(question)):
            raise ValidationError(Strings.INVALID_ANSWER, question.id)
        answer = raw
    elif question.kind is QuestionKind.FILE_UPLOAD:
        answer = _coerce_files(question, raw)
    elif question.kind is QuestionKind.MULTI_SELECT:
        answer = MultiSelectAnswer(_split_options(question, raw))
    elif raw is None:
        answer = TextAnswer("")
    elif isinstance(raw, str):
        answer = TextAnswer(raw)
    else:
        raise ValidationError(Strings.INVALID_ANSWER, question.id)

    if isinstance(answer, FilesAnswer):
        check_file_selection(question, answer.files)
    elif isinstance(answer, MultiSelectAnswer):
        if any(v not in question.options for v in answer.values):
            raise ValidationError(Strings.INVALID_OPTION, question.id)
    elif question.kind is QuestionKind.SINGLE_SELECT and answer.value and answer.value not in question.options:
        raise ValidationError(Strings.INVALID_OPTION, question.id)
    return answer


def _coerce_files(question: QuestionDefinition, raw: Any) -> FilesAnswer:
    if raw is None:
        return FilesAnswer()
    if isinstance(raw, FileHandle):
        return FilesAnswer((raw,))
    if isinstance(raw, (list, tuple)) and all(isinstance(f, FileHandle) for f in raw):
        return FilesAnswer(tuple(raw))
    raise ValidationError(Strings.INVALID_ANSWER, question.id)


def _split_options(question: QuestionDefinition, raw: Any) -> tuple:
    if raw is None:
        return ()
    if isinstance(raw, str):
        parts: Iterable[Any] = raw.split(MULTI_SELECT_SEPARATOR) if raw else []
    elif isinstance(raw, (list, tuple, set, frozenset)):
        parts = raw
    else:
        raise ValidationError(Strings.INVALID_ANSWER, question.id)
    values = []
    for part in parts:
        if not isinstance(part, str):
            raise ValidationError(Strings.INVALID_ANSWER, question.id)
        if part and part not in values:
            values.append(part)
    return tuple(values)
