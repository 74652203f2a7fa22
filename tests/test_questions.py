import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from config import Config
from services.questions import QUESTIONS, QuestionRegistry, max_files_for
from services.wizard_models import QuestionDefinition, QuestionKind


def test_registry_order_and_ids():
    ids = [q.id for q in QUESTIONS]
    assert ids == [
        "name",
        "email",
        "mobile",
        "classDate",
        "classAttended",
        "mentor",
        "classFeedback",
        "assignmentUpload",
        "offlineClassAvailability",
    ]
    assert len(set(ids)) == len(ids)
    assert QUESTIONS.index_of("assignmentUpload") == 7


def test_registry_question_details():
    upload = QUESTIONS.get("assignmentUpload")
    assert upload.kind is QuestionKind.FILE_UPLOAD
    assert upload.allow_multiple_files is True
    assert max_files_for(upload) == 5

    availability = QUESTIONS.get("offlineClassAvailability")
    assert availability.required is False
    assert availability.field_name == "offlineAvailability"
    assert "Monday" not in availability.options

    assert QUESTIONS.get("classAttended").options[0] == "B1"
    assert QUESTIONS.get("classAttended").options[-1] == "INT 10"
    assert QUESTIONS.get("missing") is None


def test_duplicate_ids_rejected():
    q = QuestionDefinition(id="a", kind=QuestionKind.SHORT_TEXT, title="A")
    with pytest.raises(ValueError, match="duplicate"):
        QuestionRegistry([q, q])


def test_select_needs_options():
    with pytest.raises(ValueError, match="options"):
        QuestionRegistry([QuestionDefinition(id="s", kind=QuestionKind.SINGLE_SELECT, title="S")])


def test_option_with_separator_rejected():
    q = QuestionDefinition(id="m", kind=QuestionKind.MULTI_SELECT, title="M", options=("a,b", "c"))
    with pytest.raises(ValueError, match="may not contain"):
        QuestionRegistry([q])


def test_max_files_only_on_uploads():
    q = QuestionDefinition(id="t", kind=QuestionKind.SHORT_TEXT, title="T", max_files=3)
    with pytest.raises(ValueError, match="max_files"):
        QuestionRegistry([q])


def test_max_files_defaults_to_config():
    q = QuestionDefinition(id="f", kind=QuestionKind.FILE_UPLOAD, title="F")
    assert max_files_for(q) == Config.DEFAULT_MAX_FILES


def test_to_list_describes_uploads():
    described = {q["id"]: q for q in QUESTIONS.to_list()}
    assert described["assignmentUpload"]["maxFiles"] == 5
    assert described["assignmentUpload"]["allowMultipleFiles"] is True
    assert described["assignmentUpload"]["accept"] == ".pdf,image/*,.doc,.docx"
    assert described["mentor"]["options"][0] == "Edwin"
    assert "options" not in described["name"]
