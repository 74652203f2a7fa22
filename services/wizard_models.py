from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from config.constants import ACCEPTED_FILE_TYPES, MULTI_SELECT_SEPARATOR
from services.errors import FileReadError


class QuestionKind(str, Enum):
    """Input kinds a question can take."""

    SHORT_TEXT = "short-text"
    EMAIL = "email"
    PHONE = "phone"
    LONG_TEXT = "long-text"
    SINGLE_SELECT = "single-select"
    DATE = "date"
    FILE_UPLOAD = "file-upload"
    MULTI_SELECT = "multi-select"


class Phase(str, Enum):
    """Top-level wizard view. Values are the persisted ``currentStep`` strings."""

    WELCOME = "welcome"
    ANSWERING = "questions"
    COMPLETE = "complete"


class Direction(str, Enum):
    """Last navigation direction, used only to pick a transition animation."""

    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class QuestionDefinition:
    """A single question in the wizard."""

    id: str
    kind: QuestionKind
    title: str
    required: bool = True
    subtitle: Optional[str] = None
    placeholder: Optional[str] = None
    options: Tuple[str, ...] = ()
    allow_multiple_files: bool = False
    max_files: Optional[int] = None
    payload_key: Optional[str] = None

    @property
    def field_name(self) -> str:
        """Name of this answer's field in the collector payload."""
        return self.payload_key or self.id

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "required": self.required,
        }
        if self.subtitle is not None:
            data["subtitle"] = self.subtitle
        if self.placeholder is not None:
            data["placeholder"] = self.placeholder
        if self.options:
            data["options"] = list(self.options)
        if self.kind is QuestionKind.FILE_UPLOAD:
            data["allowMultipleFiles"] = self.allow_multiple_files
            data["maxFiles"] = self.max_files
            data["accept"] = ACCEPTED_FILE_TYPES
        return data


@dataclass(frozen=True)
class FileHandle:
    """An uploaded file: either raw bytes in memory or a path to read them from."""

    name: str
    size: int
    mime_type: str = "application/octet-stream"
    data: Optional[bytes] = field(default=None, repr=False)
    path: Optional[Path] = None

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: Optional[str] = None) -> "FileHandle":
        return cls(name=name, size=len(data), mime_type=mime_type or "application/octet-stream", data=data)

    async def read(self) -> bytes:
        """Return the file's bytes, reading from disk off the event loop when needed."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise FileReadError(self.name, "no content")
        try:
            return await asyncio.to_thread(Path(self.path).read_bytes)
        except OSError as e:
            raise FileReadError(self.name, str(e)) from e

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "size": self.size, "mimeType": self.mime_type}


@dataclass(frozen=True)
class TextAnswer:
    """Answer for text, date and single-select questions."""

    value: str

    def serialize(self) -> str:
        return self.value


@dataclass(frozen=True)
class MultiSelectAnswer:
    """Set of chosen options, kept in the order they were picked."""

    values: Tuple[str, ...] = ()

    def serialize(self) -> str:
        return MULTI_SELECT_SEPARATOR.join(self.values)

    def toggled(self, option: str) -> "MultiSelectAnswer":
        if option in self.values:
            return MultiSelectAnswer(tuple(v for v in self.values if v != option))
        return MultiSelectAnswer(self.values + (option,))


@dataclass(frozen=True)
class FilesAnswer:
    """Ordered file selection for an upload question. Never persisted."""

    files: Tuple[FileHandle, ...] = ()

    def __len__(self) -> int:
        return len(self.files)


AnswerValue = Union[TextAnswer, MultiSelectAnswer, FilesAnswer]


@dataclass(frozen=True)
class StepValidation:
    """Outcome of validating the current step."""

    valid: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"valid": self.valid}
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass(frozen=True)
class SubmissionResult:
    """Successful collector response."""

    success: bool
    file_urls: List[str] = field(default_factory=list)
    file_count: int = 0
    message: str = ""


@dataclass(frozen=True)
class SubmissionOutcome:
    """What the controller reports after a submission attempt."""

    success: bool
    message: str
    file_urls: List[str] = field(default_factory=list)
    file_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "fileUrls": list(self.file_urls),
            "fileCount": self.file_count,
        }
