import base64
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import aiohttp
import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from config import Strings
from services.errors import NetworkError, ServerError
from services.submission import SubmissionClient, encode_file
from services.wizard_models import FileHandle, FilesAnswer, MultiSelectAnswer, TextAnswer


class MockResponse:
    """Simple mock for aiohttp response."""

    def __init__(self, status: int, data: Any):
        self.status = status
        self._data = data

    async def json(self, content_type=None) -> Any:
        if isinstance(self._data, Exception):
            raise self._data
        return self._data

    async def __aenter__(self) -> "MockResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class DummySession:
    """Session that records calls and returns a predefined response."""

    def __init__(self, response: MockResponse | None = None, error: Exception | None = None) -> None:
        self.post_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.post_response = response
        self.post_error = error
        self.closed = False

    def post(self, url: str, json: Dict[str, Any]):
        self.post_calls.append((url, json))
        if self.post_error is not None:
            raise self.post_error
        return self.post_response

    async def close(self) -> None:
        self.closed = True


def success(file_urls=None, file_count=None):
    urls = file_urls or []
    return MockResponse(200, {
        "status": "success",
        "message": "Form submitted successfully",
        "fileUrls": urls,
        "fileCount": len(urls) if file_count is None else file_count,
    })


ANSWERS = {
    "name": TextAnswer("Asha"),
    "email": TextAnswer("asha@example.com"),
    "mobile": TextAnswer("9876543210"),
    "classDate": TextAnswer("2024-05-01"),
    "classAttended": TextAnswer("B4"),
    "mentor": TextAnswer("Sriram"),
    "classFeedback": TextAnswer("Average"),
}


@pytest.mark.asyncio
async def test_payload_carries_base64_file():
    content = bytes(range(256)) * 4
    handle = FileHandle.from_bytes("hw.pdf", content, "application/pdf")
    session = DummySession(success(["https://drive.example/hw"]))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    result = await client.submit({**ANSWERS, "assignmentUpload": FilesAnswer((handle,))})

    url, payload = session.post_calls[0]
    assert url == "https://collector.example/exec"
    assert payload["files"] == [{
        "name": "hw.pdf",
        "data": base64.b64encode(content).decode("ascii"),
        "mimeType": "application/pdf",
        "size": 1024,
    }]
    assert result.success is True
    assert result.file_urls == ["https://drive.example/hw"]
    assert result.file_count == 1


@pytest.mark.asyncio
async def test_payload_fields_and_defaults():
    session = DummySession(success())
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    await client.submit({
        "name": TextAnswer("Asha"),
        "offlineClassAvailability": MultiSelectAnswer(("Sunday", "Friday")),
    })

    _, payload = session.post_calls[0]
    assert payload == {
        "name": "Asha",
        "email": "",
        "mobile": "",
        "classDate": "",
        "classAttended": "",
        "mentor": "",
        "classFeedback": "",
        "offlineAvailability": "Sunday,Friday",
        "files": [],
    }


@pytest.mark.asyncio
async def test_error_status_raises_server_message():
    session = DummySession(MockResponse(200, {"status": "error", "message": "quota exceeded"}))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    with pytest.raises(ServerError) as exc:
        await client.submit(ANSWERS)
    assert exc.value.message == "quota exceeded"


@pytest.mark.asyncio
async def test_error_without_message_uses_default():
    session = DummySession(MockResponse(500, {"status": "error"}))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    with pytest.raises(ServerError) as exc:
        await client.submit(ANSWERS)
    assert exc.value.message == Strings.SUBMISSION_FAILED


@pytest.mark.asyncio
async def test_unreadable_body_is_a_server_error():
    session = DummySession(MockResponse(502, ValueError("not json")))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    with pytest.raises(ServerError) as exc:
        await client.submit(ANSWERS)
    assert exc.value.message == Strings.SUBMISSION_FAILED


@pytest.mark.asyncio
async def test_connection_failure_is_a_network_error():
    session = DummySession(error=aiohttp.ClientConnectionError("refused"))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    with pytest.raises(NetworkError) as exc:
        await client.submit(ANSWERS)
    assert exc.value.message == Strings.NETWORK_ERROR


@pytest.mark.asyncio
async def test_unreadable_file_is_skipped(tmp_path):
    on_disk = tmp_path / "notes.txt"
    on_disk.write_bytes(b"notes")
    files = (
        FileHandle.from_bytes("first.png", b"\x89PNG", "image/png"),
        FileHandle(name="gone.pdf", size=10, mime_type="application/pdf", path=tmp_path / "missing.pdf"),
        FileHandle(name="notes.txt", size=5, mime_type="text/plain", path=on_disk),
    )
    session = DummySession(success(["u1", "u2"]))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    result = await client.submit({**ANSWERS, "assignmentUpload": FilesAnswer(files)})

    _, payload = session.post_calls[0]
    assert [f["name"] for f in payload["files"]] == ["first.png", "notes.txt"]
    assert payload["files"][1]["data"] == base64.b64encode(b"notes").decode("ascii")
    assert result.file_count == 2


@pytest.mark.asyncio
async def test_file_count_echoes_collector():
    files = tuple(FileHandle.from_bytes(f"{i}.pdf", b"x", "application/pdf") for i in range(2))
    session = DummySession(success(["u1"], file_count=2))
    client = SubmissionClient(url="https://collector.example/exec", session=session)

    result = await client.submit({**ANSWERS, "assignmentUpload": FilesAnswer(files)})

    assert result.file_urls == ["u1"]
    assert result.file_count == 2


@pytest.mark.asyncio
async def test_encode_file_reads_from_disk(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"\xff\xd8\xff")
    entry = await encode_file(FileHandle(name="photo.jpg", size=3, mime_type="image/jpeg", path=path))
    assert entry == {"name": "photo.jpg", "data": "/9j/", "mimeType": "image/jpeg", "size": 3}


@pytest.mark.asyncio
async def test_close_closes_injected_session():
    session = DummySession(success())
    client = SubmissionClient(url="https://collector.example/exec", session=session)
    await client.close()
    assert session.closed


@pytest.mark.asyncio
async def test_successful_submission_clears_wizard():
    from services.storage import MemoryStorage
    from services.wizard import WizardController
    from services.wizard_models import Phase

    session = DummySession(success(["u1", "u2"]))
    client = SubmissionClient(url="https://collector.example/exec", session=session)
    storage = MemoryStorage()
    wizard = await WizardController.load(storage, client=client, session_id="s1")
    for question_id, answer in ANSWERS.items():
        await wizard.store.set(question_id, answer)
    await wizard.store.set(
        "assignmentUpload",
        FilesAnswer(tuple(FileHandle.from_bytes(f"{i}.pdf", b"x", "application/pdf") for i in range(2))),
    )
    await wizard.store.save_position(Phase.COMPLETE, 8)

    outcome = await wizard.submit()

    assert outcome.success is True
    assert outcome.file_count == 2
    assert outcome.file_urls == ["u1", "u2"]
    assert wizard.answers == {}
    assert storage.data == {}
