"""Async client for the spreadsheet collector.

The collector is a Google Apps Script web app. It takes one JSON body::

    { name, email, mobile, classDate, classAttended, mentor,
      classFeedback, offlineAvailability,
      files: [ { name, data, mimeType, size }, ... ] }

where ``data`` is the base64 text of each file, appends a row to the sheet,
stores the files in Drive and answers with::

    { "status": "success", "message": ..., "fileUrls": [...], "fileCount": n }
    { "status": "error", "message": ... }

Files the collector fails to store are simply missing from ``fileUrls``; the
client reports whatever comes back and never retries.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from config import Config, Strings
from services.errors import FileReadError, NetworkError, ServerError
from services.logging_utils import get_logger
from services.questions import QUESTIONS, QuestionRegistry
from services.wizard_models import (
    AnswerValue,
    FileHandle,
    FilesAnswer,
    QuestionKind,
    SubmissionResult,
)


async def encode_file(handle: FileHandle) -> Dict[str, Any]:
    """Return the collector's file entry for ``handle``."""
    data = await handle.read()
    try:
        encoded = base64.b64encode(data).decode("ascii")
    except TypeError as e:
        raise FileReadError(handle.name, str(e)) from e
    return {
        "name": handle.name,
        "data": encoded,
        "mimeType": handle.mime_type,
        "size": handle.size,
    }


async def encode_files(handles: List[FileHandle]) -> List[Dict[str, Any]]:
    """Encode files concurrently, keeping input order and skipping unreadable ones."""
    results = await asyncio.gather(*(encode_file(h) for h in handles), return_exceptions=True)
    encoded: List[Dict[str, Any]] = []
    for handle, result in zip(handles, results):
        if isinstance(result, FileReadError):
            get_logger("submission.files").warning(
                "skipping unreadable file", extra={"file_name": handle.name, "reason": str(result)}
            )
            continue
        if isinstance(result, BaseException):
            raise result
        encoded.append(result)
    return encoded


class SubmissionClient:
    """One-shot POST of the wizard's answers to the collector."""

    def __init__(
        self,
        url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        questions: Optional[QuestionRegistry] = None,
    ) -> None:
        self.url = url or Config.COLLECTOR_URL
        self.session = session
        self.questions = questions or QUESTIONS

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or getattr(self.session, "closed", False):
            self.session = aiohttp.ClientSession()
        return self.session

    async def close(self) -> None:
        if self.session and not getattr(self.session, "closed", False):
            await self.session.close()

    async def build_payload(self, answers: Mapping[str, AnswerValue]) -> Dict[str, Any]:
        """Collector body: one string field per non-file question, plus ``files``."""
        payload: Dict[str, Any] = {}
        handles: List[FileHandle] = []
        for question in self.questions:
            answer = answers.get(question.id)
            if question.kind is QuestionKind.FILE_UPLOAD:
                if isinstance(answer, FilesAnswer):
                    handles.extend(answer.files)
                continue
            payload[question.field_name] = answer.serialize() if answer is not None else ""
        payload["files"] = await encode_files(handles)
        return payload

    async def submit(self, answers: Mapping[str, AnswerValue]) -> SubmissionResult:
        """Send ``answers`` and return the collector's report.

        Raises:
            NetworkError: the collector could not be reached
            ServerError: the collector answered without ``status: "success"``
        """
        log = get_logger("submission")
        payload = await self.build_payload(answers)
        log.info(
            "submitting",
            extra={"fields": [k for k in payload if k != "files"], "file_count": len(payload["files"])},
        )

        session = await self._get_session()
        try:
            async with session.post(self.url, json=payload) as resp:
                status_code = resp.status
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("collector unreachable", extra={"error": str(e)})
            raise NetworkError(Strings.NETWORK_ERROR) from e

        if not isinstance(data, dict):
            log.warning("unreadable collector response", extra={"http_status": status_code})
            raise ServerError(Strings.SUBMISSION_FAILED)
        if data.get("status") != "success":
            message = data.get("message") or Strings.SUBMISSION_FAILED
            log.warning("collector rejected submission", extra={"http_status": status_code, "server_message": message})
            raise ServerError(str(message))

        file_urls = [str(u) for u in data.get("fileUrls") or []]
        try:
            file_count = int(data.get("fileCount", len(file_urls)))
        except (TypeError, ValueError):
            file_count = len(file_urls)
        log.info("submitted", extra={"file_count": file_count})
        return SubmissionResult(
            success=True,
            file_urls=file_urls,
            file_count=file_count,
            message=str(data.get("message") or ""),
        )
