from __future__ import annotations

import json
from typing import Dict, Optional, Tuple

from config.constants import SnapshotKey
from services.errors import PersistenceParseError, ValidationError
from services.logging_utils import get_logger
from services.questions import QuestionRegistry
from services.storage import Storage
from services.validator import coerce_answer
from services.wizard_models import AnswerValue, FilesAnswer, Phase, QuestionKind


class AnswerStore:
    """
    Current answers plus the durable cursor (phase and question index).

    Every change is written back to ``storage`` as a three-key snapshot:
    ``currentStep``, ``currentQuestionIndex`` and ``answers``. File answers
    stay in memory only; their bytes never reach the snapshot.
    """

    def __init__(
        self,
        storage: Storage,
        questions: QuestionRegistry,
        answers: Optional[Dict[str, AnswerValue]] = None,
        phase: Phase = Phase.WELCOME,
        index: int = 0,
        session_id: Optional[str] = None,
    ):
        self.storage = storage
        self.questions = questions
        self.answers: Dict[str, AnswerValue] = dict(answers or {})
        self.phase = phase
        self.index = index
        self.session_id = session_id

    @classmethod
    async def load(
        cls, storage: Storage, questions: QuestionRegistry, session_id: Optional[str] = None
    ) -> "AnswerStore":
        """Rebuild a store from the last snapshot in ``storage``.

        A snapshot that cannot be parsed is discarded and the store starts
        over at the welcome screen with no answers.
        """
        store = cls(storage, questions, session_id=session_id)
        try:
            store.phase, store.index, store.answers = await store._read_snapshot()
        except PersistenceParseError as e:
            store._log().warning("discarding corrupt snapshot", extra={"reason": str(e)})
            store.phase, store.index, store.answers = Phase.WELCOME, 0, {}
            await store._remove_snapshot()
        return store

    async def _read_snapshot(self) -> Tuple[Phase, int, Dict[str, AnswerValue]]:
        raw_step = await self.storage.get(SnapshotKey.CURRENT_STEP.value)
        raw_index = await self.storage.get(SnapshotKey.CURRENT_QUESTION_INDEX.value)
        raw_answers = await self.storage.get(SnapshotKey.ANSWERS.value)

        try:
            phase = Phase(raw_step) if raw_step else Phase.WELCOME
        except ValueError as e:
            raise PersistenceParseError(f"unknown step {raw_step!r}") from e

        try:
            index = int(raw_index) if raw_index else 0
        except ValueError as e:
            raise PersistenceParseError(f"bad question index {raw_index!r}") from e
        if not 0 <= index < len(self.questions):
            raise PersistenceParseError(f"question index {index} out of range")

        answers: Dict[str, AnswerValue] = {}
        if raw_answers:
            try:
                parsed = json.loads(raw_answers)
            except ValueError as e:
                raise PersistenceParseError("answers are not valid JSON") from e
            if not isinstance(parsed, dict):
                raise PersistenceParseError("answers are not an object")
            for question_id, raw in parsed.items():
                question = self.questions.get(question_id)
                # Uploads are never re-hydrated; unknown ids belong to an older form
                if question is None or question.kind is QuestionKind.FILE_UPLOAD:
                    continue
                if not isinstance(raw, str):
                    raise PersistenceParseError(f"answer for {question_id} is not a string")
                try:
                    answers[question_id] = coerce_answer(question, raw)
                except ValidationError as e:
                    raise PersistenceParseError(f"answer for {question_id}: {e.message}") from e
        return phase, index, answers

    def get(self, question_id: str) -> Optional[AnswerValue]:
        return self.answers.get(question_id)

    async def set(self, question_id: str, value: AnswerValue) -> None:
        """Replace the answer for ``question_id`` and persist the snapshot."""
        self.answers[question_id] = value
        self._log().debug("answer set", extra={"question_id": question_id})
        await self.persist()

    async def save_position(self, phase: Phase, index: int) -> None:
        """Update the durable cursor and persist the snapshot."""
        self.phase = phase
        self.index = index
        await self.persist()

    async def clear_all(self) -> None:
        """Drop every answer and the persisted snapshot."""
        self.answers.clear()
        await self._remove_snapshot()
        self._log().info("cleared")

    def serializable_answers(self) -> Dict[str, str]:
        """Answers as stored on disk: file uploads omitted."""
        return {
            question_id: answer.serialize()
            for question_id, answer in self.answers.items()
            if not isinstance(answer, FilesAnswer)
        }

    async def persist(self) -> None:
        await self.storage.set(SnapshotKey.CURRENT_STEP.value, self.phase.value)
        await self.storage.set(SnapshotKey.CURRENT_QUESTION_INDEX.value, str(self.index))
        await self.storage.set(SnapshotKey.ANSWERS.value, json.dumps(self.serializable_answers()))

    async def _remove_snapshot(self) -> None:
        for key in SnapshotKey:
            await self.storage.remove(key.value)

    def _log(self):
        return get_logger("answer_store", {"sessionId": self.session_id})
