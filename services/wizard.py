from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Sequence

from config import Config, Strings
from services.answer_store import AnswerStore
from services.error_utils import handle_exception
from services.errors import ValidationError
from services.logging_utils import get_logger
from services.questions import QUESTIONS, QuestionRegistry, max_files_for
from services.storage import Storage
from services.submission import SubmissionClient
from services.validator import check_file_selection, coerce_answer, is_answer_present, validate_step
from services.wizard_models import (
    AnswerValue,
    Direction,
    FileHandle,
    FilesAnswer,
    MultiSelectAnswer,
    Phase,
    QuestionDefinition,
    QuestionKind,
    StepValidation,
    SubmissionOutcome,
)


class WizardController:
    """
    Drives one respondent through the question list.

    States run ``welcome -> answering(0) -> ... -> answering(N-1) -> complete``
    and back to ``welcome`` through ``restart``. Phase and index live in the
    ``AnswerStore`` so every transition is persisted together with the
    answers.
    """

    def __init__(
        self,
        store: AnswerStore,
        client: Optional[SubmissionClient] = None,
        questions: Optional[QuestionRegistry] = None,
        session_id: Optional[str] = None,
        auto_advance_delay: Optional[float] = None,
    ):
        self.store = store
        self.questions = questions or store.questions or QUESTIONS
        self.client = client or SubmissionClient(questions=self.questions)
        self.session_id = session_id or store.session_id
        self.direction = Direction.FORWARD
        self.auto_advance_delay = (
            Config.AUTO_ADVANCE_DELAY if auto_advance_delay is None else auto_advance_delay
        )
        self.last_error: Optional[str] = None
        self.last_submission: Optional[SubmissionOutcome] = None
        self._auto_advance: Optional[asyncio.Task] = None
        self._submit_task: Optional[asyncio.Task] = None
        self._log().info("created", extra={"phase": self.phase.value, "index": self.current_index})

    @classmethod
    async def load(
        cls,
        storage: Storage,
        client: Optional[SubmissionClient] = None,
        questions: Optional[QuestionRegistry] = None,
        session_id: Optional[str] = None,
        auto_advance_delay: Optional[float] = None,
    ) -> "WizardController":
        """Build a controller from the last snapshot in ``storage``."""
        questions = questions or QUESTIONS
        store = await AnswerStore.load(storage, questions, session_id=session_id)
        return cls(store, client, questions, session_id, auto_advance_delay)

    # --- State accessors ---

    @property
    def phase(self) -> Phase:
        return self.store.phase

    @property
    def current_index(self) -> int:
        return self.store.index

    @property
    def answers(self) -> Dict[str, AnswerValue]:
        return self.store.answers

    @property
    def current_question(self) -> QuestionDefinition:
        return self.questions[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def loading(self) -> bool:
        """True while a submission is in flight."""
        return self._submit_task is not None and not self._submit_task.done()

    def can_go_next(self) -> bool:
        question = self.current_question
        return validate_step(question, self.store.get(question.id)).valid

    def _question(self, question_id: str) -> QuestionDefinition:
        question = self.questions.get(question_id)
        if question is None:
            raise KeyError(question_id)
        return question

    def _require_answering(self, question_id: str) -> None:
        # Answers are frozen outside the question screens
        if self.phase is not Phase.ANSWERING:
            raise ValidationError(Strings.NOT_ANSWERING, question_id)

    # --- Transitions ---

    async def start(self) -> None:
        """Leave the welcome screen for the first question."""
        if self.phase is not Phase.WELCOME:
            self._log().debug("start ignored", extra={"phase": self.phase.value})
            return
        self.direction = Direction.FORWARD
        await self.store.save_position(Phase.ANSWERING, 0)
        self._log().info("started")

    async def on_answer_change(self, question_id: str, value: Any) -> AnswerValue:
        """Record an answer without moving.

        Raises:
            KeyError: ``question_id`` is not in the registry
            ValidationError: ``value`` does not fit the question, or the
                wizard is not on the question screens
        """
        question = self._question(question_id)
        self._require_answering(question_id)
        answer = coerce_answer(question, value)
        # A newer answer always supersedes a pending auto-advance
        self._cancel_auto_advance()
        await self.store.set(question_id, answer)
        if (
            question is self.current_question
            and question.kind is QuestionKind.SINGLE_SELECT
            and is_answer_present(question, answer)
        ):
            self._schedule_auto_advance()
        return answer

    async def select_files(self, question_id: str, files: Sequence[FileHandle]) -> FilesAnswer:
        """Add a batch of picked files to an upload question.

        A batch larger than the question's cap is rejected as a whole.
        Multi-file questions append to what is already there (truncated to
        the cap); single-file questions keep only the first file.
        """
        question = self._question(question_id)
        self._require_answering(question_id)
        if question.kind is not QuestionKind.FILE_UPLOAD:
            raise ValidationError(Strings.INVALID_ANSWER, question_id)
        existing = self.store.get(question_id)
        current = existing.files if isinstance(existing, FilesAnswer) else ()
        if not files:
            return FilesAnswer(current)
        check_file_selection(question, files)
        if question.allow_multiple_files:
            selection = (tuple(current) + tuple(files))[: max_files_for(question)]
        else:
            selection = (files[0],)
        self._log().info("files selected", extra={"question_id": question_id, "file_count": len(selection)})
        return await self.on_answer_change(question_id, FilesAnswer(selection))

    async def remove_file(self, question_id: str, index: int) -> FilesAnswer:
        question = self._question(question_id)
        self._require_answering(question_id)
        existing = self.store.get(question_id)
        files = list(existing.files) if isinstance(existing, FilesAnswer) else []
        if question.kind is not QuestionKind.FILE_UPLOAD or not 0 <= index < len(files):
            raise ValidationError(Strings.NO_SUCH_FILE, question_id)
        del files[index]
        return await self.on_answer_change(question_id, FilesAnswer(tuple(files)))

    async def toggle_option(self, question_id: str, option: str) -> MultiSelectAnswer:
        """Check or uncheck one option of a multi-select question."""
        question = self._question(question_id)
        self._require_answering(question_id)
        if question.kind is not QuestionKind.MULTI_SELECT:
            raise ValidationError(Strings.INVALID_ANSWER, question_id)
        existing = self.store.get(question_id)
        current = existing if isinstance(existing, MultiSelectAnswer) else MultiSelectAnswer()
        return await self.on_answer_change(question_id, current.toggled(option))

    async def next(self) -> StepValidation:
        """Advance past the current question, or finish and submit on the last one."""
        self._cancel_auto_advance()
        if self.phase is not Phase.ANSWERING:
            return StepValidation(valid=False)

        question = self.current_question
        result = validate_step(question, self.store.get(question.id))
        if not result.valid:
            self.last_error = result.message
            self._log().info("required answer missing", extra={"question_id": question.id})
            return result

        self.last_error = None
        if self.current_index < len(self.questions) - 1:
            self.direction = Direction.FORWARD
            await self.store.save_position(Phase.ANSWERING, self.current_index + 1)
            self._log().info("advanced", extra={"index": self.current_index})
        else:
            await self.store.save_position(Phase.COMPLETE, self.current_index)
            self._log().info("completed")
            await self.submit()
        return result

    async def previous(self) -> None:
        self._cancel_auto_advance()
        if self.phase is not Phase.ANSWERING or self.current_index == 0:
            return
        self.direction = Direction.BACKWARD
        await self.store.save_position(Phase.ANSWERING, self.current_index - 1)
        self._log().info("went back", extra={"index": self.current_index})

    async def submit(self) -> SubmissionOutcome:
        """Send every answer to the collector once.

        The send runs in its own task: a caller that goes away does not
        cancel it, and a second call while it is in flight waits for the
        same result instead of sending again.
        """
        if self._submit_task is None or self._submit_task.done():
            self._submit_task = asyncio.create_task(self._submit_once())
        return await asyncio.shield(self._submit_task)

    async def _submit_once(self) -> SubmissionOutcome:
        try:
            result = await self.client.submit(dict(self.store.answers))
        except Exception as e:  # NetworkError, ServerError or anything unexpected
            outcome = SubmissionOutcome(success=False, message=handle_exception(e, session_id=self.session_id))
        else:
            await self.store.clear_all()
            outcome = SubmissionOutcome(
                success=True,
                message=Strings.SUBMIT_SUCCESS.format(file_count=result.file_count),
                file_urls=result.file_urls,
                file_count=result.file_count,
            )
        self.last_submission = outcome
        self._log().info("submission finished", extra={"success": outcome.success})
        return outcome

    async def restart(self) -> Optional[SubmissionOutcome]:
        """Return to the welcome screen from the completion screen.

        If the answers have not been delivered yet (the last attempt failed or
        none was made) they are sent again first, and the wizard only resets
        when that send succeeds. After a successful send it just resets, so
        the same answers are never delivered twice.
        """
        if self.phase is not Phase.COMPLETE:
            return None
        outcome = None
        if self.last_submission is None or not self.last_submission.success:
            outcome = await self.submit()
            if not outcome.success:
                return outcome
        self._cancel_auto_advance()
        self.direction = Direction.FORWARD
        self.store.answers.clear()
        self.last_submission = None
        self.last_error = None
        await self.store.save_position(Phase.WELCOME, 0)
        self._log().info("restarted")
        return outcome

    # --- Auto-advance ---

    def _schedule_auto_advance(self) -> None:
        self._auto_advance = asyncio.create_task(self._auto_advance_after(self.current_index))

    async def _auto_advance_after(self, index: int) -> None:
        await asyncio.sleep(self.auto_advance_delay)
        self._auto_advance = None
        if self.phase is Phase.ANSWERING and self.current_index == index:
            self._log().debug("auto-advancing", extra={"index": index})
            try:
                await self.next()
            except Exception as e:
                # Nobody awaits this task, so the failure is reported here
                self.last_error = handle_exception(e, session_id=self.session_id, index=index)

    def _cancel_auto_advance(self) -> None:
        task = self._auto_advance
        self._auto_advance = None
        if task is not None and not task.done():
            task.cancel()

    @property
    def auto_advance_pending(self) -> bool:
        return self._auto_advance is not None and not self._auto_advance.done()

    async def close(self) -> None:
        """Cancel a pending auto-advance. An in-flight submission is left to finish."""
        self._cancel_auto_advance()

    # --- Presentation ---

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the wizard for the presentation layer."""
        answers: Dict[str, Any] = {}
        for question_id, answer in self.store.answers.items():
            if isinstance(answer, FilesAnswer):
                answers[question_id] = [f.describe() for f in answer.files]
            elif isinstance(answer, MultiSelectAnswer):
                answers[question_id] = list(answer.values)
            else:
                answers[question_id] = answer.value

        state: Dict[str, Any] = {
            "sessionId": self.session_id,
            "phase": self.phase.value,
            "currentIndex": self.current_index,
            "totalQuestions": len(self.questions),
            "direction": self.direction.value,
            "answers": answers,
            "loading": self.loading,
            "lastError": self.last_error,
            "lastSubmission": self.last_submission.to_dict() if self.last_submission else None,
        }
        if self.phase is Phase.ANSWERING:
            state["question"] = self.current_question.to_dict()
            state["canGoNext"] = self.can_go_next()
            state["isFirst"] = self.is_first
            state["isLast"] = self.is_last
        return state

    # Internal: get contextual logger for this wizard instance
    def _log(self):
        return get_logger("wizard", {"sessionId": self.session_id})
