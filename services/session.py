import uuid
from typing import Callable, Optional, Tuple

from cachetools import TTLCache
from config import Config
from services.logging_utils import get_logger
from services.questions import QUESTIONS, QuestionRegistry
from services.storage import Storage, create_storage
from services.submission import SubmissionClient
from services.wizard import WizardController


def is_valid_session_id(session_id: Optional[str]) -> bool:
    """Session ids are UUIDs; anything else is never used as a storage key."""
    if not session_id or not isinstance(session_id, str):
        return False
    try:
        return str(uuid.UUID(session_id)) == session_id
    except ValueError:
        return False


class SessionManager:
    """
    Maps session ids to live wizard controllers.
    Implements a TTL cache to automatically expire idle controllers; an
    expired session is rebuilt from its durable snapshot on next access.
    """

    def __init__(
        self,
        storage_factory: Optional[Callable[[str], Storage]] = None,
        client: Optional[SubmissionClient] = None,
        questions: Optional[QuestionRegistry] = None,
        ttl: Optional[int] = None,
        auto_advance_delay: Optional[float] = None,
    ):
        """Initialize the session manager with a TTL cache."""
        self.sessions = TTLCache(maxsize=1024, ttl=ttl if ttl is not None else Config.SESSION_TTL)
        self.storage_factory = storage_factory or create_storage
        self.questions = questions or QUESTIONS
        self.client = client or SubmissionClient(questions=self.questions)
        self.auto_advance_delay = auto_advance_delay

    async def get(self, session_id: str) -> Optional[WizardController]:
        """
        Returns the live controller for a session, restoring it from its
        snapshot when it is not cached.

        Args:
            session_id: Session id previously handed to the client

        Returns:
            The controller, or None if the id is malformed
        """
        if not is_valid_session_id(session_id):
            get_logger("session", {"sessionId": session_id}).debug("malformed session id")
            return None
        if session_id in self.sessions:
            return self.sessions[session_id]

        controller = await WizardController.load(
            self.storage_factory(session_id),
            client=self.client,
            questions=self.questions,
            session_id=session_id,
            auto_advance_delay=self.auto_advance_delay,
        )
        # A concurrent request may have loaded the same session meanwhile
        cached = self.sessions.get(session_id)
        if cached is not None:
            await controller.close()
            return cached
        self.sessions[session_id] = controller
        get_logger("session", {"sessionId": session_id}).info(
            "loaded", extra={"phase": controller.phase.value}
        )
        return controller

    async def get_or_create(self, session_id: Optional[str] = None) -> Tuple[str, WizardController]:
        """
        Returns an existing session's controller or creates a new session.

        Args:
            session_id: Optional session id to resume

        Returns:
            The session id and its controller
        """
        if not is_valid_session_id(session_id):
            session_id = str(uuid.uuid4())
            get_logger("session", {"sessionId": session_id}).info("created")
        controller = await self.get(session_id)
        return session_id, controller

    async def drop(self, session_id: str) -> None:
        """
        Forgets a live controller if it exists. Its durable snapshot stays.

        Args:
            session_id: Session to drop
        """
        controller = self.sessions.pop(session_id, None)
        if controller is not None:
            await controller.close()
            get_logger("session", {"sessionId": session_id}).info("dropped")

    async def close(self) -> None:
        for session_id in list(self.sessions.keys()):
            await self.drop(session_id)
        await self.client.close()
