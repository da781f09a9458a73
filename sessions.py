# sessions.py
"""
In-memory session store.

Maps session identifiers to the conversation handle that accumulates the
turn history for that session. Sessions are never evicted; they live until
the process exits.
"""
import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from errors import IdentifierGenerationError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    id: str
    conversation_handle: Any
    # serializes turns so they reach the handle in arrival order
    turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


def new_session_id() -> str:
    try:
        return str(uuid.uuid4())
    except (OSError, NotImplementedError) as e:
        raise IdentifierGenerationError(f"failed to generate session ID: {e}") from e


class SessionStore:
    def __init__(self, start_conversation: Callable[[], Any], id_factory: Callable[[], str] = new_session_id):
        self._start_conversation = start_conversation
        self._id_factory = id_factory
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def resolve(self, session_id: Optional[str]) -> Session:
        """Return the session for ``session_id``, creating one if it is empty or unknown.

        A new session always gets a freshly generated identifier; a client
        cannot pick the identifier of a session it did not get from us.
        """
        with self._lock:
            if session_id:
                session = self._sessions.get(session_id)
                if session is not None:
                    return session
            new_id = self._id_factory()
            session = Session(id=new_id, conversation_handle=self._start_conversation())
            self._sessions[new_id] = session
        logger.debug("session created", extra={"session": new_id, "requested": session_id or None})
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
