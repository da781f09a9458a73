# agent.py
import logging
from typing import Any, Iterable, Optional

from errors import BackendError, InvalidInputError
from models import AskRequest, AskResponse
from sessions import SessionStore

logger = logging.getLogger(__name__)

EMPTY_REPLY = "<empty>"
PART_SEPARATOR = ". "


def compose_response(parts: Optional[Iterable[Any]]) -> str:
    """Join the text parts of a candidate, skipping anything that is not text."""
    texts = [part.text for part in (parts or []) if getattr(part, "text", None) is not None]
    return PART_SEPARATOR.join(texts)


class Agent:
    def __init__(self, backend, store: Optional[SessionStore] = None):
        self.backend = backend
        self.sessions = store or SessionStore(backend.start_conversation)

    async def handle(self, req: AskRequest) -> AskResponse:
        if not req.message:
            raise InvalidInputError("prompt is empty")

        session = self.sessions.resolve(req.session_id)
        async with session.turn_lock:
            try:
                result = await self.backend.send_message(session.conversation_handle, req.message)
            except Exception as e:
                raise BackendError(f"chat response error: {e}", session=session.id) from e

        candidates = getattr(result, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            reply = EMPTY_REPLY
        else:
            reply = compose_response(candidates[0].content.parts)

        logger.debug(
            "ask request processed",
            extra={"session": session.id, "prompt": req.message, "response": reply},
        )
        return AskResponse(session_id=session.id, response=reply)

    async def close(self) -> None:
        await self.backend.close()
