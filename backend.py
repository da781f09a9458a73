# backend.py
import logging
from typing import Optional

from google import genai
from google.genai import chats, types

import metadata
from settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = " ".join(
    [
        "You are a friendly and helpful assistant for waste sorting.",
        "When asked in English you help to sort waste according to categories accepted in the United States of America.",
        "Ensure your answers are concise, unless the user requests a more complete approach.",
        "When presented with inquiries seeking information, provide answers that reflect a deep understanding of the field, guaranteeing their correctness.",
        "For any non-English queries, respond if you know waste sorting rules for the country of the language "
        "or explain that you do not have the waste sorting information otherwise in the same language as the prompt.",
        "For prompts involving reasoning, provide a clear explanation of each step in the reasoning process before presenting the final answer.",
    ]
)


class GeminiBackend:
    """Gemini chat backend.

    A conversation handle is a ``google.genai`` async chat; it keeps the turn
    history and only records a turn once the model has answered it.
    """

    def __init__(self, client: genai.Client, model_name: str, system_instruction: str = SYSTEM_INSTRUCTION):
        self._client = client
        self.model_name = model_name
        self._config = types.GenerateContentConfig(system_instruction=system_instruction)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiBackend":
        if settings.API_KEY:
            client = genai.Client(api_key=settings.API_KEY)
            logger.debug("initialized gemini api client", extra={"model": settings.MODEL_NAME})
        else:
            project = settings.PROJECT_ID or metadata.project_id()
            region = settings.REGION or metadata.region()
            client = genai.Client(vertexai=True, project=project, location=region)
            logger.debug(
                "initialized vertex ai",
                extra={"project": project, "region": region, "model": settings.MODEL_NAME},
            )
        return cls(client, settings.MODEL_NAME)

    def start_conversation(self) -> chats.AsyncChat:
        return self._client.aio.chats.create(model=self.model_name, config=self._config)

    async def send_message(self, handle: chats.AsyncChat, message: str) -> types.GenerateContentResponse:
        return await handle.send_message(message)

    async def close(self) -> None:
        await self._client.aio.aclose()
        self._client.close()
