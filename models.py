# models.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(
        default="", alias="sessionId", description="Session identifier returned by a previous call"
    )
    message: str = Field(default="", description="User message")


class AskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    response: str


class ReturnStatus(BaseModel):
    error: Optional[str] = None
    payload: Optional[AskResponse] = None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
