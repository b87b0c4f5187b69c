from typing import List

from pydantic import BaseModel, ConfigDict, Field


class TicketContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str | int | None = Field(None, alias="requestId")
    title: str | None = None
    issue: str | None = None
    status: str | None = None
    summary: str | None = None


class HistoryEntry(BaseModel):
    role: str
    content: str


class ChatbotRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    session_id: str | None = Field(None, alias="sessionId")
    conversation_history: List[HistoryEntry] = Field(
        default_factory=list, alias="conversationHistory"
    )
    context: TicketContext | None = None


class RenameSessionRequest(BaseModel):
    title: str | None = None


class DeleteSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
