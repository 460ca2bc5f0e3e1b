from typing import List, Optional

from pydantic import BaseModel, Field

from .envelope import ResultEnvelope


class ChatMessage(BaseModel):
    role: str = Field(description="Message role: user or assistant")
    content: str = Field(description="Message content")


class ChatResolveRequest(BaseModel):
    messages: List[ChatMessage] = Field(description="Chat conversation history")
    project_id: Optional[str] = Field(default=None, description="Routing context for the reasoning backend")


class ChatResolveResponse(BaseModel):
    success: bool = Field(description="Whether the exchange produced an envelope")
    envelope: Optional[ResultEnvelope] = Field(default=None, description="Classified result")
    error: Optional[str] = Field(default=None, description="User-facing error message")
