"""Wire models for the remote reasoning backend (doc-search endpoint)."""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ReasonerMessage(BaseModel):
    type: str = "text"
    text: str


class ReasonerHistory(BaseModel):
    messages: List[ReasonerMessage] = Field(default_factory=list)


class ReasonerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ReasonerMessage]
    related_projects: List[str] = Field(default_factory=list, alias="relatedProjects")
    history: List[ReasonerHistory] = Field(default_factory=lambda: [ReasonerHistory()])


class ReasonerObject(BaseModel):
    view: Optional[str] = None
    content: Optional[str] = None
    intention: Optional[str] = None
    intent_keys: List[str] = Field(default_factory=list)


class ToolResultValue(BaseModel):
    resolved: bool = False
    result: Any = None


class ToolResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = ""
    tool_call_id: str = Field(default="", alias="toolCallId")
    tool_name: str = Field(default="", alias="toolName")
    args: Any = None
    result: ToolResultValue = Field(default_factory=ToolResultValue)

    def classify(self) -> Union["PendingToolCall", "ResolvedToolCall"]:
        if self.result.resolved:
            return ResolvedToolCall(name=self.tool_name, payload=self.result.result)
        return PendingToolCall(name=self.tool_name, arguments=self.result.result)


class ReasonerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    object: Optional[ReasonerObject] = None
    tool_results: List[ToolResult] = Field(default_factory=list, alias="toolResults")


class PendingToolCall(BaseModel):
    """Tool result that still has to be executed locally."""

    name: str
    arguments: Any = None


class ResolvedToolCall(BaseModel):
    """Tool result whose value was already computed upstream."""

    name: str
    payload: Any = None

