"""
Intent dispatcher.

Takes one conversational exchange, asks the reasoning backend to resolve it,
and turns the outcome into a single result envelope:

- no tool results -> plain text
- first tool result still pending -> run the local function
- first tool result already resolved -> typed local payload when the name is
  known here, otherwise the raw remote payload

Errors are never downgraded into a partial envelope; they propagate.
"""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from ..config import settings
from ..logging_config import bind_exchange_context
from ..providers.reasoner import ReasonerClient
from ..types.envelope import PlainTextResult, RemoteFunctionResult, ResultEnvelope
from ..types.functions import FunctionCall
from ..types.reasoner import PendingToolCall, ReasonerResponse
from ..types.requests import ChatMessage
from .functions import FunctionRegistry, get_function_registry, normalize_resolved

HistoryItem = Union[ChatMessage, Mapping[str, Any]]


def _content(item: HistoryItem) -> str:
    if isinstance(item, ChatMessage):
        return item.content
    return str(item.get("content", ""))


class IntentDispatcher:
    """Routes reasoner outcomes to local handlers or normalizes them."""

    def __init__(
        self,
        reasoner: Optional[ReasonerClient] = None,
        registry: Optional[FunctionRegistry] = None,
        history_window: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.reasoner = reasoner or ReasonerClient()
        self.registry = registry or get_function_registry()
        self.history_window = history_window or settings.chat_history_window
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(self, history: Sequence[HistoryItem], routing_context: str = "") -> ResultEnvelope:
        project_id = self.reasoner.project_for(routing_context)
        bind_exchange_context(project_id=project_id)

        texts = [_content(item) for item in list(history)[-self.history_window:]]
        response = await self.reasoner.search(texts, routing_context)
        return await self.classify(response)

    async def classify(self, response: ReasonerResponse) -> ResultEnvelope:
        if not response.tool_results:
            return self._plain_text(response)

        if len(response.tool_results) > 1:
            self.logger.info(
                f"Reasoner returned {len(response.tool_results)} tool results; handling only the first"
            )

        outcome = response.tool_results[0].classify()
        bind_exchange_context(function=outcome.name)

        if isinstance(outcome, PendingToolCall):
            return await self.registry.invoke(FunctionCall(name=outcome.name, arguments=outcome.arguments))

        local = normalize_resolved(outcome.name, outcome.payload)
        if local is not None:
            return local
        self.logger.info(f"No local mapping for resolved function {outcome.name}; passing payload through")
        return RemoteFunctionResult(name=outcome.name, payload=outcome.payload)

    @staticmethod
    def _plain_text(response: ReasonerResponse) -> PlainTextResult:
        obj = response.object
        if obj is None:
            return PlainTextResult(content=response.text)
        return PlainTextResult(
            content=obj.content or response.text,
            view=obj.view,
            intention=obj.intention,
        )


_dispatcher: Optional[IntentDispatcher] = None


def get_intent_dispatcher() -> IntentDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = IntentDispatcher()
    return _dispatcher
