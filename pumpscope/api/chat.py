import logging

from fastapi import APIRouter, Depends

from ..core.dispatcher import IntentDispatcher, get_intent_dispatcher
from ..core.messages import user_message_for
from ..errors import PumpscopeError
from ..types import ChatResolveRequest, ChatResolveResponse

router = APIRouter()
_logger = logging.getLogger(__name__)


@router.post("/chat/resolve")
async def resolve_endpoint(
    request: ChatResolveRequest,
    dispatcher: IntentDispatcher = Depends(get_intent_dispatcher),
) -> ChatResolveResponse:
    """Resolve one conversational exchange into a result envelope"""

    try:
        envelope = await dispatcher.resolve(request.messages, request.project_id or "")
    except PumpscopeError as e:
        _logger.warning(f"Exchange failed: {e.message} {e.details}")
        return ChatResolveResponse(success=False, error=user_message_for(e))

    return ChatResolveResponse(success=True, envelope=envelope)
