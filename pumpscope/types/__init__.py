from .envelope import LocalFunctionResult, PlainTextResult, RemoteFunctionResult, ResultEnvelope
from .functions import FunctionCall, FunctionCallType, FunctionSpec, ParameterSpec, ParameterType
from .pump import QueryRequest, TraderDetail
from .requests import ChatMessage, ChatResolveRequest, ChatResolveResponse

__all__ = [
    "LocalFunctionResult",
    "PlainTextResult",
    "RemoteFunctionResult",
    "ResultEnvelope",
    "FunctionCall",
    "FunctionCallType",
    "FunctionSpec",
    "ParameterSpec",
    "ParameterType",
    "QueryRequest",
    "TraderDetail",
    "ChatMessage",
    "ChatResolveRequest",
    "ChatResolveResponse",
]
