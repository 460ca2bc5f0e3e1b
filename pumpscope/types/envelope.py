from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from .functions import FunctionCallType


class PlainTextResult(BaseModel):
    kind: Literal["plain_text"] = "plain_text"
    content: str = Field(description="Free-text answer from the reasoning backend")
    view: Optional[str] = Field(default=None, description="Suggested front-end view")
    intention: Optional[str] = Field(default=None, description="Detected user intention")


class LocalFunctionResult(BaseModel):
    kind: Literal["local_function"] = "local_function"
    fc_type: FunctionCallType = Field(description="Which typed payload `data` carries")
    data: Any = Field(description="Typed function-calling payload (one of the *Result models)")


class RemoteFunctionResult(BaseModel):
    kind: Literal["remote_function"] = "remote_function"
    name: str = Field(description="Remote function name with no local mapping")
    payload: Any = Field(default=None, description="Raw upstream result, unchanged")


ResultEnvelope = Annotated[
    Union[PlainTextResult, LocalFunctionResult, RemoteFunctionResult],
    Field(discriminator="kind"),
]
