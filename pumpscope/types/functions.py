"""Function-calling payloads: declared parameter specs and typed results."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .pump import LaunchTime, NewTokens, TopTraders, TraderDetail, Transactions


class ParameterType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"


class ParameterSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    description: str
    required: bool = False


class FunctionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: List[ParameterSpec] = Field(default_factory=list)

    def required_names(self) -> List[str]:
        return [param.name for param in self.parameters if param.required]

    def to_schema(self) -> Dict[str, Any]:
        """Shape advertised to the reasoning backend."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "required": self.required_names(),
                "type": "object",
                "properties": {
                    param.name: {"type": param.type.value, "description": param.description}
                    for param in self.parameters
                },
            },
        }


class FunctionCall(BaseModel):
    """A named call with its arguments, either raw JSON text or a decoded mapping."""

    name: str
    arguments: Any = None


class FunctionCallType(str, Enum):
    SWAP = "swap"
    DAILY_NEW_TOKEN = "daily_new_token"
    TOKEN_LAUNCHED_TIME_DISTRIBUTION = "token_launched_time_distribution"
    DAILY_TOKEN_SWAP_COUNT = "daily_token_swap_count"
    TOP_TRADER = "top_trader"
    TRADER_OVERVIEW = "trader_overview"
    UNISWAP = "uniswap"


class SwapResult(BaseModel):
    source_chain: str = ""
    swap_in_token: str = ""
    amount_in: float = 0.0
    swap_out_token: str = ""
    swap_out: float = 0.0
    dest_chain: str = ""
    dex: str = ""


class DailyNewTokensResult(BaseModel):
    daily_new_token: Optional[NewTokens] = None


class TokenLaunchedTimeResult(BaseModel):
    token_launched_time_distribution: Optional[LaunchTime] = None


class DailyTokenSwapCountsResult(BaseModel):
    tx_counts: Optional[Transactions] = None


class TopTradersResult(BaseModel):
    top_traders: Optional[TopTraders] = None


class TraderOverviewResult(BaseModel):
    trader_details: Optional[TraderDetail] = None


class UniswapResult(BaseModel):
    url: str = ""
