"""
Function registry for reasoner-driven function calling.

The catalog is advertised verbatim to the reasoning backend and is also the
schema every incoming call is validated against before its handler runs.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from ..errors import MalformedArguments, UnknownFunction
from ..services.pump_data import PumpDataService, get_pump_data_service
from ..types.envelope import LocalFunctionResult
from ..types.functions import (
    DailyNewTokensResult,
    DailyTokenSwapCountsResult,
    FunctionCall,
    FunctionCallType,
    FunctionSpec,
    ParameterSpec,
    ParameterType,
    SwapResult,
    TokenLaunchedTimeResult,
    TopTradersResult,
    TraderOverviewResult,
    UniswapResult,
)
from ..types.pump import QueryRequest

Handler = Callable[[Dict[str, Any]], Coroutine[Any, Any, BaseModel]]


@dataclass
class RegisteredFunction:
    """A catalog entry: its advertised spec, handler and result tag."""
    spec: FunctionSpec
    handler: Handler
    fc_type: FunctionCallType


# Typed payloads for results the reasoner already resolved, keyed by function name
RESOLVED_RESULT_TYPES: Dict[str, Tuple[FunctionCallType, Type[BaseModel]]] = {
    "uniswap": (FunctionCallType.UNISWAP, UniswapResult),
    "swap": (FunctionCallType.SWAP, SwapResult),
    "daily_new_tokens": (FunctionCallType.DAILY_NEW_TOKEN, DailyNewTokensResult),
    "token_launched_time_distribution": (FunctionCallType.TOKEN_LAUNCHED_TIME_DISTRIBUTION, TokenLaunchedTimeResult),
    "daily_token_swap_counts": (FunctionCallType.DAILY_TOKEN_SWAP_COUNT, DailyTokenSwapCountsResult),
    "top_traders": (FunctionCallType.TOP_TRADER, TopTradersResult),
    "trader_overview": (FunctionCallType.TRADER_OVERVIEW, TraderOverviewResult),
}

DURATION_DESCRIPTION = "The number of consecutive days for which you want to view data."
TIMEZONE_DESCRIPTION = "time zone."


def _matches(param_type: ParameterType, value: Any) -> bool:
    if param_type == ParameterType.STRING:
        return isinstance(value, str)
    if param_type == ParameterType.BOOLEAN:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    if param_type == ParameterType.INTEGER:
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    return isinstance(value, (int, float))


def parse_arguments(spec: FunctionSpec, payload: Any) -> Dict[str, Any]:
    """Decode and validate a call payload against its spec.

    Unknown fields are dropped. ``null`` counts as absent.
    """
    if payload is None or payload == "":
        decoded: Any = {}
    elif isinstance(payload, (str, bytes)):
        try:
            decoded = json.loads(payload)
        except ValueError as exc:
            raise MalformedArguments(f"{spec.name}: arguments are not valid JSON", function=spec.name) from exc
    else:
        decoded = payload

    if not isinstance(decoded, dict):
        raise MalformedArguments(f"{spec.name}: arguments must be a JSON object", function=spec.name)

    parsed: Dict[str, Any] = {}
    for param in spec.parameters:
        value = decoded.get(param.name)
        if value is None:
            if param.required:
                raise MalformedArguments(
                    f"{spec.name}: missing required argument '{param.name}'",
                    function=spec.name,
                    field=param.name,
                )
            continue
        if not _matches(param.type, value):
            raise MalformedArguments(
                f"{spec.name}: argument '{param.name}' must be of type {param.type.value}",
                function=spec.name,
                field=param.name,
            )
        parsed[param.name] = value
    return parsed


def build_query(function: str, **fields: Any) -> QueryRequest:
    """QueryRequest from already type-checked arguments."""
    try:
        return QueryRequest(**fields)
    except ValidationError as exc:
        errors = exc.errors()
        field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else None
        raise MalformedArguments(f"{function}: invalid query arguments", function=function, field=field) from exc


def normalize_resolved(name: str, payload: Any) -> Optional[LocalFunctionResult]:
    """Typed envelope for an upstream-resolved result, or None when the name has no local mapping."""
    entry = RESOLVED_RESULT_TYPES.get(name)
    if entry is None:
        return None
    fc_type, model = entry
    try:
        data = model.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        raise MalformedArguments(f"{name}: resolved result failed to decode", function=name) from exc
    return LocalFunctionResult(fc_type=fc_type, data=data)


class FunctionRegistry:
    """
    Static catalog of functions the reasoner may call.

    Registration order is the advertised order.
    """

    def __init__(
        self,
        pump_data: Optional[PumpDataService] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._functions: Dict[str, RegisteredFunction] = {}
        self._pump_data = pump_data
        self.logger = logger or logging.getLogger(__name__)
        self._register_default_functions()

    @property
    def pump_data(self) -> PumpDataService:
        if self._pump_data is None:
            self._pump_data = get_pump_data_service()
        return self._pump_data

    def register(self, spec: FunctionSpec, handler: Handler, fc_type: FunctionCallType) -> None:
        if spec.name in self._functions:
            raise ValueError(f"function already registered: {spec.name}")
        self._functions[spec.name] = RegisteredFunction(spec=spec, handler=handler, fc_type=fc_type)

    def list(self) -> List[FunctionSpec]:
        return [entry.spec for entry in self._functions.values()]

    def schemas(self) -> List[Dict[str, Any]]:
        """Catalog in the shape handed to the reasoning backend."""
        return [spec.to_schema() for spec in self.list()]

    def resolve(self, name: str) -> RegisteredFunction:
        entry = self._functions.get(name)
        if entry is None:
            raise UnknownFunction(name)
        return entry

    async def invoke(self, call: FunctionCall) -> LocalFunctionResult:
        """Validate the call and run its handler exactly once."""
        entry = self.resolve(call.name)
        arguments = parse_arguments(entry.spec, call.arguments)
        self.logger.info(f"Invoking function {call.name} with {arguments}")
        data = await entry.handler(arguments)
        return LocalFunctionResult(fc_type=entry.fc_type, data=data)

    def _register_default_functions(self) -> None:
        self.register(
            FunctionSpec(
                name="swap",
                description="Use one crypto token swap for another token",
                parameters=[
                    ParameterSpec(name="swap_in_token", type=ParameterType.STRING,
                                  description="Swap input token symbol."),
                    ParameterSpec(
                        name="source_chain",
                        type=ParameterType.STRING,
                        description=(
                            "The chain where the input token is located. Same as the destination chain "
                            "if no chain specified for source_chain (should not be null in this case!). "
                            "If user specified source_chain, use it instead!"
                        ),
                    ),
                    ParameterSpec(name="amount_in", type=ParameterType.NUMBER,
                                  description="Swap input token amount."),
                    ParameterSpec(
                        name="dest_chain",
                        type=ParameterType.STRING,
                        description=(
                            "The chain where the output token is located. Same as the source chain "
                            "if no chain specified for dest_chain (should not be null in this case!). "
                            "If user specified dest_chain, use it instead!"
                        ),
                    ),
                    ParameterSpec(name="swap_out_token", type=ParameterType.STRING,
                                  description="Swap output token symbol."),
                    ParameterSpec(name="dex", type=ParameterType.STRING,
                                  description="Swap on which DEX."),
                ],
            ),
            self._handle_swap,
            FunctionCallType.SWAP,
        )

        self.register(
            FunctionSpec(
                name="daily_new_tokens",
                description=(
                    "For several consecutive days, the number of new tokens created daily by pump.fun "
                    "and the number of tokens listed on Raydium."
                ),
                parameters=self._window_parameters(),
            ),
            self._handle_daily_new_tokens,
            FunctionCallType.DAILY_NEW_TOKEN,
        )

        self.register(
            FunctionSpec(
                name="token_launched_time_distribution",
                description="Time distribution of pump.fun new Token creation (by half hour).",
                parameters=self._window_parameters(),
            ),
            self._handle_token_launched_time_distribution,
            FunctionCallType.TOKEN_LAUNCHED_TIME_DISTRIBUTION,
        )

        self.register(
            FunctionSpec(
                name="daily_token_swap_counts",
                description="Daily statistics of pump.fun's token exchange (swap) transactions.",
                parameters=self._window_parameters(),
            ),
            self._handle_daily_token_swap_counts,
            FunctionCallType.DAILY_TOKEN_SWAP_COUNT,
        )

        self.register(
            FunctionSpec(
                name="top_traders",
                description="List of top (high net profit) traders on pump.fun.",
                parameters=[
                    ParameterSpec(name="duration", type=ParameterType.NUMBER, description=DURATION_DESCRIPTION),
                    ParameterSpec(name="win_ratio", type=ParameterType.NUMBER, description="Trader's win rate."),
                    ParameterSpec(name="timezone", type=ParameterType.STRING, description=TIMEZONE_DESCRIPTION),
                ],
            ),
            self._handle_top_traders,
            FunctionCallType.TOP_TRADER,
        )

        self.register(
            FunctionSpec(
                name="trader_overview",
                description="Overview information for pump.fun traders.",
                parameters=[
                    ParameterSpec(name="address", type=ParameterType.STRING,
                                  description="pump.fun trader's address.", required=True),
                ],
            ),
            self._handle_trader_overview,
            FunctionCallType.TRADER_OVERVIEW,
        )

    @staticmethod
    def _window_parameters() -> List[ParameterSpec]:
        return [
            ParameterSpec(name="duration", type=ParameterType.NUMBER, description=DURATION_DESCRIPTION),
            ParameterSpec(name="timezone", type=ParameterType.STRING, description=TIMEZONE_DESCRIPTION),
        ]

    def _window_query(self, function: str, arguments: Dict[str, Any]) -> QueryRequest:
        # Chat-originated daily metrics default to CST
        return build_query(
            function,
            duration=int(arguments.get("duration", 0)),
            timezone=arguments.get("timezone") or "CST",
        )

    async def _handle_swap(self, arguments: Dict[str, Any]) -> SwapResult:
        source_chain = arguments.get("source_chain", "")
        return SwapResult(
            source_chain=source_chain,
            swap_in_token=arguments.get("swap_in_token", ""),
            amount_in=float(arguments.get("amount_in", 0.0)),
            swap_out_token=arguments.get("swap_out_token", ""),
            dest_chain=arguments.get("dest_chain") or source_chain,
            dex=arguments.get("dex", ""),
        )

    async def _handle_daily_new_tokens(self, arguments: Dict[str, Any]) -> DailyNewTokensResult:
        request = self._window_query("daily_new_tokens", arguments)
        return DailyNewTokensResult(daily_new_token=await self.pump_data.new_tokens(request))

    async def _handle_token_launched_time_distribution(self, arguments: Dict[str, Any]) -> TokenLaunchedTimeResult:
        request = self._window_query("token_launched_time_distribution", arguments)
        return TokenLaunchedTimeResult(token_launched_time_distribution=await self.pump_data.launch_time(request))

    async def _handle_daily_token_swap_counts(self, arguments: Dict[str, Any]) -> DailyTokenSwapCountsResult:
        request = self._window_query("daily_token_swap_counts", arguments)
        return DailyTokenSwapCountsResult(tx_counts=await self.pump_data.transactions(request))

    async def _handle_top_traders(self, arguments: Dict[str, Any]) -> TopTradersResult:
        request = build_query(
            "top_traders",
            duration=int(arguments.get("duration", 0)),
            timezone=arguments.get("timezone", ""),
            max_win_rate=float(arguments.get("win_ratio", 0.0)),
        )
        return TopTradersResult(top_traders=await self.pump_data.top_traders(request))

    async def _handle_trader_overview(self, arguments: Dict[str, Any]) -> TraderOverviewResult:
        request = build_query("trader_overview", address=arguments["address"])
        return TraderOverviewResult(trader_details=await self.pump_data.trader_detail(request))


_function_registry: Optional[FunctionRegistry] = None


def get_function_registry() -> FunctionRegistry:
    global _function_registry
    if _function_registry is None:
        _function_registry = FunctionRegistry()
    return _function_registry
