"""REST access to every pump.fun metric, outside the chat flow."""

from typing import Awaitable, Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ValidationError

from ..errors import PumpscopeError
from ..services.pump_data import PumpDataService, get_pump_data_service
from ..types.pump import (
    LaunchTime,
    NewTokens,
    ProfitDistribution,
    QueryRequest,
    TopTraders,
    TraderDetail,
    TraderInfo,
    TraderOverview,
    TraderProfit,
    TraderTrades,
    Transactions,
)
from .errors import http_error

router = APIRouter(prefix="/data/pump")

T = TypeVar("T", bound=BaseModel)


def query_request(
    duration: int = Query(0, ge=0, description="Look-back window in days (0 = metric default)"),
    timezone: str = Query("", description="UTC or CST (empty = metric default)"),
    max_win_rate: float = Query(0.0, ge=0.0, description="Win-ratio threshold for top traders"),
    address: str = Query("", description="Trader address"),
    source: str = Query("", description="'testdata' returns synthetic rows"),
) -> QueryRequest:
    try:
        return QueryRequest(
            duration=duration,
            timezone=timezone,
            max_win_rate=max_win_rate,
            address=address,
            source=source,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid query: {e.errors()[0]['msg']}")


def trader_request(request: QueryRequest = Depends(query_request)) -> QueryRequest:
    if not request.address and not request.is_testdata:
        raise HTTPException(status_code=400, detail="address is required")
    return request


async def _run(call: Callable[[QueryRequest], Awaitable[T]], request: QueryRequest) -> T:
    try:
        return await call(request)
    except PumpscopeError as e:
        raise http_error(e)


@router.get("/new-tokens")
async def new_tokens_endpoint(
    request: QueryRequest = Depends(query_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> NewTokens:
    return await _run(service.new_tokens, request)


@router.get("/launch-time")
async def launch_time_endpoint(
    request: QueryRequest = Depends(query_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> LaunchTime:
    return await _run(service.launch_time, request)


@router.get("/transactions")
async def transactions_endpoint(
    request: QueryRequest = Depends(query_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> Transactions:
    return await _run(service.transactions, request)


@router.get("/top-traders")
async def top_traders_endpoint(
    request: QueryRequest = Depends(query_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TopTraders:
    return await _run(service.top_traders, request)


@router.get("/trader/info")
async def trader_info_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TraderInfo:
    return await _run(service.trader_info, request)


@router.get("/trader/overview")
async def trader_overview_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TraderOverview:
    return await _run(service.trader_overview, request)


@router.get("/trader/profit")
async def trader_profit_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TraderProfit:
    return await _run(service.trader_profit, request)


@router.get("/trader/profit-distribution")
async def trader_profit_distribution_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> ProfitDistribution:
    return await _run(service.trader_profit_distribution, request)


@router.get("/trader/trades")
async def trader_trades_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TraderTrades:
    return await _run(service.trader_trades, request)


@router.get("/trader/detail")
async def trader_detail_endpoint(
    request: QueryRequest = Depends(trader_request),
    service: PumpDataService = Depends(get_pump_data_service),
) -> TraderDetail:
    """Overview, profit, profit distribution and trades in one composite"""
    return await _run(service.trader_detail, request)
