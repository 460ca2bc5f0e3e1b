"""
pump.fun analytics service.

One method per metric: apply the metric's defaults to the request, run the
matching Metabase card and decode the dataset rows into a typed row-set.
``trader_detail`` composes four trader metrics concurrently.

Requests with ``source="testdata"`` never touch Metabase and return fixed
synthetic rows, which is what demos and the CLI ``--testdata`` flag use.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional, Sequence, Type

from ..errors import IncompleteAggregate, MalformedArguments
from ..providers.metabase import MetabaseProvider, get_metabase_provider
from ..types.pump import (
    LaunchTime,
    LaunchTimeRow,
    NewTokenRow,
    NewTokens,
    ProfitDistribution,
    ProfitDistributionRow,
    QueryRequest,
    TopTraderRow,
    TopTraders,
    TradeCountRow,
    TraderDetail,
    TraderInfo,
    TraderInfoData,
    TraderOverview,
    TraderOverviewData,
    TraderProfit,
    TraderProfitRow,
    TraderRef,
    TraderTrades,
    TraderTradesRow,
    Transactions,
)

logger = logging.getLogger(__name__)

DEFAULT_TRADER_DURATION = 7
DEFAULT_TOP_TRADER_DURATION = 7
DEFAULT_MAX_WIN_RATE = 1.0
TOP_TRADERS_LIMIT = 10

# Column positions in the trader overview card (card 140)
OVERVIEW_COLUMNS = {
    "total_net_profit": 0,
    "net_profit_win_ratio": 3,
    "traded_token_count": 5,
    "avg_sol_cost_per_token": 13,
    "avg_fee_per_token": 17,
    "avg_tip_per_token": 18,
    "token_create_count": 21,
}


def _cell(row: Sequence[Any], index: int, kind: Type, field: str, metric: str) -> Any:
    """Pull one typed column out of a dataset row."""
    if index >= len(row):
        raise MalformedArguments(f"{metric}: row has no column {index} ({field})", function=metric, field=field)
    value = row[index]
    if kind is str:
        if not isinstance(value, str):
            raise MalformedArguments(f"{metric}: invalid {field} format: {value!r}", function=metric, field=field)
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedArguments(f"{metric}: invalid {field} format: {value!r}", function=metric, field=field)
    return int(value) if kind is int else float(value)


def _rfc3339(value: str, metric: str) -> str:
    """Normalize an RFC 3339 timestamp; a date-time with an explicit offset is required."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedArguments(f"{metric}: invalid date format: {value!r}", function=metric, field="date") from exc
    if "T" not in value.upper() or parsed.tzinfo is None:
        raise MalformedArguments(f"{metric}: invalid date format: {value!r}", function=metric, field="date")
    formatted = parsed.isoformat()
    return formatted[:-6] + "Z" if formatted.endswith("+00:00") else formatted


class PumpDataService:
    """Typed pump.fun metrics backed by Metabase cards."""

    def __init__(self, provider: Optional[MetabaseProvider] = None) -> None:
        self._provider = provider

    @property
    def provider(self) -> MetabaseProvider:
        if self._provider is None:
            self._provider = get_metabase_provider()
        return self._provider

    # Launchpad-wide metrics

    async def new_tokens(self, request: QueryRequest) -> NewTokens:
        """Daily count of created tokens and of tokens that graduated to Raydium."""
        if request.is_testdata:
            return NewTokens(rows=[
                NewTokenRow(date="2024-09-21", total_count=100, p2r_count=50, p2r_ratio=0.5),
                NewTokenRow(date="2024-09-22", total_count=200, p2r_count=100, p2r_ratio=0.5),
            ])

        results = await self.provider.daily_launched_token_info(request.duration, request.timezone)
        metric = "new_tokens"
        return NewTokens(rows=[
            NewTokenRow(
                date=_rfc3339(_cell(row, 0, str, "date", metric), metric),
                total_count=_cell(row, 1, int, "total_count", metric),
                p2r_count=_cell(row, 2, int, "p2r_count", metric),
                p2r_ratio=_cell(row, 3, float, "p2r_ratio", metric),
            )
            for row in results.data.rows
        ])

    async def launch_time(self, request: QueryRequest) -> LaunchTime:
        """Half-hour distribution of token launches."""
        if request.is_testdata:
            return LaunchTime(rows=[
                LaunchTimeRow(time_range="[00:00~00:30)", launched_count=766),
                LaunchTimeRow(time_range="[00:30~01:00)", launched_count=686),
            ])

        results = await self.provider.launched_token_time_distribution(request.duration, request.timezone)
        metric = "launch_time"
        return LaunchTime(rows=[
            LaunchTimeRow(
                time_range=_cell(row, 0, str, "time_range", metric),
                launched_count=_cell(row, 1, int, "launched_count", metric),
            )
            for row in results.data.rows
        ])

    async def transactions(self, request: QueryRequest) -> Transactions:
        """Daily swap transaction counts."""
        if request.is_testdata:
            return Transactions(rows=[
                TradeCountRow(date="2024-09-13T00:00:00+08:00", trade_count=1462284),
                TradeCountRow(date="2024-09-14T00:00:00+08:00", trade_count=1353946),
            ])

        results = await self.provider.daily_trade_counts(request.duration, request.timezone)
        metric = "transactions"
        return Transactions(rows=[
            TradeCountRow(
                date=_rfc3339(_cell(row, 0, str, "date", metric), metric),
                trade_count=_cell(row, 1, int, "trade_count", metric),
            )
            for row in results.data.rows
        ])

    async def top_traders(self, request: QueryRequest) -> TopTraders:
        """Highest net-profit traders, capped at ten rows."""
        if request.is_testdata:
            return TopTraders(rows=[
                TopTraderRow(
                    trader="74tYkMYmwnmi44PQo6L6QpkxmdNTdX5AZaiKMrMAncwW",
                    total_net_profit=0.12,
                    net_profit_win_ratio=0.12,
                    gross_profit_win_ratio=0.12,
                    total_tx_count=1200,
                ),
            ])

        duration = request.duration or DEFAULT_TOP_TRADER_DURATION
        win_ratio = request.max_win_rate or DEFAULT_MAX_WIN_RATE
        results = await self.provider.top_trader(duration, win_ratio)
        metric = "top_traders"
        rows = [
            TopTraderRow(
                trader=_cell(row, 0, str, "trader", metric),
                total_net_profit=_cell(row, 1, float, "total_net_profit", metric),
                net_profit_win_ratio=_cell(row, 2, float, "net_profit_win_ratio", metric),
                gross_profit_win_ratio=_cell(row, 3, float, "gross_profit_win_ratio", metric),
                total_tx_count=_cell(row, 4, int, "total_tx_count", metric),
            )
            for row in results.data.rows
        ]
        return TopTraders(rows=rows[:TOP_TRADERS_LIMIT])

    # Trader metrics

    async def trader_info(self, request: QueryRequest) -> TraderInfo:
        if request.is_testdata:
            return TraderInfo(info=TraderInfoData(
                address="74tYkMYmwnmi44PQo6L6QpkxmdNTdX5AZaiKMrMAncwW",
                tag=["sniper", "MEV", "creator"],
            ))

        overview = await self.trader_overview(request)
        if overview.info is None:
            raise IncompleteAggregate(request.address)
        return TraderInfo(info=TraderInfoData(address=request.address))

    async def trader_overview(self, request: QueryRequest) -> TraderOverview:
        if request.is_testdata:
            return TraderOverview(info=TraderOverviewData(
                total_net_profit=6078.282028689,
                net_profit_win_ratio=0.996003996003996,
                traded_token_count=2002,
                avg_sol_cost_per_token=1.061279634,
                avg_fee_per_token=1.5114e-5,
                avg_tip_per_token=1.0145e-5,
            ))

        request = request.with_defaults(duration=DEFAULT_TRADER_DURATION, timezone="CST")
        results = await self.provider.trader_overview(request.address, request.timezone, request.duration)
        if not results.data.rows:
            return TraderOverview(info=None)

        row = results.data.rows[0]
        metric = "trader_overview"
        floats = {
            name: _cell(row, index, float, name, metric)
            for name, index in OVERVIEW_COLUMNS.items()
        }
        traded_token_count = int(floats["traded_token_count"])
        total_cost = floats["avg_sol_cost_per_token"] * floats["traded_token_count"]
        return TraderOverview(info=TraderOverviewData(
            total_net_profit=floats["total_net_profit"],
            profit_ratio=floats["total_net_profit"] / total_cost if total_cost else 0.0,
            net_profit_win_ratio=floats["net_profit_win_ratio"],
            traded_token_count=traded_token_count,
            avg_sol_cost_per_token=floats["avg_sol_cost_per_token"],
            total_cost=total_cost,
            avg_tip_per_token=floats["avg_tip_per_token"],
            avg_fee_per_token=floats["avg_fee_per_token"],
            token_create_count=int(floats["token_create_count"]),
        ))

    async def trader_profit(self, request: QueryRequest) -> TraderProfit:
        """Daily net and gross profit of one trader."""
        if request.is_testdata:
            return TraderProfit(rows=[
                TraderProfitRow(date="2024-09-15T00:00:00+08:00", net_profit=-0.110840788, gross_profit=-0.099578228),
                TraderProfitRow(date="2024-09-16T00:00:00+08:00", net_profit=13.862897836, gross_profit=15.208789556),
            ])

        request = request.with_defaults(duration=DEFAULT_TRADER_DURATION, timezone="CST")
        results = await self.provider.trader_profit_distribution(request.address, request.duration, request.timezone)
        metric = "trader_profit"
        return TraderProfit(rows=[
            TraderProfitRow(
                date=_cell(row, 0, str, "date", metric),
                net_profit=_cell(row, 1, float, "net_profit", metric),
                gross_profit=_cell(row, 2, float, "gross_profit", metric),
            )
            for row in results.data.rows
        ])

    async def trader_profit_distribution(self, request: QueryRequest) -> ProfitDistribution:
        """Count of traded tokens per profit-margin bucket."""
        if request.is_testdata:
            return ProfitDistribution(rows=[
                ProfitDistributionRow(profit_margin_bucket="< -100%", token_count=67),
                ProfitDistributionRow(profit_margin_bucket="-100% ~ -50%", token_count=1),
            ])

        request = request.with_defaults(duration=DEFAULT_TRADER_DURATION, timezone="CST")
        results = await self.provider.trader_profit_token_distribution(
            request.address, request.duration, request.timezone
        )
        metric = "trader_profit_distribution"
        return ProfitDistribution(rows=[
            ProfitDistributionRow(
                profit_margin_bucket=_cell(row, 0, str, "profit_margin_bucket", metric),
                token_count=_cell(row, 1, int, "token_count", metric),
            )
            for row in results.data.rows
        ])

    async def trader_trades(self, request: QueryRequest) -> TraderTrades:
        """Half-hour distribution of one trader's transactions."""
        if request.is_testdata:
            return TraderTrades(rows=[
                TraderTradesRow(time_range="[00:00~00:30)", tx_count=4),
                TraderTradesRow(time_range="[00:30~01:00)", tx_count=0),
            ])

        request = request.with_defaults(duration=DEFAULT_TRADER_DURATION, timezone="UTC")
        results = await self.provider.trader_tx_time_distribution(request.address, request.duration, request.timezone)
        metric = "trader_trades"
        return TraderTrades(rows=[
            TraderTradesRow(
                time_range=_cell(row, 0, str, "time_range", metric),
                tx_count=_cell(row, 1, int, "tx_count", metric),
            )
            for row in results.data.rows
        ])

    async def trader_detail(self, request: QueryRequest) -> TraderDetail:
        """Fetch overview, profit, profit distribution and trades concurrently.

        Every branch runs to completion. If any failed, the first error in
        that fixed order is raised and nothing is returned. A composite with
        no overview or an empty profit distribution is an incomplete
        aggregate.
        """
        overview, profit, distribution, trades = await asyncio.gather(
            self.trader_overview(request),
            self.trader_profit(request),
            self.trader_profit_distribution(request),
            self.trader_trades(request),
            return_exceptions=True,
        )

        for result in (overview, profit, distribution, trades):
            if isinstance(result, BaseException):
                logger.warning(f"Trader detail branch failed for {request.address}: {result}")
                raise result

        detail = TraderDetail(
            trader=TraderRef(address=request.address),
            overview=overview.info,
            profit=list(profit.rows),
            profit_distribution=list(distribution.rows),
            trades=list(trades.rows),
        )
        if not detail.is_complete:
            raise IncompleteAggregate(request.address)
        return detail


_pump_data_service: Optional[PumpDataService] = None


def get_pump_data_service() -> PumpDataService:
    global _pump_data_service
    if _pump_data_service is None:
        _pump_data_service = PumpDataService()
    return _pump_data_service


__all__ = ["PumpDataService", "get_pump_data_service"]
