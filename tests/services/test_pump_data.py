"""
Tests for the pump.fun data service.

Row decoding runs against a stubbed Metabase provider; the trader detail
aggregation runs against stubbed sub-queries.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pumpscope.errors import IncompleteAggregate, MalformedArguments, TransportError
from pumpscope.services.pump_data import PumpDataService
from pumpscope.types.pump import (
    DatasetQueryResults,
    ProfitDistribution,
    ProfitDistributionRow,
    QueryRequest,
    TraderOverview,
    TraderOverviewData,
    TraderProfit,
    TraderProfitRow,
    TraderTrades,
    TraderTradesRow,
)


def dataset(rows):
    return DatasetQueryResults.model_validate({"status": "completed", "data": {"rows": rows}})


def overview_row(**overrides):
    row = [0.0] * 22
    row[0] = overrides.get("total_net_profit", 100.0)
    row[3] = overrides.get("net_profit_win_ratio", 0.5)
    row[5] = overrides.get("traded_token_count", 10)
    row[13] = overrides.get("avg_sol_cost_per_token", 2.0)
    row[17] = overrides.get("avg_fee_per_token", 0.001)
    row[18] = overrides.get("avg_tip_per_token", 0.002)
    row[21] = overrides.get("token_create_count", 3)
    return row


@pytest.fixture
def provider():
    return MagicMock()


@pytest.fixture
def service(provider):
    return PumpDataService(provider=provider)


# =============================================================================
# Metric decoding
# =============================================================================

class TestMetricDecoding:
    """Dataset rows become typed row-sets."""

    @pytest.mark.asyncio
    async def test_new_tokens_rows(self, service, provider):
        """Dates are normalized to RFC 3339 and counts become integers."""
        provider.daily_launched_token_info = AsyncMock(return_value=dataset([
            ["2024-09-21T00:00:00Z", 1200.0, 30.0, 0.025],
            ["2024-09-22T00:00:00+08:00", 900, 10, 0.011],
        ]))

        result = await service.new_tokens(QueryRequest(duration=3, timezone="UTC"))

        provider.daily_launched_token_info.assert_awaited_once_with(3, "UTC")
        assert result.rows[0].date == "2024-09-21T00:00:00Z"
        assert result.rows[0].total_count == 1200
        assert result.rows[1].date == "2024-09-22T00:00:00+08:00"
        assert result.rows[1].p2r_ratio == pytest.approx(0.011)

    @pytest.mark.asyncio
    async def test_invalid_cell_names_the_field(self, service, provider):
        """A mistyped column fails with the offending field named."""
        provider.launched_token_time_distribution = AsyncMock(return_value=dataset([
            ["[00:00~00:30)", "lots"],
        ]))

        with pytest.raises(MalformedArguments) as exc_info:
            await service.launch_time(QueryRequest())

        assert exc_info.value.field == "launched_count"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["2024-09-15", "2024-09-15T00:00:00", "2024-09-15 00:00:00+08:00"])
    async def test_date_without_offset_is_rejected(self, service, provider, value):
        """Dates must be full RFC 3339 date-times carrying an offset."""
        provider.daily_trade_counts = AsyncMock(return_value=dataset([[value, 10]]))

        with pytest.raises(MalformedArguments) as exc_info:
            await service.transactions(QueryRequest())

        assert exc_info.value.field == "date"

    @pytest.mark.asyncio
    async def test_top_traders_defaults_and_cap(self, service, provider):
        """Top traders default to 7 days / win ratio 1.0 and keep ten rows."""
        rows = [[f"trader-{i}", 10.0 - i, 0.9, 0.8, 100] for i in range(15)]
        provider.top_trader = AsyncMock(return_value=dataset(rows))

        result = await service.top_traders(QueryRequest())

        provider.top_trader.assert_awaited_once_with(7, 1.0)
        assert len(result.rows) == 10
        assert result.rows[0].trader == "trader-0"

    @pytest.mark.asyncio
    async def test_trader_overview_derived_fields(self, service, provider):
        """Total cost and profit ratio are derived from the overview row."""
        provider.trader_overview = AsyncMock(return_value=dataset([overview_row()]))

        result = await service.trader_overview(QueryRequest(address="ADDR1"))

        provider.trader_overview.assert_awaited_once_with("ADDR1", "CST", 7)
        assert result.info.total_cost == pytest.approx(20.0)
        assert result.info.profit_ratio == pytest.approx(5.0)
        assert result.info.traded_token_count == 10
        assert result.info.token_create_count == 3

    @pytest.mark.asyncio
    async def test_trader_overview_zero_cost(self, service, provider):
        """A trader with no cost has a zero profit ratio."""
        provider.trader_overview = AsyncMock(return_value=dataset([overview_row(traded_token_count=0)]))

        result = await service.trader_overview(QueryRequest(address="ADDR1"))

        assert result.info.total_cost == 0
        assert result.info.profit_ratio == 0

    @pytest.mark.asyncio
    async def test_trader_overview_no_rows(self, service, provider):
        """An unknown trader has no overview info."""
        provider.trader_overview = AsyncMock(return_value=dataset([]))

        result = await service.trader_overview(QueryRequest(address="ADDR1"))

        assert result.info is None

    @pytest.mark.asyncio
    async def test_trader_trades_defaults_to_utc(self, service, provider):
        """Trader trades default to UTC while profit metrics default to CST."""
        provider.trader_tx_time_distribution = AsyncMock(return_value=dataset([["[00:00~00:30)", 4]]))
        provider.trader_profit_distribution = AsyncMock(return_value=dataset([["2024-09-15", -1.0, -0.5]]))

        await service.trader_trades(QueryRequest(address="ADDR1"))
        await service.trader_profit(QueryRequest(address="ADDR1"))

        provider.trader_tx_time_distribution.assert_awaited_once_with("ADDR1", 7, "UTC")
        provider.trader_profit_distribution.assert_awaited_once_with("ADDR1", 7, "CST")

    @pytest.mark.asyncio
    async def test_testdata_never_calls_provider(self, service, provider):
        """Synthetic requests are answered without touching Metabase."""
        request = QueryRequest(source="testdata", address="ADDR1")

        tokens = await service.new_tokens(request)
        info = await service.trader_info(request)
        detail = await service.trader_detail(request)

        assert [row.total_count for row in tokens.rows] == [100, 200]
        assert info.info.tag == ["sniper", "MEV", "creator"]
        assert detail.is_complete
        assert provider.method_calls == []

    @pytest.mark.asyncio
    async def test_trader_info_not_found(self, service, provider):
        """A trader without overview rows is reported as not found."""
        provider.trader_overview = AsyncMock(return_value=dataset([]))

        with pytest.raises(IncompleteAggregate):
            await service.trader_info(QueryRequest(address="ADDR1"))


# =============================================================================
# Trader detail aggregation
# =============================================================================

REQUEST = QueryRequest(duration=7, timezone="UTC", address="ADDR1")


def stub_branches(service, *, distribution=None):
    service.trader_overview = AsyncMock(return_value=TraderOverview(
        info=TraderOverviewData(total_net_profit=100, traded_token_count=10)
    ))
    service.trader_profit = AsyncMock(return_value=TraderProfit(
        rows=[TraderProfitRow(date="2024-09-15", net_profit=-1, gross_profit=-1)]
    ))
    if distribution is None:
        distribution = ProfitDistribution(
            rows=[ProfitDistributionRow(profit_margin_bucket="< -100%", token_count=5)]
        )
    service.trader_profit_distribution = AsyncMock(return_value=distribution)
    service.trader_trades = AsyncMock(return_value=TraderTrades(
        rows=[TraderTradesRow(time_range="[00:00-00:30)", tx_count=2)]
    ))


class TestTraderDetail:
    """Concurrent fan-out of the four trader sub-queries."""

    @pytest.mark.asyncio
    async def test_fully_populated_composite(self, service):
        """All four branches land in their own field of the composite."""
        stub_branches(service)

        detail = await service.trader_detail(REQUEST)

        assert detail.trader.address == "ADDR1"
        assert detail.overview.total_net_profit == 100
        assert detail.overview.traded_token_count == 10
        assert detail.profit[0].net_profit == -1
        assert detail.profit_distribution[0].token_count == 5
        assert detail.trades[0].tx_count == 2
        for branch in (
            service.trader_overview,
            service.trader_profit,
            service.trader_profit_distribution,
            service.trader_trades,
        ):
            branch.assert_awaited_once_with(REQUEST)

    @pytest.mark.asyncio
    async def test_empty_profit_distribution_is_incomplete(self, service):
        """An empty profit distribution fails the whole aggregation."""
        stub_branches(service, distribution=ProfitDistribution(rows=[]))

        with pytest.raises(IncompleteAggregate) as exc_info:
            await service.trader_detail(REQUEST)

        assert exc_info.value.address == "ADDR1"

    @pytest.mark.asyncio
    async def test_missing_overview_is_incomplete(self, service):
        """A trader with no overview fails the whole aggregation."""
        stub_branches(service)
        service.trader_overview = AsyncMock(return_value=TraderOverview(info=None))

        with pytest.raises(IncompleteAggregate):
            await service.trader_detail(REQUEST)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "branch",
        ["trader_overview", "trader_profit", "trader_profit_distribution", "trader_trades"],
    )
    async def test_any_failing_branch_fails_closed(self, service, branch):
        """A single failing branch raises and yields no composite."""
        stub_branches(service)
        failure = TransportError("boom", upstream="metabase", status_code=500)
        setattr(service, branch, AsyncMock(side_effect=failure))

        with pytest.raises(TransportError) as exc_info:
            await service.trader_detail(REQUEST)

        assert exc_info.value is failure

    @pytest.mark.asyncio
    async def test_error_priority_ignores_completion_order(self, service):
        """The overview error wins even when the trades branch fails first."""
        stub_branches(service)
        overview_error = TransportError("overview down", upstream="metabase")
        trades_error = TransportError("trades down", upstream="metabase")

        async def slow_overview(request):
            await asyncio.sleep(0.01)
            raise overview_error

        service.trader_overview = AsyncMock(side_effect=slow_overview)
        service.trader_trades = AsyncMock(side_effect=trades_error)

        with pytest.raises(TransportError) as exc_info:
            await service.trader_detail(REQUEST)

        assert exc_info.value is overview_error

    @pytest.mark.asyncio
    async def test_every_branch_runs_after_a_failure(self, service):
        """Sibling branches still run to completion when one fails early."""
        stub_branches(service)
        service.trader_overview = AsyncMock(side_effect=TransportError("down", upstream="metabase"))

        with pytest.raises(TransportError):
            await service.trader_detail(REQUEST)

        service.trader_profit.assert_awaited_once()
        service.trader_profit_distribution.assert_awaited_once()
        service.trader_trades.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_idempotent_for_identical_inputs(self, service):
        """Repeated aggregation over identical stubs yields identical composites."""
        stub_branches(service)

        first = await service.trader_detail(REQUEST)
        second = await service.trader_detail(REQUEST)

        assert first.model_dump() == second.model_dump()
