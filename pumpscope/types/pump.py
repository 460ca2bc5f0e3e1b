"""Models for pump.fun analytics queries and the row-sets they decode into."""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


TESTDATA_SOURCE = "testdata"

Timezone = Literal["UTC", "CST", ""]


class QueryRequest(BaseModel):
    """Parameters shared by every metric query.

    Built once per call from parsed function arguments or query-string input.
    Metric-specific defaults are applied by the service, not here, so an
    empty timezone or a zero duration means "use the metric's default".
    """

    model_config = ConfigDict(frozen=True)

    duration: int = Field(default=0, ge=0, description="Look-back window in days")
    timezone: Timezone = Field(default="", description="UTC, CST or empty for the metric default")
    address: str = Field(default="", description="Trader address (Solana base58)")
    max_win_rate: float = Field(default=0.0, ge=0.0, description="Win-ratio threshold for top traders")
    source: str = Field(default="", description="'testdata' selects synthetic responses")

    @field_validator("timezone", mode="before")
    @classmethod
    def _normalize_timezone(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def is_testdata(self) -> bool:
        return self.source == TESTDATA_SOURCE

    def with_defaults(self, *, duration: int, timezone: str) -> "QueryRequest":
        """Copy with a zero duration / empty timezone replaced by the given defaults."""
        return self.model_copy(
            update={
                "duration": self.duration or duration,
                "timezone": self.timezone or timezone,
            }
        )


# Dataset (BI tool card query) response


class DatasetColumn(BaseModel):
    name: str = ""
    display_name: str = ""
    base_type: str = ""


class DatasetData(BaseModel):
    rows: List[List[Any]] = Field(default_factory=list)
    cols: List[DatasetColumn] = Field(default_factory=list)
    rows_truncated: int = 0


class DatasetQueryResults(BaseModel):
    status: str = ""
    row_count: int = 0
    running_time: int = 0
    data: DatasetData = Field(default_factory=DatasetData)


# Row-sets


class NewTokenRow(BaseModel):
    date: str
    total_count: int
    p2r_count: int
    p2r_ratio: float


class NewTokens(BaseModel):
    rows: List[NewTokenRow] = Field(default_factory=list)


class LaunchTimeRow(BaseModel):
    time_range: str
    launched_count: int


class LaunchTime(BaseModel):
    rows: List[LaunchTimeRow] = Field(default_factory=list)


class TradeCountRow(BaseModel):
    date: str
    trade_count: int


class Transactions(BaseModel):
    rows: List[TradeCountRow] = Field(default_factory=list)


class TopTraderRow(BaseModel):
    trader: str
    total_net_profit: float
    net_profit_win_ratio: float
    gross_profit_win_ratio: float
    total_tx_count: int


class TopTraders(BaseModel):
    rows: List[TopTraderRow] = Field(default_factory=list)


class TraderInfoData(BaseModel):
    address: str
    tag: List[str] = Field(default_factory=list)


class TraderInfo(BaseModel):
    info: Optional[TraderInfoData] = None


class TraderOverviewData(BaseModel):
    total_net_profit: float = 0.0
    profit_ratio: float = 0.0
    net_profit_win_ratio: float = 0.0
    traded_token_count: int = 0
    avg_sol_cost_per_token: float = 0.0
    total_cost: float = 0.0
    avg_tip_per_token: float = 0.0
    avg_fee_per_token: float = 0.0
    token_create_count: int = 0


class TraderOverview(BaseModel):
    info: Optional[TraderOverviewData] = None


class TraderProfitRow(BaseModel):
    date: str
    net_profit: float
    gross_profit: float


class TraderProfit(BaseModel):
    rows: List[TraderProfitRow] = Field(default_factory=list)


class ProfitDistributionRow(BaseModel):
    profit_margin_bucket: str
    token_count: int


class ProfitDistribution(BaseModel):
    rows: List[ProfitDistributionRow] = Field(default_factory=list)


class TraderTradesRow(BaseModel):
    time_range: str
    tx_count: int


class TraderTrades(BaseModel):
    rows: List[TraderTradesRow] = Field(default_factory=list)


class TraderRef(BaseModel):
    address: str


class TraderDetail(BaseModel):
    """Composite of the four trader sub-queries.

    Only returned when ``overview`` is set and ``profit_distribution`` is
    non-empty; anything less is reported as an incomplete aggregate.
    """

    trader: TraderRef
    overview: Optional[TraderOverviewData] = None
    profit: List[TraderProfitRow] = Field(default_factory=list)
    profit_distribution: List[ProfitDistributionRow] = Field(default_factory=list)
    trades: List[TraderTradesRow] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.overview is not None and len(self.profit_distribution) > 0
