"""
Metabase card-query provider.

Every pump.fun metric is a saved Metabase "card" (native SQL question) with
template tags. This module holds the card catalog, authenticates against
``/api/session`` (the session id is memoized in the token cache) and runs
``POST /api/card/{id}/query`` with the metric's parameters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..cache import TokenCache, token_cache
from ..config import settings
from ..errors import AuthExpired, MalformedArguments, TransportError
from ..types.pump import DatasetQueryResults

logger = logging.getLogger(__name__)

AUTH_NAMESPACE = "auth"
SESSION_HEADER = "X-Metabase-Session"

NUMBER = "number/="
CATEGORY = "category"


@dataclass(frozen=True)
class CardParameter:
    id: str
    tag: str
    type: str = NUMBER

    def render(self, value: Any) -> Dict[str, Any]:
        if self.type == NUMBER:
            rendered: Any = [_format_number(value)]
        else:
            rendered = str(value)
        return {
            "id": self.id,
            "type": self.type,
            "value": rendered,
            "target": ["variable", ["template-tag", self.tag]],
        }


@dataclass(frozen=True)
class Card:
    card_id: int
    parameters: Tuple[CardParameter, ...]

    @property
    def path(self) -> str:
        return f"/api/card/{self.card_id}/query"

    def payload(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        missing = [param.tag for param in self.parameters if param.tag not in values]
        if missing:
            raise MalformedArguments(f"card {self.card_id} missing parameters: {missing}", field=missing[0])
        return {
            "ignore_cache": False,
            "collection_preview": False,
            "parameters": [param.render(values[param.tag]) for param in self.parameters],
        }


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _days(param_id: str) -> CardParameter:
    return CardParameter(id=param_id, tag="days")


def _trader(param_id: str) -> CardParameter:
    return CardParameter(id=param_id, tag="trader", type=CATEGORY)


# metric -> timezone -> card
CARD_CATALOG: Dict[str, Dict[str, Card]] = {
    "daily_launched_token_info": {
        "UTC": Card(106, (_days("bb79b15e-1245-4166-96f0-c6baaa71567c"),)),
        "CST": Card(115, (_days("a3066d17-b2fc-4d12-bf4a-92f81ab71d66"),)),
    },
    "launched_token_time_distribution": {
        "UTC": Card(107, (_days("4afba805-4047-477a-b1aa-399e06f5f5e4"),)),
        "CST": Card(114, (_days("a9330250-fca8-46b2-88ed-0fef40ef981e"),)),
    },
    "daily_trade_counts": {
        "UTC": Card(108, (_days("59c5518a-8697-4d92-8531-4ba301e6ab85"),)),
        "CST": Card(116, (_days("59c5518a-8697-4d92-8531-4ba301e6ab85"),)),
    },
    "trader_tx_time_distribution": {
        "UTC": Card(112, (
            _trader("b8f94534-7734-4e40-b8e4-212e0d876cda"),
            _days("e164924c-5361-411d-82de-34de55cd3e67"),
        )),
        "CST": Card(120, (
            _trader("b8f94534-7734-4e40-b8e4-212e0d876cda"),
            _days("e164924c-5361-411d-82de-34de55cd3e67"),
        )),
    },
    "trader_profit_token_distribution": {
        "UTC": Card(113, (
            _trader("586e6393-9ff0-4eac-9918-d10984d441c7"),
            _days("43a557d5-fbc8-4cd7-b8e4-101564b47695"),
        )),
        "CST": Card(119, (
            _trader("596faff0-6ef4-42cf-be21-b854f2db58af"),
            _days("208313ef-a20b-427c-a4ea-9d154e053aed"),
        )),
    },
    "trader_profit_distribution": {
        "UTC": Card(111, (
            _trader("90848092-e63d-4b0a-8e07-265fd413e2f2"),
            _days("a8098d1f-6d88-4e64-8b3f-4ee5a0e92994"),
        )),
        "CST": Card(118, (
            _trader("f4bba41b-2de9-4fa1-9651-96d696aa221e"),
            _days("158050e1-75eb-4729-8567-1214ba6ff071"),
        )),
    },
}

# Timezone is a card parameter here rather than a separate card.
TRADER_OVERVIEW_CARD = Card(140, (
    _trader("3332d084-956d-489e-87f2-e634c4d0e42d"),
    CardParameter(id="d988ac7f-ecb0-40d7-8123-5410e5598ebc", tag="tz", type=CATEGORY),
    _days("a9218770-8bb2-474d-ab33-11ffdc7e2052"),
))

# duration (days) -> card; anything other than 7 or 30 uses the 1-day card
TOP_TRADER_CARDS: Dict[int, Card] = {
    30: Card(125, (CardParameter(id="04f74b13-e4df-4836-b94b-72c1170dffcd", tag="win_ratio"),)),
    7: Card(124, (CardParameter(id="6f67544d-f340-4dd4-91ce-56a225d95a25", tag="win_ratio"),)),
    1: Card(131, (CardParameter(id="ec83280c-ba44-4968-9899-4a37d4f8a318", tag="win_ratio"),)),
}

MIN_DAILY_DURATION = 7


def card_for(metric: str, timezone: str) -> Card:
    """Resolve a timezone-split card; an empty timezone selects the UTC card."""
    cards = CARD_CATALOG[metric]
    return cards.get(timezone or "UTC", cards["UTC"])


class MetabaseProvider:
    """Runs saved Metabase cards with a cached session token."""

    name = "metabase"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        cache: Optional[TokenCache] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.metabase_url).rstrip("/")
        self.username = username if username is not None else settings.metabase_username
        self.password = password if password is not None else settings.metabase_password
        self.cache = cache or token_cache
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def ready(self) -> bool:
        return bool(self.base_url and self.username)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Metabase credentials not configured"}
        try:
            await self.authenticate()
            return {"status": "healthy"}
        except (AuthExpired, TransportError) as exc:
            return {"status": "error", "reason": exc.message}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Any:
        headers = {SESSION_HEADER: token} if token else None
        try:
            response = await self._get_client().post(path, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise AuthExpired(self.name, self.username) from exc
            raise TransportError(
                f"Metabase API error ({status}) on {path}",
                upstream=self.name,
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Metabase request error: {exc}", upstream=self.name) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Metabase returned non-JSON body on {path}", upstream=self.name) from exc

    async def authenticate(self) -> str:
        """Return a session token, logging in only when none is cached."""
        token, found = await self.cache.get(AUTH_NAMESPACE, self.username)
        if found:
            return token

        data = await self._post("/api/session", {"username": self.username, "password": self.password})
        token = data.get("id") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise TransportError("Metabase session response carried no id", upstream=self.name)

        await self.cache.put(
            AUTH_NAMESPACE,
            self.username,
            token,
            ttl=settings.metabase_session_ttl_seconds or None,
        )
        logger.info(f"Metabase session acquired for {self.username}")
        return token

    async def run_card(self, card: Card, values: Mapping[str, Any]) -> DatasetQueryResults:
        """Execute a card, re-authenticating once if the cached session was rejected."""
        payload = card.payload(values)
        token = await self.authenticate()
        try:
            raw = await self._post(card.path, payload, token)
        except AuthExpired:
            logger.warning(f"Metabase session rejected on card {card.card_id}; re-authenticating")
            await self.cache.invalidate(AUTH_NAMESPACE, self.username)
            token = await self.authenticate()
            raw = await self._post(card.path, payload, token)

        try:
            return DatasetQueryResults.model_validate(raw)
        except ValidationError as exc:
            raise MalformedArguments(
                f"card {card.card_id} returned an undecodable dataset",
                function=f"card:{card.card_id}",
            ) from exc

    # Metric cards

    async def daily_launched_token_info(self, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("daily_launched_token_info", timezone)
        return await self.run_card(card, {"days": max(duration, MIN_DAILY_DURATION)})

    async def launched_token_time_distribution(self, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("launched_token_time_distribution", timezone)
        return await self.run_card(card, {"days": max(duration, MIN_DAILY_DURATION)})

    async def daily_trade_counts(self, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("daily_trade_counts", timezone)
        return await self.run_card(card, {"days": max(duration, MIN_DAILY_DURATION)})

    async def trader_overview(self, trader: str, timezone: str, days: int) -> DatasetQueryResults:
        return await self.run_card(
            TRADER_OVERVIEW_CARD,
            {"trader": trader, "tz": timezone or "CST", "days": days},
        )

    async def trader_tx_time_distribution(self, trader: str, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("trader_tx_time_distribution", timezone)
        return await self.run_card(card, {"trader": trader, "days": duration})

    async def trader_profit_token_distribution(self, trader: str, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("trader_profit_token_distribution", timezone)
        return await self.run_card(card, {"trader": trader, "days": duration})

    async def trader_profit_distribution(self, trader: str, duration: int, timezone: str) -> DatasetQueryResults:
        card = card_for("trader_profit_distribution", timezone)
        return await self.run_card(card, {"trader": trader, "days": duration})

    async def top_trader(self, duration: int, win_ratio: float) -> DatasetQueryResults:
        card = TOP_TRADER_CARDS.get(duration, TOP_TRADER_CARDS[1])
        return await self.run_card(card, {"win_ratio": win_ratio})


_metabase_provider: Optional[MetabaseProvider] = None


def get_metabase_provider() -> MetabaseProvider:
    global _metabase_provider
    if _metabase_provider is None:
        _metabase_provider = MetabaseProvider()
    return _metabase_provider
