"""
HTTP API tests using FastAPI's TestClient with dependency overrides.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pumpscope.core.dispatcher import get_intent_dispatcher
from pumpscope.core.messages import (
    INTENTION_ERROR_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    TRADER_NOT_FOUND_MESSAGE,
)
from pumpscope.errors import IncompleteAggregate, MalformedArguments, TransportError
from pumpscope.main import app
from pumpscope.services.pump_data import PumpDataService, get_pump_data_service
from pumpscope.types.envelope import LocalFunctionResult, PlainTextResult
from pumpscope.types.functions import FunctionCallType, UniswapResult

client = TestClient(app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def dispatcher():
    stub = MagicMock()
    stub.resolve = AsyncMock()
    app.dependency_overrides[get_intent_dispatcher] = lambda: stub
    return stub


@pytest.fixture
def provider():
    """Metabase stub behind a real data service."""
    stub = MagicMock()
    app.dependency_overrides[get_pump_data_service] = lambda: PumpDataService(provider=stub)
    return stub


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Pumpscope API"


def test_health_endpoint():
    metabase = MagicMock()
    metabase.health_check = AsyncMock(return_value={"status": "healthy"})
    reasoner = MagicMock()
    reasoner.health_check = AsyncMock(return_value={"status": "unavailable", "reason": "not configured"})

    with patch("pumpscope.api.health.get_metabase_provider", return_value=metabase), \
            patch("pumpscope.api.health.ReasonerClient", return_value=reasoner):
        response = client.get("/healthz")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["available_providers"] == 1
    assert data["total_providers"] == 2
    assert set(data["providers"]) == {"metabase", "reasoner"}


def test_functions_catalog():
    response = client.get("/functions")

    assert response.status_code == 200
    names = [schema["name"] for schema in response.json()]
    assert names[0] == "swap"
    assert "trader_overview" in names


class TestChatResolve:
    """POST /chat/resolve"""

    def test_plain_text(self, dispatcher):
        dispatcher.resolve.return_value = PlainTextResult(content="pump.fun is a launchpad", view="chat")

        response = client.post("/chat/resolve", json={
            "messages": [{"role": "user", "content": "what is pump.fun?"}],
            "project_id": "project-x",
        })

        data = response.json()
        assert data["success"] is True
        assert data["envelope"]["kind"] == "plain_text"
        assert data["envelope"]["content"] == "pump.fun is a launchpad"
        history, project_id = dispatcher.resolve.await_args.args
        assert history[0].content == "what is pump.fun?"
        assert project_id == "project-x"

    def test_local_function_payload(self, dispatcher):
        dispatcher.resolve.return_value = LocalFunctionResult(
            fc_type=FunctionCallType.UNISWAP,
            data=UniswapResult(url="https://app.uniswap.org/swap"),
        )

        response = client.post("/chat/resolve", json={"messages": [{"role": "user", "content": "swap"}]})

        envelope = response.json()["envelope"]
        assert envelope["kind"] == "local_function"
        assert envelope["fc_type"] == "uniswap"
        assert envelope["data"] == {"url": "https://app.uniswap.org/swap"}

    @pytest.mark.parametrize("error,message", [
        (IncompleteAggregate("ADDR1"), TRADER_NOT_FOUND_MESSAGE),
        (MalformedArguments("bad args", function="trader_overview", field="address"), INTENTION_ERROR_MESSAGE),
        (TransportError("down", upstream="metabase", status_code=500), NETWORK_ERROR_MESSAGE),
    ])
    def test_failures_become_user_messages(self, dispatcher, error, message):
        dispatcher.resolve.side_effect = error

        response = client.post("/chat/resolve", json={"messages": [{"role": "user", "content": "hi"}]})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["envelope"] is None
        assert data["error"] == message


class TestPumpDataEndpoints:
    """GET /data/pump/*"""

    @pytest.mark.parametrize("path", [
        "/data/pump/new-tokens",
        "/data/pump/launch-time",
        "/data/pump/transactions",
        "/data/pump/top-traders",
        "/data/pump/trader/info",
        "/data/pump/trader/overview",
        "/data/pump/trader/profit",
        "/data/pump/trader/profit-distribution",
        "/data/pump/trader/trades",
        "/data/pump/trader/detail",
    ])
    def test_testdata_endpoints(self, provider, path):
        response = client.get(path, params={"source": "testdata"})

        assert response.status_code == 200
        assert provider.method_calls == []

    def test_trader_detail_shape(self, provider):
        response = client.get("/data/pump/trader/detail", params={"source": "testdata", "address": "ADDR1"})

        data = response.json()
        assert data["trader"] == {"address": "ADDR1"}
        assert data["overview"]["traded_token_count"] == 2002
        assert len(data["profit_distribution"]) == 2

    def test_trader_endpoint_requires_address(self, provider):
        response = client.get("/data/pump/trader/overview")
        assert response.status_code == 400

    def test_invalid_timezone(self, provider):
        response = client.get("/data/pump/new-tokens", params={"timezone": "PST"})
        assert response.status_code == 400

    def test_upstream_failure_is_bad_gateway(self, provider):
        provider.daily_trade_counts = AsyncMock(
            side_effect=TransportError("Metabase API error (500)", upstream="metabase", status_code=500)
        )

        response = client.get("/data/pump/transactions", params={"duration": 7})

        assert response.status_code == 502
        assert response.json()["detail"]["upstream"] == "metabase"

    def test_unknown_trader_is_not_found(self, provider):
        provider.trader_overview = AsyncMock(return_value=MagicMock(data=MagicMock(rows=[])))

        response = client.get("/data/pump/trader/info", params={"address": "ADDR1"})

        assert response.status_code == 404
        assert response.json()["detail"]["address"] == "ADDR1"
