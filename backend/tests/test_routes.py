"""
HTTP Route Tests

Every router through the FastAPI test client, in mock mode. The service
container is swapped for a fresh one per test.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from finscope.envelope import ok, shape
from finscope.errors import DependencyUnhealthy
from finscope.main import app
from finscope.middleware.envelope import ResponseEnvelopeMiddleware
from finscope.services import get_services

client = TestClient(app)

PROFILE = {
    "age": 30,
    "income": 120000,
    "monthlyExpenses": 4000,
    "timeHorizon": "30 years",
    "riskTolerance": "Moderate",
    "currentSavings": 10000,
}


@pytest.fixture(autouse=True)
def _fresh_services(services):
    app.dependency_overrides[get_services] = lambda: services
    yield
    app.dependency_overrides.clear()


# ──────────────────────────────────────────────
# Envelope, errors and middleware
# ──────────────────────────────────────────────

def _envelope_app() -> FastAPI:
    mini = FastAPI()
    mini.add_middleware(ResponseEnvelopeMiddleware)

    @mini.get("/api/naked")
    async def naked():
        return {"price": 1}

    @mini.get("/api/wrapped")
    async def wrapped():
        return ok({"price": 1}, source="Demo")

    @mini.get("/api/list")
    async def as_list():
        return [1, 2]

    @mini.get("/plain")
    async def plain():
        return {"price": 1}

    return mini


class TestResponseEnvelope:
    def test_shape_passes_envelopes_through(self):
        body = ok({"a": 1})
        assert shape(body) is body

    def test_shape_wraps_naked_payload(self):
        body = shape({"a": 1})
        assert body["success"] is True
        assert body["data"] == {"a": 1}
        assert "timestamp" in body

    def test_middleware_wraps_naked_object(self):
        body = TestClient(_envelope_app()).get("/api/naked").json()
        assert body["success"] is True
        assert body["data"] == {"price": 1}

    def test_middleware_wraps_naked_list(self):
        assert TestClient(_envelope_app()).get("/api/list").json()["data"] == [1, 2]

    def test_middleware_keeps_existing_envelope(self):
        body = TestClient(_envelope_app()).get("/api/wrapped").json()
        assert body["data"] == {"price": 1}
        assert body["source"] == "Demo"

    def test_middleware_ignores_non_api_paths(self):
        assert TestClient(_envelope_app()).get("/plain").json() == {"price": 1}

    def test_openapi_not_wrapped(self):
        assert "openapi" in client.get("/openapi.json").json()


class TestPlumbing:
    def test_unknown_route(self):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Route not found"
        assert body["path"] == "/api/nope"

    def test_validation_error_is_400(self):
        resp = client.post("/api/market-data/bulk", json={"symbols": "AAPL"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Validation error"
        assert body["errors"][0]["field"] == "symbols"

    def test_domain_validation_error(self):
        resp = client.get("/api/market-data/search", params={"q": ""})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Search query is required"

    def test_request_id_generated(self):
        resp = client.get("/api/news/categories")
        assert resp.headers.get("X-Request-ID")

    def test_request_id_echoed(self):
        resp = client.get("/api/news/categories", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    def test_cors_preflight(self):
        resp = client.options(
            "/api/market-data/stock/AAPL",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["mockMode"] is True
        assert set(data["services"]) == {"marketData", "economicIndicators", "news", "companyFilings", "banking"}

    def test_unhealthy_service_is_503(self, services):
        async def broken():
            raise DependencyUnhealthy("News providers are not responding")

        services.news.health = broken
        resp = client.get("/health")
        assert resp.status_code == 503
        body = resp.json()
        assert body["success"] is False
        assert body["data"]["services"]["news"]["status"] == "unhealthy"


# ──────────────────────────────────────────────
# Market data
# ──────────────────────────────────────────────

class TestMarketRoutes:
    def test_quote(self):
        resp = client.get("/api/market-data/stock/aapl")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["symbol"] == "AAPL"
        assert body["data"]["source"] == "Demo"
        assert "currentPrice" in body["data"]

    def test_indian_top(self):
        data = client.get("/api/market-data/indian-stocks/top").json()["data"]
        assert data["count"] == 10

    def test_search_count(self):
        body = client.get("/api/market-data/search", params={"q": "tech"}).json()
        assert body["count"] == len(body["data"])

    def test_bulk(self):
        resp = client.post("/api/market-data/bulk", json={"symbols": ["AAPL", "MSFT", "TSLA"]})
        assert resp.json()["data"]["stats"]["successful"] == 3

    def test_bulk_too_many(self):
        resp = client.post("/api/market-data/bulk", json={"symbols": [f"S{i}" for i in range(25)]})
        assert resp.status_code == 400

    def test_technical(self):
        resp = client.get("/api/market-data/alpha/technical/AAPL/rsi")
        assert resp.status_code == 200
        assert resp.json()["data"]["indicator"] == "RSI"

    def test_bad_interval(self):
        resp = client.get("/api/market-data/alpha/intraday/AAPL", params={"interval": "2min"})
        assert resp.status_code == 400


# ──────────────────────────────────────────────
# Economic indicators, news, filings
# ──────────────────────────────────────────────

class TestEconomicRoutes:
    def test_summary(self):
        data = client.get("/api/economic-indicators/summary").json()["data"]
        assert {"usa", "india", "forex", "metadata"} <= set(data)

    def test_fred_series(self):
        data = client.get("/api/economic-indicators/fred/unrate").json()["data"]
        assert data["seriesId"] == "UNRATE"


class TestNewsRoutes:
    def test_categories(self):
        data = client.get("/api/news/categories").json()["data"]
        assert "markets" in data

    def test_latest_limit(self):
        body = client.get("/api/news/latest", params={"limit": 3}).json()
        assert body["count"] == 3

    def test_stock_news(self):
        body = client.get("/api/news/stock/msft").json()
        assert all("MSFT" in a["tickers"] for a in body["data"])

    def test_unknown_category(self):
        assert client.get("/api/news/category/sports").status_code == 400


class TestFilingsRoutes:
    def test_company(self):
        data = client.get("/api/company-filings/company/AAPL", params={"limit": 4}).json()["data"]
        assert data["company"]["cik"] == "0000320193"
        assert data["count"] == 4

    def test_by_form(self):
        data = client.get("/api/company-filings/company/MSFT/form/10-Q").json()["data"]
        assert all(f["form"] == "10-Q" for f in data["filings"])

    def test_forms(self):
        assert len(client.get("/api/company-filings/forms").json()["data"]) == 6


# ──────────────────────────────────────────────
# Banking
# ──────────────────────────────────────────────

class TestPlaidRoutes:
    def test_link_token(self):
        data = client.post("/api/plaid/link/token/create", json={"userId": "u1"}).json()["data"]
        assert data["linkToken"].startswith("link-sandbox-u1-")

    def test_missing_user(self):
        resp = client.post("/api/plaid/link/token/create", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "userId is required"

    def test_transactions(self):
        today = date.today()
        resp = client.post(
            "/api/plaid/transactions",
            json={
                "accessToken": "access-sandbox-u1",
                "startDate": (today - timedelta(days=30)).isoformat(),
                "endDate": (today + timedelta(days=1)).isoformat(),
            },
        )
        assert resp.json()["data"]["totalTransactions"] == 3

    def test_products(self):
        assert client.get("/api/plaid/info/products").json()["success"] is True


# ──────────────────────────────────────────────
# Analysis and planning
# ──────────────────────────────────────────────

class TestAnalysisRoutes:
    def test_analyze(self):
        data = client.get("/api/stock-analysis/analyze/AAPL").json()["data"]
        assert data["overallRecommendation"]["action"] in {"BUY", "HOLD", "SELL"}

    def test_trending(self):
        assert len(client.get("/api/stock-analysis/trending").json()["data"]["stocks"]) == 8


class TestPlanningRoutes:
    def test_plan(self):
        body = client.post("/api/financial-planning/plan", json={"profile": PROFILE}).json()
        assert body["success"] is True
        assert body["data"]["retirementPlan"]["monthlyAvailable"] == 6000
        assert sum(body["data"]["portfolioAnalysis"]["allocation"].values()) == 100

    def test_plan_requires_profile(self):
        assert client.post("/api/financial-planning/plan", json={}).status_code == 400

    def test_analyze_field(self):
        body = client.post(
            "/api/financial-planning/analyze",
            json={"field": "age", "value": 45, "currentProfile": PROFILE},
        ).json()
        assert body["data"]["newValue"] == 45

    def test_analyze_changes(self):
        body = client.post(
            "/api/financial-planning/analyze",
            json={"changes": {"income": 150000}, "profile": PROFILE},
        ).json()
        assert "healthScore" in body["data"]["impact"]

    def test_simulate(self):
        body = client.post(
            "/api/financial-planning/simulate",
            json={"scenarios": [{"name": "Raise", "changes": {"income": 180000}}], "baseProfile": PROFILE},
        ).json()
        assert body["data"]["bestScenario"] == "Raise"

    def test_track(self):
        body = client.post(
            "/api/financial-planning/track",
            json={"profile": PROFILE, "goal": {"targetAmount": 100000, "timeframe": "10 years"}},
        ).json()
        assert body["data"]["timeframe"] == 10

    def test_track_detailed(self):
        body = client.post(
            "/api/financial-planning/track-detailed",
            json={"currentSavings": 1000, "monthlyContribution": 100, "targetAmount": 50000, "timeframe": 10},
        ).json()
        assert len(body["data"]["monthlyProgress"]) == 10

    def test_track_detailed_requires_target(self):
        resp = client.post("/api/financial-planning/track-detailed", json={"timeframe": 10})
        assert resp.status_code == 400

    def test_plan_clamps_extreme_horizon(self):
        resp = client.post(
            "/api/financial-planning/plan",
            json={"profile": {"age": 30, "income": 90000, "timeHorizon": "10000 years"}},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["retirementPlan"]["yearsToRetirement"] == 100

    def test_plan_defaults_non_finite_fields(self):
        resp = client.post(
            "/api/financial-planning/plan",
            content='{"profile": {"age": "inf", "income": 1e400}}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 200
        profile = resp.json()["data"]["profile"]
        assert profile["age"] == 25
        assert profile["income"] == 50000

    def test_simulate_with_extreme_horizon(self):
        resp = client.post(
            "/api/financial-planning/simulate",
            json={"scenarios": [{"name": "Long", "changes": {"timeHorizon": "10000 years"}}], "baseProfile": PROFILE},
        )
        assert resp.status_code == 200

    @pytest.mark.parametrize("timeframe", ["10000", "1e9", "1e400"])
    def test_track_detailed_rejects_huge_timeframe(self, timeframe):
        resp = client.post(
            "/api/financial-planning/track-detailed",
            content='{"currentSavings": 1000, "monthlyContribution": 100, "targetAmount": 50000, '
            f'"timeframe": {timeframe}}}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_track_detailed_rejects_infinite_amount(self):
        resp = client.post(
            "/api/financial-planning/track-detailed",
            content='{"currentSavings": 1e400, "targetAmount": 50000, "timeframe": 10}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "currentSavings"

    def test_track_clamps_long_string_timeframe(self):
        body = client.post(
            "/api/financial-planning/track",
            json={"profile": PROFILE, "goal": {"targetAmount": 100000, "timeframe": "500 years"}},
        ).json()
        assert body["data"]["timeframe"] == 100
