"""
FinScope — Banking Aggregator Routes

Link-token flow, accounts, transactions, holdings, identity and spending
insights from the mock banking aggregator. Every payload is tagged as
mock data.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from finscope.envelope import ok
from finscope.models import CamelModel
from finscope.services import ServiceContainer, get_services

plaid_router = APIRouter()


class LinkTokenRequest(CamelModel):
    user_id: Optional[str] = None
    client_name: str = "FinScope"


class ExchangeRequest(CamelModel):
    public_token: Optional[str] = None
    user_id: Optional[str] = None


class AccessTokenRequest(CamelModel):
    access_token: Optional[str] = None


class TransactionsRequest(CamelModel):
    access_token: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    account_ids: Optional[list[str]] = None
    count: int = Field(100, ge=1, le=500)
    offset: int = Field(0, ge=0)


class SpendingInsightsRequest(CamelModel):
    access_token: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    account_ids: Optional[list[str]] = None


# ──────────────────────────────────────────────
# Link flow
# ──────────────────────────────────────────────


@plaid_router.post("/link/token/create")
async def create_link_token(body: LinkTokenRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.create_link_token(body.user_id, body.client_name))


@plaid_router.post("/link/token/exchange")
async def exchange_public_token(body: ExchangeRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.exchange_public_token(body.public_token, body.user_id))


# ──────────────────────────────────────────────
# Account data
# ──────────────────────────────────────────────


@plaid_router.post("/accounts")
async def get_accounts(body: AccessTokenRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.get_accounts(body.access_token))


@plaid_router.post("/transactions")
async def get_transactions(body: TransactionsRequest, services: ServiceContainer = Depends(get_services)):
    return ok(
        await services.banking.get_transactions(
            body.access_token, body.start_date, body.end_date, body.account_ids, body.count, body.offset
        )
    )


@plaid_router.post("/investments/holdings")
async def get_holdings(body: AccessTokenRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.get_investment_holdings(body.access_token))


@plaid_router.post("/identity")
async def get_identity(body: AccessTokenRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.get_identity(body.access_token))


@plaid_router.post("/item")
async def get_item(body: AccessTokenRequest, services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.get_item(body.access_token))


@plaid_router.post("/insights/spending")
async def spending_insights(body: SpendingInsightsRequest, services: ServiceContainer = Depends(get_services)):
    """Category totals and monthly trends over the requested window."""
    return ok(
        await services.banking.spending_insights(body.access_token, body.start_date, body.end_date, body.account_ids)
    )


@plaid_router.get("/info/products")
async def get_products(services: ServiceContainer = Depends(get_services)):
    return ok(services.banking.info())


@plaid_router.get("/health")
async def plaid_health(services: ServiceContainer = Depends(get_services)):
    return ok(await services.banking.health_check())
