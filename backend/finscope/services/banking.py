"""
FinScope — Banking Aggregator (mock)

Stand-in for a Plaid-style account-aggregation API. Every call sleeps for a
random 50–300 ms to mimic network latency and returns structurally
realistic sandbox payloads. Credentials from settings are recorded but never
sent anywhere.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from finscope.data.mock_data import DEMO_NOTE
from finscope.errors import ValidationFailed, utc_now_iso

log = structlog.get_logger(__name__)

LINK_TOKEN_TTL = timedelta(hours=4)

PRODUCTS = [
    {"name": "transactions", "description": "Account transaction history"},
    {"name": "accounts", "description": "Account balances and details"},
    {"name": "identity", "description": "Account holder identity information"},
    {"name": "investments", "description": "Investment holdings and securities"},
    {"name": "liabilities", "description": "Credit card, student loan and mortgage details"},
]

SUPPORTED_COUNTRIES = ["US", "CA", "GB", "FR", "ES", "NL", "IE"]

_ACCOUNTS = [
    {
        "accountId": "mock_checking_001",
        "name": "Primary Checking",
        "officialName": "Total Checking",
        "type": "depository",
        "subtype": "checking",
        "mask": "0000",
        "balances": {"available": 1250.75, "current": 1250.75, "limit": None, "isoCurrencyCode": "USD"},
    },
    {
        "accountId": "mock_savings_001",
        "name": "Savings Account",
        "officialName": "High Yield Savings",
        "type": "depository",
        "subtype": "savings",
        "mask": "1111",
        "balances": {"available": 8420.50, "current": 8420.50, "limit": None, "isoCurrencyCode": "USD"},
    },
    {
        "accountId": "mock_credit_001",
        "name": "Rewards Card",
        "officialName": "Unlimited Rewards Credit Card",
        "type": "credit",
        "subtype": "credit_card",
        "mask": "2222",
        "balances": {"available": 4750.25, "current": -1249.75, "limit": 6000.00, "isoCurrencyCode": "USD"},
    },
]

_TRANSACTIONS = [
    {
        "transactionId": "mock_txn_001",
        "accountId": "mock_checking_001",
        "amount": -4.50,
        "isoCurrencyCode": "USD",
        "daysAgo": 1,
        "name": "Starbucks",
        "merchantName": "Starbucks",
        "paymentChannel": "in_store",
        "category": ["Food and Drink", "Restaurants", "Coffee Shop"],
        "categoryId": "13005043",
    },
    {
        "transactionId": "mock_txn_002",
        "accountId": "mock_checking_001",
        "amount": -85.20,
        "isoCurrencyCode": "USD",
        "daysAgo": 2,
        "name": "Amazon.com",
        "merchantName": "Amazon",
        "paymentChannel": "online",
        "category": ["Shops", "Digital Purchase"],
        "categoryId": "19019000",
    },
    {
        "transactionId": "mock_txn_003",
        "accountId": "mock_checking_001",
        "amount": 2500.00,
        "isoCurrencyCode": "USD",
        "daysAgo": 3,
        "name": "ACME Corp Payroll",
        "merchantName": None,
        "paymentChannel": "other",
        "category": ["Deposit", "Payroll"],
        "categoryId": "21006000",
    },
]


def generate_spending_insights(transactions: list[dict]) -> dict:
    """Category and monthly breakdown of outgoing (negative) non-transfer amounts."""
    expenses = [
        t for t in transactions
        if (t.get("amount") or 0) < 0 and ((t.get("category") or ["Other"])[0] or "Other") != "Transfer"
    ]
    by_category: dict[str, dict] = defaultdict(lambda: {"amount": 0.0, "count": 0})
    by_month: dict[str, float] = defaultdict(float)
    total = 0.0
    for t in expenses:
        amount = abs(float(t["amount"]))
        category = (t.get("category") or ["Other"])[0] or "Other"
        by_category[category]["amount"] += amount
        by_category[category]["count"] += 1
        by_month[str(t.get("date", ""))[:7]] += amount
        total += amount

    top = sorted(by_category.items(), key=lambda kv: kv[1]["amount"], reverse=True)[:10]
    return {
        "totalSpending": round(total, 2),
        "averageTransaction": round(total / len(expenses), 2) if expenses else 0.0,
        "totalTransactions": len(transactions),
        "expenseTransactions": len(expenses),
        "topCategories": [
            {
                "category": category,
                "amount": round(data["amount"], 2),
                "count": data["count"],
                "percentage": round(data["amount"] / total * 100, 2) if total else 0.0,
            }
            for category, data in top
        ],
        "monthlyTrends": [{"month": m, "amount": round(a, 2)} for m, a in sorted(by_month.items())],
        "generatedAt": utc_now_iso(),
        "note": DEMO_NOTE,
    }


def _parse_date(value: str, field: str):
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationFailed(f"Invalid {field}", details="Expected YYYY-MM-DD")


class BankingAggregatorService:
    """Mock account-aggregation collaborator."""

    def __init__(
        self,
        client_id: str = "",
        secret: str = "",
        environment: str = "sandbox",
        latency_ms: tuple[int, int] = (50, 300),
    ):
        self.client_id = client_id
        self.environment = environment
        self._has_secret = bool(secret)
        self.latency_ms = latency_ms
        log.info("banking.mock_initialized", environment=environment, client_id_set=bool(client_id))

    async def _latency(self) -> None:
        lo, hi = self.latency_ms
        if hi > 0:
            await asyncio.sleep(random.uniform(lo, hi) / 1000)

    @staticmethod
    def _require(value: Optional[str], name: str) -> str:
        if not value:
            raise ValidationFailed(f"{name} is required")
        return value

    async def create_link_token(self, user_id: str, client_name: str = "FinScope") -> dict:
        self._require(user_id, "userId")
        await self._latency()
        now = datetime.now(timezone.utc)
        stamp = int(time.time() * 1000)
        return {
            "linkToken": f"link-sandbox-{user_id}-{stamp}",
            "expiration": (now + LINK_TOKEN_TTL).isoformat(),
            "requestId": f"req-{stamp}",
            "clientName": client_name,
        }

    async def exchange_public_token(self, public_token: str, user_id: str) -> dict:
        self._require(public_token, "publicToken")
        self._require(user_id, "userId")
        await self._latency()
        stamp = int(time.time() * 1000)
        return {
            "accessToken": f"access-sandbox-{user_id}-{stamp}",
            "itemId": f"item-{user_id}-{stamp}",
            "requestId": f"req-{stamp}",
        }

    async def get_accounts(self, access_token: str) -> dict:
        self._require(access_token, "accessToken")
        await self._latency()
        accounts = [dict(a, balances=dict(a["balances"])) for a in _ACCOUNTS]
        return {
            "accounts": accounts,
            "totalAccounts": len(accounts),
            "lastUpdated": utc_now_iso(),
            "note": DEMO_NOTE,
        }

    async def get_transactions(
        self,
        access_token: str,
        start_date: str,
        end_date: str,
        account_ids: Optional[list[str]] = None,
        count: int = 100,
        offset: int = 0,
    ) -> dict:
        self._require(access_token, "accessToken")
        start = _parse_date(self._require(start_date, "startDate"), "startDate")
        end = _parse_date(self._require(end_date, "endDate"), "endDate")
        if start > end:
            raise ValidationFailed("startDate must not be after endDate")
        await self._latency()

        today = datetime.now(timezone.utc).date()
        rows = []
        for tpl in _TRANSACTIONS:
            day = today - timedelta(days=tpl["daysAgo"])
            if not start <= day <= end:
                continue
            if account_ids and tpl["accountId"] not in account_ids:
                continue
            row = {k: v for k, v in tpl.items() if k != "daysAgo"}
            row["category"] = list(tpl["category"])
            row["date"] = day.isoformat()
            rows.append(row)

        page = rows[offset: offset + max(0, count)]
        return {
            "transactions": page,
            "totalTransactions": len(rows),
            "accounts": [
                {k: a[k] for k in ("accountId", "name", "type", "subtype")}
                for a in _ACCOUNTS
                if not account_ids or a["accountId"] in account_ids
            ],
            "requestId": f"req-{int(time.time() * 1000)}",
            "lastUpdated": utc_now_iso(),
            "note": DEMO_NOTE,
        }

    async def get_investment_holdings(self, access_token: str) -> dict:
        self._require(access_token, "accessToken")
        await self._latency()
        return {
            "holdings": [
                {
                    "accountId": "mock_investment_001",
                    "securityId": "mock_security_001",
                    "institutionPrice": 150.25,
                    "institutionValue": 15025.00,
                    "costBasis": 14500.00,
                    "quantity": 100,
                    "isoCurrencyCode": "USD",
                }
            ],
            "securities": [
                {
                    "securityId": "mock_security_001",
                    "name": "Apple Inc.",
                    "tickerSymbol": "AAPL",
                    "type": "equity",
                    "closePrice": 150.25,
                    "isoCurrencyCode": "USD",
                }
            ],
            "accounts": [
                {"accountId": "mock_investment_001", "name": "Investment Account", "type": "investment", "subtype": "brokerage"}
            ],
            "totalHoldings": 1,
            "lastUpdated": utc_now_iso(),
            "note": DEMO_NOTE,
        }

    async def get_identity(self, access_token: str) -> dict:
        self._require(access_token, "accessToken")
        await self._latency()
        return {
            "accounts": [
                {
                    "accountId": "mock_checking_001",
                    "owners": [
                        {
                            "names": ["John Doe"],
                            "emails": [{"data": "john.doe@example.com", "primary": True, "type": "primary"}],
                            "phoneNumbers": [{"data": "+1 555 123 4567", "primary": True, "type": "mobile"}],
                            "addresses": [
                                {
                                    "data": {
                                        "street": "123 Main St",
                                        "city": "Seattle",
                                        "region": "WA",
                                        "postalCode": "98101",
                                        "country": "US",
                                    },
                                    "primary": True,
                                }
                            ],
                        }
                    ],
                }
            ],
            "lastUpdated": utc_now_iso(),
            "note": DEMO_NOTE,
        }

    async def get_item(self, access_token: str) -> dict:
        self._require(access_token, "accessToken")
        await self._latency()
        return {
            "item": {
                "itemId": f"item-{access_token[-8:]}",
                "institutionId": "ins_mock_001",
                "webhook": None,
                "error": None,
                "availableProducts": ["balance", "identity", "investments"],
                "billedProducts": ["transactions", "accounts"],
                "consentExpirationTime": None,
                "updateType": "background",
            },
            "status": {"transactions": {"lastSuccessfulUpdate": utc_now_iso()}},
            "note": DEMO_NOTE,
        }

    async def spending_insights(
        self,
        access_token: str,
        start_date: str,
        end_date: str,
        account_ids: Optional[list[str]] = None,
    ) -> dict:
        result = await self.get_transactions(access_token, start_date, end_date, account_ids, count=500)
        return generate_spending_insights(result["transactions"])

    def info(self) -> dict:
        return {
            "products": PRODUCTS,
            "supportedCountries": SUPPORTED_COUNTRIES,
            "environment": self.environment,
            "mode": "mock",
            "note": DEMO_NOTE,
        }

    async def health_check(self) -> dict:
        await self._latency()
        return {
            "status": "healthy",
            "service": "Mock Banking Aggregator",
            "environment": self.environment,
            "credentialsConfigured": bool(self.client_id and self._has_secret),
            "timestamp": utc_now_iso(),
            "note": DEMO_NOTE,
        }
