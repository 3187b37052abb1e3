# backend/gold_ledger/services/market_data/jd_gold.py
"""
Gold quote provider backed by the JD Finance H5 endpoints.

Both Minsheng accounts quote the same Minsheng accumulation-gold product;
the Zheshang account quotes the CZB-JCJ gold code on the jdjygold gateway.

    CMBC, CMBC_JD   resultData.data.minimumPriceValue
    CZB_JD          resultData.data.lastPrice

Prices arrive as strings or floats and are converted through str() to
Decimal so no binary float error reaches the ledger.
"""

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from gold_ledger.config import settings
from gold_ledger.services.exceptions import PriceFetchError
from gold_ledger.services.ledger.accounts import get_account
from gold_ledger.services.market_data.base import GoldQuote, GoldQuoteProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteEndpoint:
    url: str
    params: dict[str, str]
    price_field: str


_MINSHENG_ENDPOINT = QuoteEndpoint(
    url="https://ms.jr.jd.com/gw2/generic/CreatorSer/newh5/m/getFirstRelatedProductInfo",
    params={
        "reqData": json.dumps(
            {"circleId": "13245", "invokeSource": 5, "productId": "21001001000001"},
            separators=(",", ":"),
        ),
    },
    price_field="minimumPriceValue",
)

_ZHESHANG_ENDPOINT = QuoteEndpoint(
    url="https://api.jdjygold.com/gw2/generic/produTools/h5/m/getGoldPrice",
    params={"goldCode": "CZB-JCJ"},
    price_field="lastPrice",
)

ENDPOINTS: dict[str, QuoteEndpoint] = {
    "CMBC": _MINSHENG_ENDPOINT,
    "CMBC_JD": _MINSHENG_ENDPOINT,
    "CZB_JD": _ZHESHANG_ENDPOINT,
}

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


class JDGoldQuoteProvider(GoldQuoteProvider):
    """
    Fetches bank gold quotes over HTTP with httpx.

    Args:
        client: Optional pre-configured httpx.Client (tests pass one built on
                httpx.MockTransport). When omitted, a short-lived client is
                opened per request.
        timeout: Seconds per request; defaults to settings.price_fetch_timeout
    """

    def __init__(self, client: httpx.Client | None = None, timeout: float | None = None) -> None:
        self._client = client
        self.timeout = timeout if timeout is not None else settings.price_fetch_timeout

    @property
    def name(self) -> str:
        return "jd_gold"

    def get_quote(self, account: str) -> GoldQuote:
        get_account(account)
        endpoint = ENDPOINTS.get(account)
        if endpoint is None:
            raise PriceFetchError(account, self.name, "no quote endpoint configured")

        payload = self._fetch(account, endpoint)
        price = self._extract_price(account, payload, endpoint.price_field)

        logger.info(f"Fetched {account} quote from {self.name}: {price}")
        return GoldQuote(
            account=account,
            price=price,
            observed_at=datetime.now(timezone.utc),
            provider=self.name,
        )

    def _fetch(self, account: str, endpoint: QuoteEndpoint) -> dict[str, Any]:
        # nonceStr defeats the gateway's response cache
        headers = {**DEFAULT_HEADERS, "nonceStr": str(int(time.time() * 1000))}

        try:
            if self._client is not None:
                response = self._client.get(endpoint.url, params=endpoint.params, headers=headers)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(endpoint.url, params=endpoint.params, headers=headers)
        except httpx.HTTPError as e:
            raise PriceFetchError(account, self.name, f"request failed: {e}") from e

        if response.status_code != 200:
            raise PriceFetchError(account, self.name, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise PriceFetchError(account, self.name, "response is not valid JSON") from e

        if not isinstance(payload, dict):
            raise PriceFetchError(account, self.name, "unexpected response shape")
        return payload

    def _extract_price(self, account: str, payload: dict[str, Any], price_field: str) -> Decimal:
        result_data = payload.get("resultData")
        data = result_data.get("data") if isinstance(result_data, dict) else None
        raw = data.get(price_field) if isinstance(data, dict) else None
        if raw is None or isinstance(raw, bool):
            raise PriceFetchError(account, self.name, f"missing '{price_field}' in response")

        try:
            price = Decimal(str(raw))
        except InvalidOperation:
            raise PriceFetchError(account, self.name, f"invalid price value: {raw!r}") from None

        if not price.is_finite() or price <= 0:
            raise PriceFetchError(account, self.name, f"invalid price value: {raw!r}")
        return price
