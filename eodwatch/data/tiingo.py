from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import httpx
import logging

from eodwatch.data.base import BarSource
from eodwatch.models.bar import Bar
from eodwatch.utils.error_handling import UpstreamError, format_api_error_message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class TiingoAdapter(BarSource):
    BASE_URL = "https://api.tiingo.com"
    INTRADAY_RESAMPLE_FREQ = "4hour"

    def __init__(
        self,
        api_token: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize TiingoAdapter.

        Args:
            api_token: Tiingo API token
            timeout: Per-request timeout in seconds
            client: Optional preconfigured AsyncClient (tests pass one backed
                    by httpx.MockTransport)
        """
        if not api_token or not api_token.strip():
            error_msg = (
                "❌ Missing Tiingo API token. "
                "Set TIINGO_TOKEN in the environment or tiingo.api_token in config/secrets.yaml."
            )
            logger.error(error_msg)
            raise ValueError(error_msg)

        self._token = api_token.strip()
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

        token_preview = f"{self._token[:4]}...{self._token[-2:]}" if len(self._token) > 8 else "***"
        logger.debug(f"TiingoAdapter initialized with token: {token_preview} (length: {len(self._token)})")

    async def fetch_daily(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        """End-of-day bars from Tiingo's daily prices endpoint."""
        url = f"{self.BASE_URL}/tiingo/daily/{quote(symbol, safe='')}/prices"
        params: Dict[str, str] = {}
        if since is not None:
            params["startDate"] = since.isoformat()
        logger.info(
            f"[Tiingo] Fetching {symbol} daily "
            f"{'from ' + since.isoformat() if since else 'full history'}"
        )
        return await self._get_bars(symbol, "daily", url, params)

    async def fetch_intraday(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        """
        4-hour bars from Tiingo's IEX endpoint.

        The provider does the resampling (``resampleFreq=4hour``); nothing is
        aggregated locally.
        """
        url = f"{self.BASE_URL}/iex/{quote(symbol, safe='')}/prices"
        params = {
            "resampleFreq": self.INTRADAY_RESAMPLE_FREQ,
            "format": "json",
        }
        if since is not None:
            params["startDate"] = since.isoformat()
        logger.info(
            f"[Tiingo] Fetching {symbol} 4H "
            f"{'from ' + since.isoformat() if since else 'recent'}"
        )
        return await self._get_bars(symbol, "intraday", url, params)

    async def _get_bars(
        self,
        symbol: str,
        kind: str,
        url: str,
        params: Dict[str, str],
    ) -> List[Bar]:
        query = {**params, "token": self._token}
        try:
            resp = await self._client.get(url, params=query, timeout=self._timeout)
        except httpx.TimeoutException as e:
            error_msg = format_api_error_message(
                "Tiingo", symbol=symbol, error=e,
                additional_info=f"{kind} request timed out after {self._timeout}s",
            )
            logger.error(error_msg)
            raise UpstreamError(error_msg) from e
        except httpx.HTTPError as e:
            error_msg = format_api_error_message(
                "Tiingo", symbol=symbol, error=e, additional_info=f"{kind} request failed",
            )
            logger.error(error_msg)
            raise UpstreamError(error_msg) from e

        if resp.status_code == 429:
            # Treated as "no new data"; the caller falls back to its cache.
            logger.warning(f"[Tiingo] Rate limited for {symbol} {kind} - will use existing cache")
            return []

        if resp.status_code >= 400:
            error_msg = (
                f"❌ HTTP error from Tiingo: {resp.status_code} {resp.reason_phrase}.\n"
                f"   Symbol: {symbol} ({kind})\n"
                f"   Response text (first 200 chars): {resp.text[:200]}"
            )
            logger.error(error_msg)
            raise UpstreamError(error_msg, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            error_msg = (
                f"❌ Invalid HTTP response: Failed to parse JSON response.\n"
                f"   Symbol: {symbol} ({kind})\n"
                f"   Status: {resp.status_code}\n"
                f"   Response text (first 200 chars): {resp.text[:200]}"
            )
            logger.error(error_msg)
            raise UpstreamError(error_msg, status_code=resp.status_code) from e

        if data is None:
            data = []
        if not isinstance(data, list):
            error_msg = (
                f"❌ Invalid HTTP response: Expected a list of rows, got {type(data).__name__}.\n"
                f"   Symbol: {symbol} ({kind})\n"
                f"   Response: {str(data)[:200]}"
            )
            logger.error(error_msg)
            raise UpstreamError(error_msg, status_code=resp.status_code)

        bars: List[Bar] = []
        for i, row in enumerate(data):
            try:
                bars.append(_normalize_row(row))
            except (KeyError, TypeError, ValueError) as e:
                error_msg = (
                    f"❌ Invalid row at index {i} in Tiingo response for {symbol} ({kind}): {e}\n"
                    f"   Row: {str(row)[:200]}"
                )
                logger.error(error_msg)
                raise UpstreamError(error_msg, status_code=resp.status_code) from e

        logger.info(f"[Tiingo] HTTP Response: {resp.status_code} OK | {symbol} {kind} | Bars: {len(bars)}")
        return bars

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _normalize_row(row: Dict[str, Any]) -> Bar:
    volume = row.get("volume")
    return Bar(
        time=str(row["date"]),
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=int(volume) if volume is not None else None,
    )
