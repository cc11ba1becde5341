"""Client for the upstream realtime-estimate API."""

import logging

import httpx
from pydantic import ValidationError

from fund_tracker.config import ESTIMATE_API_BASE_URL, ESTIMATE_API_TIMEOUT
from fund_tracker.models.estimate import EstimateEnvelope, EstimateResult

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "network error, please try again later"
REQUEST_FAILED_MESSAGE = "request failed"
MALFORMED_RESPONSE_MESSAGE = "malformed estimate response"


class EstimateFetchError(Exception):
    """The whole estimate request failed; carries a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _envelope_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        return str(payload.get("message") or "")
    return ""


class EstimateClient:
    """Fetches holdings-weighted estimates for a batch of fund codes in one round trip."""

    def __init__(
        self,
        base_url: str = ESTIMATE_API_BASE_URL,
        timeout: float = ESTIMATE_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def fetch_estimates(self, codes: list[str]) -> list[EstimateResult]:
        """Return one result per fund the upstream knows; unknown codes are simply absent.

        Raises EstimateFetchError when the request itself fails.
        """
        if not codes:
            return []

        try:
            response = await self._client.post(
                "/fund/realtime-estimate/batch",
                json=[{"code": code} for code in codes],
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _envelope_message(e.response) or str(e) or NETWORK_ERROR_MESSAGE
            logger.error(f"Estimate request failed with HTTP {e.response.status_code}: {message}")
            raise EstimateFetchError(message) from e
        except httpx.HTTPError as e:
            message = str(e) or NETWORK_ERROR_MESSAGE
            logger.error(f"Estimate request failed: {message}")
            raise EstimateFetchError(message) from e

        try:
            envelope = EstimateEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Unparseable estimate response: {e}")
            raise EstimateFetchError(MALFORMED_RESPONSE_MESSAGE) from e

        if envelope.code != 200:
            raise EstimateFetchError(envelope.message or REQUEST_FAILED_MESSAGE)

        return envelope.data or []

    async def aclose(self) -> None:
        await self._client.aclose()
