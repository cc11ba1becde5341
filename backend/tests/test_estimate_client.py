"""Tests for the upstream estimate client."""

import json

import httpx
import pytest
from fund_tracker.services.estimate_client import (
    MALFORMED_RESPONSE_MESSAGE,
    REQUEST_FAILED_MESSAGE,
    EstimateClient,
    EstimateFetchError,
)

BASE_URL = "http://upstream.test/api"

ESTIMATE_018125 = {
    "fundCode": "018125",
    "fundName": "永赢先进制造智选混合",
    "estimatedChange": -1.35,
    "totalPositionRatio": 78.4,
    "positionDate": "2025-12-31",
    "contributions": [
        {
            "stockCode": "300308",
            "stockName": "中际旭创",
            "ratio": 9.8,
            "changePercent": -3.2,
            "contribution": -0.3136,
        }
    ],
}


def make_client(handler) -> EstimateClient:
    return EstimateClient(base_url=BASE_URL, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_sends_one_batch_request():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"code": 200, "message": "ok", "data": [ESTIMATE_018125]})

    client = make_client(handler)
    results = await client.fetch_estimates(["018125", "022364"])
    await client.aclose()

    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/fund/realtime-estimate/batch"
    assert json.loads(requests[0].content) == [{"code": "018125"}, {"code": "022364"}]

    assert len(results) == 1
    assert results[0].fund_code == "018125"
    assert results[0].estimated_change == -1.35
    assert results[0].contributions[0].change_percent == -3.2


@pytest.mark.asyncio
async def test_fetch_empty_codes_skips_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = make_client(handler)
    assert await client.fetch_estimates([]) == []
    await client.aclose()


@pytest.mark.asyncio
async def test_null_data_means_no_results():
    client = make_client(lambda request: httpx.Response(200, json={"code": 200, "data": None}))
    assert await client.fetch_estimates(["022364"]) == []
    await client.aclose()


@pytest.mark.asyncio
async def test_business_error_code():
    client = make_client(
        lambda request: httpx.Response(200, json={"code": 500, "message": "行情服务繁忙"})
    )
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == "行情服务繁忙"


@pytest.mark.asyncio
async def test_business_error_without_message():
    client = make_client(lambda request: httpx.Response(200, json={"code": 400}))
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == REQUEST_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_http_error_uses_envelope_message():
    client = make_client(
        lambda request: httpx.Response(503, json={"code": 503, "message": "upstream unavailable"})
    )
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == "upstream unavailable"


@pytest.mark.asyncio
async def test_http_error_without_envelope():
    client = make_client(lambda request: httpx.Response(502, text="Bad Gateway"))
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert "502" in exc_info.value.message


@pytest.mark.asyncio
async def test_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == "connection refused"


@pytest.mark.asyncio
async def test_malformed_body():
    client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == MALFORMED_RESPONSE_MESSAGE


@pytest.mark.asyncio
async def test_result_missing_fields():
    client = make_client(
        lambda request: httpx.Response(200, json={"code": 200, "data": [{"fundCode": "018125"}]})
    )
    with pytest.raises(EstimateFetchError) as exc_info:
        await client.fetch_estimates(["018125"])
    await client.aclose()
    assert exc_info.value.message == MALFORMED_RESPONSE_MESSAGE
