"""
Tests for catalog fetching with retries and exponential backoff.
"""

import httpx
import pytest

from passdesk.infrastructure.catalog_client import CatalogClient, CatalogFetchError

URL = "http://catalog.test/api/events"


def make_client(responses, max_retries=3, base_delay=1.0):
    """Serve `responses` in order; record requested sleeps instead of sleeping."""
    delays = []
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        item = remaining.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def fake_sleep(seconds):
        delays.append(seconds)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = CatalogClient(http, URL, timeout=1.0, max_retries=max_retries, base_delay=base_delay, sleep=fake_sleep)
    return client, delays


@pytest.mark.asyncio
async def test_fetch_first_try():
    client, delays = make_client([httpx.Response(200, json={"data": []})])
    assert await client.fetch() == {"data": []}
    assert delays == []


@pytest.mark.asyncio
async def test_fetch_retries_with_backoff():
    client, delays = make_client([
        httpx.Response(500),
        httpx.Response(502),
        httpx.Response(200, json={"data": [{"id": 1}]}),
    ])
    assert await client.fetch() == {"data": [{"id": 1}]}
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_fetch_gives_up_after_max_retries():
    request = httpx.Request("GET", URL)
    client, delays = make_client([
        httpx.ConnectError("refused", request=request),
        httpx.ReadTimeout("slow", request=request),
        httpx.Response(503),
    ])
    with pytest.raises(CatalogFetchError, match="after 3 attempts"):
        await client.fetch()
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_undecodable_body_is_retried():
    client, delays = make_client([
        httpx.Response(200, content=b"<html>maintenance</html>"),
        httpx.Response(200, json={"data": []}),
    ], base_delay=0.5)
    assert await client.fetch() == {"data": []}
    assert delays == [0.5]
