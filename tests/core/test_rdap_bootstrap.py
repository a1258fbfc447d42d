from __future__ import annotations

import asyncio

import httpx
import pytest

from domainlookup.errors import (
    BootstrapFetchError,
    BootstrapParseError,
    EndpointNotFoundError,
    InvalidDomainError,
)
from domainlookup.rdap import RDAPBootstrap


BOOTSTRAP_URL = "https://bootstrap.test/rdap/dns.json"

BOOTSTRAP_DOC = {
    "version": "1.0",
    "services": [
        [["com", "NET"], ["https://rdap.verisign.test/com/v1/", "https://rdap.backup.test/"]],
        [["uk"], ["https://rdap.nominet.test/uk/"]],
        [["co.uk"], ["https://rdap.nominet.test/co.uk/"]],
        [[], ["https://rdap.orphan.test/"]],
    ],
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_endpoints_prefer_compound_tld_then_single_label() -> None:
    async with _client(lambda request: httpx.Response(200, json=BOOTSTRAP_DOC)) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)

        assert await bootstrap.endpoints_for("example.co.uk") == ["https://rdap.nominet.test/co.uk/"]
        assert await bootstrap.endpoints_for("example.org.uk") == ["https://rdap.nominet.test/uk/"]
        assert await bootstrap.endpoints_for("example.net") == [
            "https://rdap.verisign.test/com/v1/",
            "https://rdap.backup.test/",
        ]
        assert await bootstrap.endpoints_for("a.b.example.com") == [
            "https://rdap.verisign.test/com/v1/",
            "https://rdap.backup.test/",
        ]


@pytest.mark.asyncio
async def test_unknown_tld_raises_not_found() -> None:
    async with _client(lambda request: httpx.Response(200, json=BOOTSTRAP_DOC)) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)
        with pytest.raises(EndpointNotFoundError, match="zz"):
            await bootstrap.endpoints_for("example.zz")


@pytest.mark.asyncio
async def test_single_label_domain_is_rejected_before_fetch() -> None:
    def _should_not_run(_request):
        raise AssertionError("bootstrap should not be fetched for invalid input")

    async with _client(_should_not_run) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)
        with pytest.raises(InvalidDomainError):
            await bootstrap.endpoints_for("localhost")
        assert not bootstrap.loaded


@pytest.mark.asyncio
async def test_concurrent_first_callers_fetch_once() -> None:
    calls: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        await asyncio.sleep(0.01)
        return httpx.Response(200, json=BOOTSTRAP_DOC)

    async with _client(handler) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)
        results = await asyncio.gather(*(bootstrap.endpoints_for(f"site{i}.com") for i in range(25)))

    assert calls == [BOOTSTRAP_URL]
    assert bootstrap.fetch_count == 1
    assert all(r[0] == "https://rdap.verisign.test/com/v1/" for r in results)


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached() -> None:
    responses = [httpx.Response(503), httpx.Response(200, json=BOOTSTRAP_DOC)]

    async with _client(lambda request: responses.pop(0)) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)

        with pytest.raises(BootstrapFetchError):
            await bootstrap.endpoints_for("example.com")
        assert not bootstrap.loaded

        assert await bootstrap.endpoints_for("example.com")
        assert bootstrap.loaded
        assert bootstrap.fetch_count == 2


@pytest.mark.asyncio
async def test_transport_error_becomes_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with _client(handler) as client:
        with pytest.raises(BootstrapFetchError, match="unreachable"):
            await RDAPBootstrap(client, BOOTSTRAP_URL).endpoints_for("example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"services": "nope"}),
        httpx.Response(200, json={"services": [[["com"], [1, 2]]]}),
        httpx.Response(200, json={"version": "1.0"}),
    ],
)
async def test_malformed_document_raises_parse_error(response: httpx.Response) -> None:
    async with _client(lambda request: response) as client:
        bootstrap = RDAPBootstrap(client, BOOTSTRAP_URL)
        with pytest.raises(BootstrapParseError):
            await bootstrap.endpoints_for("example.com")
        assert not bootstrap.loaded


@pytest.mark.asyncio
async def test_from_mapping_is_preloaded_and_returns_copies() -> None:
    bootstrap = RDAPBootstrap.from_mapping({"COM": ["https://rdap.example/"]})
    assert bootstrap.loaded

    endpoints = await bootstrap.endpoints_for("example.com")
    endpoints.append("https://mutated.example/")

    assert await bootstrap.endpoints_for("example.com") == ["https://rdap.example/"]
    assert bootstrap.fetch_count == 0
