from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from urllib.parse import quote

import httpx
import jsonschema

from .errors import (
    AllEndpointsFailedError,
    BootstrapFetchError,
    BootstrapParseError,
    EndpointNotFoundError,
)
from .models import IANA_DNS_BOOTSTRAP_URL, DomainResult
from .schema_utils import validate_payload
from .tld import candidate_tlds


logger = logging.getLogger(__name__)

RDAP_ACCEPT = "application/rdap+json"

RFC3339_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})")


def _parse_bootstrap_tld_to_rdap(data: dict) -> dict[str, list[str]]:
    mapping: dict[str, list[str]] = {}
    for entry in data.get("services", []):
        tlds, urls = entry[0], entry[1]
        if not tlds or not urls:
            continue
        for tld in tlds:
            mapping[tld.lower()] = list(urls)
    return mapping


class RDAPBootstrap:
    """TLD to RDAP endpoint map, fetched from the IANA bootstrap on first use.

    The document is downloaded at most once per instance. Concurrent first
    callers wait on the same lock and find the map populated; a failed fetch
    leaves the instance unloaded so a later lookup tries again.
    """

    def __init__(self, client: httpx.AsyncClient | None, url: str = IANA_DNS_BOOTSTRAP_URL) -> None:
        self._client = client
        self._url = url
        self._services: dict[str, list[str]] = {}
        self._loaded = False
        self._lock = asyncio.Lock()
        self.fetch_count = 0

    @classmethod
    def from_mapping(cls, mapping: dict[str, list[str]]) -> RDAPBootstrap:
        bootstrap = cls(client=None)
        bootstrap._services = {tld.lower(): list(urls) for tld, urls in mapping.items()}
        bootstrap._loaded = True
        return bootstrap

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._lock:
            if self._loaded:
                return
            self._services = await self._fetch()
            self._loaded = True
            logger.info("loaded RDAP bootstrap with %d TLDs", len(self._services))

    async def _fetch(self) -> dict[str, list[str]]:
        if self._client is None:
            raise BootstrapFetchError("no HTTP client configured for RDAP bootstrap")
        self.fetch_count += 1
        try:
            resp = await self._client.get(self._url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise BootstrapFetchError(f"failed to fetch RDAP bootstrap: {exc}") from exc

        try:
            data = resp.json()
            validate_payload(data, "rdap_bootstrap.schema.json")
        except (ValueError, jsonschema.ValidationError) as exc:
            raise BootstrapParseError(f"failed to parse RDAP bootstrap: {exc}") from exc
        return _parse_bootstrap_tld_to_rdap(data)

    async def endpoints_for(self, domain: str) -> list[str]:
        keys = candidate_tlds(domain)
        await self._ensure_loaded()
        for key in keys:
            urls = self._services.get(key.lower())
            if urls:
                return list(urls)
        raise EndpointNotFoundError(f"no RDAP server found for TLD: {keys[-1]}")


def parse_rdap_date(value: object) -> datetime | None:
    if not isinstance(value, str) or not RFC3339_RE.fullmatch(value):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def extract_vcard_fn(vcard: object) -> str | None:
    """Return the ``fn`` value of a jCard, e.g. ``["vcard", [["fn", {}, "text", "Name"]]]``."""
    if not isinstance(vcard, list) or len(vcard) < 2:
        return None
    props = vcard[1]
    if not isinstance(props, list):
        return None
    for prop in props:
        if not isinstance(prop, list) or len(prop) < 4:
            continue
        if prop[0] != "fn":
            continue
        if isinstance(prop[3], str):
            return prop[3]
    return None


def _find_expiry(events: object) -> datetime | None:
    if not isinstance(events, list):
        return None
    for event in events:
        if isinstance(event, dict) and event.get("eventAction") == "expiration":
            expiry = parse_rdap_date(event.get("eventDate"))
            if expiry is not None:
                return expiry
    return None


def _find_registrar(entities: object) -> str | None:
    if not isinstance(entities, list):
        return None
    for entity in entities:
        if not isinstance(entity, dict):
            continue
        roles = entity.get("roles")
        if isinstance(roles, list) and "registrar" in roles:
            return extract_vcard_fn(entity.get("vcardArray"))
    return None


def parse_rdap_domain(domain: str, data: dict) -> DomainResult:
    return DomainResult(
        domain=domain,
        status="registered",
        registrar=_find_registrar(data.get("entities")),
        expiry=_find_expiry(data.get("events")),
        source="rdap",
    )


class RDAPClient:
    def __init__(self, client: httpx.AsyncClient, bootstrap: RDAPBootstrap) -> None:
        self._client = client
        self._bootstrap = bootstrap

    async def _query_endpoint(self, rdap_base: str, domain: str) -> DomainResult:
        url = f"{rdap_base.rstrip('/')}/domain/{quote(domain, safe='')}"
        response = await self._client.get(url, headers={"Accept": RDAP_ACCEPT})
        if response.status_code == 404:
            return DomainResult(domain=domain, status="available", source="rdap")
        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"RDAP status {response.status_code}", request=response.request, response=response
            )
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("RDAP response is not a JSON object")
        return parse_rdap_domain(domain, data)

    async def query(self, domain: str) -> DomainResult:
        endpoints = await self._bootstrap.endpoints_for(domain)
        for rdap_base in endpoints:
            try:
                return await self._query_endpoint(rdap_base, domain)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.debug("RDAP endpoint %s failed for %s: %s", rdap_base, domain, exc)
            except ValueError as exc:
                logger.debug("RDAP endpoint %s returned unparsable body for %s: %s", rdap_base, domain, exc)
        raise AllEndpointsFailedError(f"all RDAP servers failed: {domain}")
