from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone

from .errors import (
    UnclassifiedResponseError,
    WhoisConnectError,
    WhoisIOError,
    WhoisServerNotFoundError,
)
from .models import DomainResult
from .rdap import parse_rdap_date
from .tld import candidate_tlds


logger = logging.getLogger(__name__)

WHOIS_PORT = 43

WHOIS_SERVERS: dict[str, str] = {
    "ac": "whois.nic.ac",
    "ae": "whois.aeda.net.ae",
    "ai": "whois.nic.ai",
    "app": "whois.nic.google",
    "au": "whois.auda.org.au",
    "biz": "whois.biz",
    "ca": "whois.cira.ca",
    "cc": "ccwhois.verisign-grs.com",
    "cn": "whois.cnnic.cn",
    "co": "whois.nic.co",
    "com": "whois.verisign-grs.com",
    "de": "whois.denic.de",
    "dev": "whois.nic.google",
    "edu": "whois.educause.edu",
    "fr": "whois.nic.fr",
    "hk": "whois.hkirc.hk",
    "info": "whois.afilias.net",
    "io": "whois.nic.io",
    "jp": "whois.jprs.jp",
    "kr": "whois.kr",
    "me": "whois.nic.me",
    "mobi": "whois.dotmobiregistry.net",
    "net": "whois.verisign-grs.com",
    "org": "whois.pir.org",
    "ru": "whois.tcinet.ru",
    "sh": "whois.nic.sh",
    "so": "whois.nic.so",
    "tv": "tvwhois.verisign-grs.com",
    "uk": "whois.nic.uk",
    "us": "whois.nic.us",
    "xyz": "whois.nic.xyz",
}

# Order matters: some "not found" replies also contain field-like tokens,
# so these are checked before REGISTERED_MARKERS.
NOT_REGISTERED_MARKERS: tuple[str, ...] = (
    "no match for",
    "not found",
    "no entries found",
    "no data found",
    "object does not exist",
    "no objects found",
    "domain not found",
    "status: free",
    "available for registration",
    "this domain name has not been registered",
)

REGISTERED_MARKERS: tuple[str, ...] = (
    "domain name:",
    "registrar:",
    "creation date:",
    "registered on:",
    "domain status:",
    "registrant:",
    "registry domain id:",
    "nserver:",
)

EXPIRY_FIELDS: tuple[str, ...] = (
    "Registry Expiry Date",
    "Expiry Date",
    "Expiration Date",
    "paid-till",
)

WHOIS_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d",
    "%d-%b-%Y",
    "%Y.%m.%d",
    "%d/%m/%Y",
)

UNCLASSIFIED = "unclassified whois response"


def whois_server_for(domain: str, servers: dict[str, str] | None = None) -> str:
    table = WHOIS_SERVERS if servers is None else servers
    keys = candidate_tlds(domain)
    for key in keys:
        server = table.get(key)
        if server:
            return server
    raise WhoisServerNotFoundError(f"no WHOIS server found for TLD: {keys[-1]}")


def whois_field(body: str, field: str) -> str | None:
    prefix = field.lower() + ":"
    for line in body.splitlines():
        trimmed = line.strip()
        if trimmed.lower().startswith(prefix):
            value = trimmed.split(":", 1)[1].strip()
            return value or None
    return None


def parse_whois_date(value: str | None) -> datetime | None:
    if not value:
        return None
    value = value.strip()
    parsed = parse_rdap_date(value)
    if parsed is not None:
        return parsed
    for fmt in WHOIS_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def classify_whois(body: str) -> str:
    lower = body.lower()
    if any(marker in lower for marker in NOT_REGISTERED_MARKERS):
        return "available"
    if any(marker in lower for marker in REGISTERED_MARKERS):
        return "registered"
    return "unknown"


def parse_whois(domain: str, body: str) -> DomainResult:
    status = classify_whois(body)
    if status == "available":
        return DomainResult(domain=domain, status="available", source="whois")
    if status == "unknown":
        return DomainResult.failed(domain, UNCLASSIFIED)

    expiry = None
    for field in EXPIRY_FIELDS:
        expiry = parse_whois_date(whois_field(body, field))
        if expiry is not None:
            break
    return DomainResult(
        domain=domain,
        status="registered",
        registrar=whois_field(body, "Registrar"),
        expiry=expiry,
        source="whois",
    )


class WhoisClient:
    def __init__(
        self,
        timeout: float,
        port: int = WHOIS_PORT,
        servers: dict[str, str] | None = None,
    ) -> None:
        self._timeout = timeout
        self._port = port
        self._servers = servers

    async def _exchange(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, domain: str) -> bytes:
        writer.write(f"{domain}\r\n".encode("utf-8"))
        await writer.drain()
        return await reader.read()

    async def fetch(self, server: str, domain: str) -> str:
        """Send ``domain`` to ``server`` and return the full reply.

        The connect and the write-then-read-to-EOF exchange are each bounded
        by ``timeout`` separately, so one call may take up to twice ``timeout``.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(server, self._port), timeout=self._timeout
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise WhoisConnectError(f"failed to connect to WHOIS server {server}: {exc!r}") from exc

        try:
            raw = await asyncio.wait_for(self._exchange(reader, writer, domain), timeout=self._timeout)
        except (OSError, asyncio.TimeoutError) as exc:
            raise WhoisIOError(f"failed to read WHOIS response from {server}: {exc!r}") from exc
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
        return raw.decode("utf-8", errors="replace")

    async def query(self, domain: str) -> DomainResult:
        server = whois_server_for(domain, self._servers)
        logger.debug("querying WHOIS server %s for %s", server, domain)
        body = await self.fetch(server, domain)
        result = parse_whois(domain, body)
        if result.status == "unknown":
            raise UnclassifiedResponseError(f"unable to parse WHOIS response: {domain}")
        return result
