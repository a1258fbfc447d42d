from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, Sequence, cast

import httpx

from .errors import DomainLookupError
from .logging import append_run_log
from .models import DomainResult, LookupOptions
from .rdap import RDAPBootstrap, RDAPClient
from .tld import normalize_domain
from .whois import WhoisClient


logger = logging.getLogger(__name__)


class DomainClient(Protocol):
    async def query(self, domain: str) -> DomainResult: ...


class Checker:
    """Looks a domain up over RDAP, falling back to WHOIS when RDAP fails.

    ``check`` always returns a result; a failure of either tier, expected or
    not, is confined to the domain being checked.
    """

    def __init__(self, rdap: DomainClient, whois: DomainClient) -> None:
        self.rdap = rdap
        self.whois = whois

    async def check(self, domain: str) -> DomainResult:
        domain = normalize_domain(domain)

        try:
            return await self.rdap.query(domain)
        except DomainLookupError as exc:
            logger.debug("RDAP lookup failed for %s, falling back to WHOIS: %s", domain, exc)
        except Exception as exc:
            logger.warning("unexpected RDAP error for %s, falling back to WHOIS: %r", domain, exc)

        try:
            return await self.whois.query(domain)
        except DomainLookupError as exc:
            logger.debug("WHOIS lookup failed for %s: %s", domain, exc)
            return DomainResult.failed(domain, str(exc))
        except Exception as exc:
            logger.warning("unexpected WHOIS error for %s: %r", domain, exc)
            return DomainResult.failed(domain, str(exc) or repr(exc))


def _build_http_client(timeout_seconds: float, concurrency: int) -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        timeout_seconds,
        connect=timeout_seconds,
        read=timeout_seconds,
        write=timeout_seconds,
        pool=timeout_seconds,
    )
    limits = httpx.Limits(max_connections=concurrency, max_keepalive_connections=concurrency)
    return httpx.AsyncClient(timeout=timeout, limits=limits, follow_redirects=True)


async def _check_one_domain(
    index: int,
    domain: str,
    checker: Checker,
    semaphore: asyncio.Semaphore,
    results: list[DomainResult | None],
) -> None:
    async with semaphore:
        result = await checker.check(domain)
    results[index] = result


async def _dispatch(domains: Sequence[str], concurrency: int, checker: Checker) -> list[DomainResult]:
    semaphore = asyncio.Semaphore(concurrency)
    results: list[DomainResult | None] = [None] * len(domains)
    tasks = [
        asyncio.create_task(_check_one_domain(idx, domain, checker, semaphore, results))
        for idx, domain in enumerate(domains)
    ]
    await asyncio.gather(*tasks)
    return cast("list[DomainResult]", results)


async def query_batch(
    domains: Sequence[str],
    concurrency: int,
    timeout: float,
    *,
    options: LookupOptions | None = None,
    checker: Checker | None = None,
) -> list[DomainResult]:
    """Check every domain, at most ``concurrency`` at a time.

    The returned list has one result per input domain, in input order.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if not domains:
        return []

    if checker is not None:
        return await _dispatch(domains, concurrency, checker)

    options = options or LookupOptions()
    async with _build_http_client(timeout, concurrency) as client:
        checker = Checker(
            rdap=RDAPClient(client, RDAPBootstrap(client, options.bootstrap_url)),
            whois=WhoisClient(timeout, port=options.whois_port),
        )
        return await _dispatch(domains, concurrency, checker)


async def check_domains(domains: Sequence[str], options: LookupOptions | None = None) -> list[DomainResult]:
    options = options or LookupOptions()
    results = await query_batch(
        domains,
        options.concurrency,
        options.timeout_seconds,
        options=options,
    )
    if options.run_log_dir:
        append_run_log(Path(options.run_log_dir), options, results)
    return results


def query_batch_sync(domains: Sequence[str], concurrency: int, timeout: float) -> list[DomainResult]:
    return asyncio.run(query_batch(domains, concurrency, timeout))
