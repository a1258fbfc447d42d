from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


Status = Literal["registered", "available", "unknown"]
Source = Literal["rdap", "whois"]

IANA_DNS_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"


class LookupOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    concurrency: int = Field(default=5, ge=1, le=200)
    timeout_seconds: float = Field(default=10.0, gt=0, le=300)
    bootstrap_url: str = IANA_DNS_BOOTSTRAP_URL
    whois_port: int = Field(default=43, ge=1, le=65535)
    run_log_dir: str | None = None


class DomainResult(BaseModel):
    """Outcome of one domain check.

    ``error`` is populated exactly when ``status`` is ``"unknown"``, and
    ``source`` is populated exactly when it is not.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    domain: str
    status: Status
    registrar: str | None = None
    expiry: datetime | None = None
    source: Source | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_status_fields(self) -> DomainResult:
        unknown = self.status == "unknown"
        if unknown != (self.error is not None):
            raise ValueError("error must be set if and only if status is 'unknown'")
        if unknown != (self.source is None):
            raise ValueError("source must be unset if and only if status is 'unknown'")
        return self

    @classmethod
    def failed(cls, domain: str, error: str) -> DomainResult:
        return cls(domain=domain, status="unknown", error=error)


class BatchSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    registered: int = 0
    available: int = 0
    unknown: int = 0

    @classmethod
    def from_results(cls, results: list[DomainResult]) -> BatchSummary:
        return cls(
            registered=sum(1 for r in results if r.status == "registered"),
            available=sum(1 for r in results if r.status == "available"),
            unknown=sum(1 for r in results if r.status == "unknown"),
        )
