from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from domainlookup.logging import append_run_log
from domainlookup.models import BatchSummary, DomainResult, LookupOptions


def test_unknown_requires_error_and_no_source() -> None:
    with pytest.raises(ValidationError):
        DomainResult(domain="example.com", status="unknown")
    with pytest.raises(ValidationError):
        DomainResult(domain="example.com", status="unknown", error="boom", source="whois")

    failed = DomainResult.failed("example.com", "boom")
    assert failed.status == "unknown"
    assert failed.source is None


def test_known_status_requires_source_and_no_error() -> None:
    with pytest.raises(ValidationError):
        DomainResult(domain="example.com", status="available")
    with pytest.raises(ValidationError):
        DomainResult(domain="example.com", status="registered", source="rdap", error="boom")


def test_result_is_immutable() -> None:
    result = DomainResult(domain="example.com", status="available", source="rdap")
    with pytest.raises(ValidationError):
        result.status = "registered"


def test_result_json_record() -> None:
    result = DomainResult(
        domain="example.com",
        status="registered",
        registrar="Example Inc.",
        expiry=datetime(2026, 8, 13, tzinfo=timezone.utc),
        source="rdap",
    )
    assert result.model_dump(mode="json", exclude_none=True) == {
        "domain": "example.com",
        "status": "registered",
        "registrar": "Example Inc.",
        "expiry": "2026-08-13T00:00:00Z",
        "source": "rdap",
    }


def test_options_validation() -> None:
    assert LookupOptions().concurrency == 5
    assert LookupOptions().timeout_seconds == 10.0
    with pytest.raises(ValidationError):
        LookupOptions(concurrency=0)
    with pytest.raises(ValidationError):
        LookupOptions(timeout_seconds=0)
    with pytest.raises(ValidationError):
        LookupOptions(retries=3)


def test_append_run_log_writes_summary_line(tmp_path: Path) -> None:
    results = [
        DomainResult(domain="a.com", status="registered", source="rdap"),
        DomainResult(domain="b.com", status="available", source="whois"),
        DomainResult.failed("c.zz", "no WHOIS server found for TLD: zz"),
    ]
    log_dir = tmp_path / "logs"

    append_run_log(log_dir, LookupOptions(concurrency=2), results)
    append_run_log(log_dir, LookupOptions(concurrency=2), results[:1])

    lines = (log_dir / "results.jsonl").read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["domains"] == 3
    assert first["counts"] == {"registered": 1, "available": 1, "unknown": 1}
    assert first["sources"] == {"rdap": 1, "whois": 1}
    assert first["options"]["concurrency"] == 2
    assert first["timestamp"].endswith("Z")
    assert BatchSummary.from_results(results).unknown == 1
