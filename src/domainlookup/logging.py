from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from . import __version__
from .models import BatchSummary, DomainResult, LookupOptions


def append_run_log(log_dir: Path, options: LookupOptions, results: list[DomainResult]) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "results.jsonl"

    summary = {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "tool_version": __version__,
        "options": options.model_dump(),
        "domains": len(results),
        "counts": BatchSummary.from_results(results).model_dump(),
        "sources": {
            "rdap": sum(1 for r in results if r.source == "rdap"),
            "whois": sum(1 for r in results if r.source == "whois"),
        },
    }
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(summary) + "\n")
