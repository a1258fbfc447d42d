from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["Checker", "DomainResult", "LookupOptions", "check_domains", "query_batch", "query_batch_sync"]


def __getattr__(name: str):
    if name in {"Checker", "check_domains", "query_batch", "query_batch_sync"}:
        from .checker import Checker, check_domains, query_batch, query_batch_sync

        return {
            "Checker": Checker,
            "check_domains": check_domains,
            "query_batch": query_batch,
            "query_batch_sync": query_batch_sync,
        }[name]
    if name in {"DomainResult", "LookupOptions"}:
        from .models import DomainResult, LookupOptions

        return {"DomainResult": DomainResult, "LookupOptions": LookupOptions}[name]
    raise AttributeError(name)
