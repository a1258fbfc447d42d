from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

import jsonschema


SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    return json.loads((SCHEMAS_DIR / name).read_text())


def validate_payload(payload: object, schema_name: str) -> None:
    jsonschema.validate(payload, load_schema(schema_name))
