"""Configuration contracts for VariantGraph imports."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from jsonschema import FormatChecker
from jsonschema.validators import validator_for

from variantgraph.errors import ConfigError


class AnnotationLayoutVersion(str, Enum):
    """Known VEP annotation field layouts."""

    LEGACY = "legacy"
    V75 = "v75"
    V79 = "v79"


@dataclass(frozen=True)
class StoreConfig:
    """Graph storage backend name plus constructor parameters."""

    type: str = "duckdb"
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportConfig:
    """Runtime options for one import run.

    ``layout`` of ``None`` means the layout is detected from the VCF header
    (falling back to the field count of the first annotation).
    """

    annotation_field: str = "CSQ"
    layout: AnnotationLayoutVersion | None = None
    batch_id: str | None = None
    include_filtered: bool = False
    index_wait_seconds: float = 10.0
    store: StoreConfig = field(default_factory=StoreConfig)
    morbid_map_path: str | None = None

    def with_overrides(self, **overrides: Any) -> "ImportConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if isinstance(changes.get("layout"), str):
            changes["layout"] = AnnotationLayoutVersion(changes["layout"])
        return replace(self, **changes)


CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "VariantGraph import configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "annotation_field": {"type": "string", "minLength": 1},
        "layout": {"enum": [item.value for item in AnnotationLayoutVersion]},
        "batch_id": {"type": "string", "minLength": 1},
        "include_filtered": {"type": "boolean"},
        "index_wait_seconds": {"type": "number", "minimum": 0},
        "morbid_map_path": {"type": "string", "minLength": 1},
        "store": {
            "type": "object",
            "additionalProperties": False,
            "required": ["type"],
            "properties": {
                "type": {"type": "string", "minLength": 1},
                "params": {"type": "object"},
            },
        },
    },
}


class ImportConfigLoader:
    """Load and validate import configuration JSON."""

    def __init__(self, schema: Mapping[str, Any] | None = None) -> None:
        self.schema = dict(schema or CONFIG_SCHEMA)
        validator_cls = validator_for(self.schema)
        validator_cls.check_schema(self.schema)
        self._validator = validator_cls(self.schema, format_checker=FormatChecker())

    def load(self, path: str | Path) -> ImportConfig:
        """Load an import configuration from a JSON file."""

        path = Path(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{path}: invalid JSON at line {exc.lineno}: {exc.msg}") from exc
        return self.parse(payload, origin=str(path))

    def parse(self, payload: Any, origin: str = "<config>") -> ImportConfig:
        """Validate a decoded payload and convert it into an ``ImportConfig``."""

        errors = sorted(self._validator.iter_errors(payload), key=lambda err: list(err.path))
        if errors:
            details = "; ".join(
                f"/{'/'.join(str(part) for part in err.path)}: {err.message}" for err in errors
            )
            raise ConfigError(f"{origin}: {details}")

        store_raw = payload.get("store", {})
        store = StoreConfig(
            type=str(store_raw.get("type", "duckdb")).strip().lower(),
            params=dict(store_raw.get("params", {})),
        )
        layout = payload.get("layout")

        return ImportConfig(
            annotation_field=payload.get("annotation_field", "CSQ"),
            layout=AnnotationLayoutVersion(layout) if layout else None,
            batch_id=payload.get("batch_id"),
            include_filtered=bool(payload.get("include_filtered", False)),
            index_wait_seconds=float(payload.get("index_wait_seconds", 10.0)),
            store=store,
            morbid_map_path=payload.get("morbid_map_path"),
        )
