"""Decode pipe-delimited VEP annotation strings into ``AnnotationRecord``s."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from variantgraph.annotation.layouts import FIELD_DELIMITER, AnnotationLayout, get_layout
from variantgraph.config import AnnotationLayoutVersion
from variantgraph.models import AnnotationRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotationParseResult:
    """Best-effort parse outcome; never represents a failure."""

    record: AnnotationRecord
    parsed_fields: int
    expected_fields: int

    @property
    def truncated(self) -> bool:
        return self.parsed_fields < self.expected_fields


class AnnotationParser:
    """Parse annotation strings for a single layout, chosen once per run."""

    def __init__(self, layout: AnnotationLayout | AnnotationLayoutVersion | str) -> None:
        if not isinstance(layout, AnnotationLayout):
            layout = get_layout(layout)
        self.layout = layout

    def parse(self, text: str) -> AnnotationParseResult:
        values = text.split(FIELD_DELIMITER)
        rules = self.layout.rules
        decoded: dict[str, object] = {}

        for rule, raw in zip(rules, values):
            if rule is None:
                continue
            raw = raw.strip()
            if not raw:
                continue
            value = rule.decoder(raw)
            if value is not None:
                decoded[rule.attribute] = value

        if self.layout.hgnc_symbols_only and decoded.get("symbol_source") != "HGNC":
            decoded.pop("symbol", None)

        parsed = min(len(values), len(rules))
        if parsed < len(rules):
            logger.debug(
                "Annotation truncated at field %d of %d (%s layout): %s",
                parsed,
                len(rules),
                self.layout.name,
                text,
            )

        return AnnotationParseResult(
            record=AnnotationRecord(**decoded),
            parsed_fields=parsed,
            expected_fields=len(rules),
        )

    def parse_record(self, text: str) -> AnnotationRecord:
        return self.parse(text).record

    def parse_unique(self, texts: Iterable[str]) -> set[AnnotationRecord]:
        """Parse every block at a site, collapsing identical records."""

        return {self.parse_record(text) for text in texts if text}
