"""OMIM morbid-map (genemap2) gene to disorder table."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

GENE_COLUMN = 5
DISORDER_COLUMN = 11


class MorbidMap:
    """Map of gene symbol to the disorders OMIM associates with it."""

    def __init__(self, disorders: Mapping[str, frozenset[str]]) -> None:
        self._disorders = {symbol: frozenset(values) for symbol, values in disorders.items()}

    def __len__(self) -> int:
        return len(self._disorders)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._disorders

    def get(self, symbol: str) -> frozenset[str]:
        return self._disorders.get(symbol, frozenset())

    def items(self) -> Iterator[tuple[str, frozenset[str]]]:
        for symbol in sorted(self._disorders):
            yield symbol, self._disorders[symbol]

    @classmethod
    def load(cls, path: str | Path) -> "MorbidMap":
        """Parse a pipe-delimited file; rows with fewer than 12 fields are skipped.

        Field 6 holds comma-separated gene symbols and field 12 the
        semicolon-separated disorders.
        """

        path = Path(path)
        lines = pd.Series(path.read_text(encoding="utf-8").splitlines(), dtype="object")
        lines = lines[~lines.str.startswith("#")]
        fields = lines.str.split("|", expand=True)
        if fields.shape[1] <= DISORDER_COLUMN:
            logger.warning("No morbid-map rows with %d fields in %s", DISORDER_COLUMN + 1, path)
            return cls({})

        fields = fields[fields[DISORDER_COLUMN].notna()]
        pairs = pd.DataFrame(
            {
                "symbol": fields[GENE_COLUMN].str.split(","),
                "disorder": fields[DISORDER_COLUMN].str.split(";"),
            }
        )
        pairs = pairs.explode("symbol", ignore_index=True).explode("disorder", ignore_index=True)
        pairs["symbol"] = pairs["symbol"].str.strip()
        pairs["disorder"] = pairs["disorder"].str.strip()
        pairs = pairs[(pairs["symbol"] != "") & (pairs["disorder"] != "")].dropna()

        disorders = {symbol: frozenset(group) for symbol, group in pairs.groupby("symbol")["disorder"]}
        logger.info("Loaded morbid map from %s: %d genes", path, len(disorders))
        return cls(disorders)
