"""Base interface for variant-call sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from variantgraph.models import VariantRecord


class VariantSource(ABC):
    """Source that yields decoded variant records.

    ``read`` may be called once per builder stage, so implementations must
    restart from the first record on every call.
    """

    name: str

    @property
    @abstractmethod
    def samples(self) -> list[str]:
        """Sample names declared by the input."""

    @abstractmethod
    def read(self) -> Iterable[VariantRecord]:
        """Yield variant records in input order."""

    def annotation_format(self) -> str | None:
        """Header description of the annotation attribute, when declared."""

        return None


class StaticVariantSource(VariantSource):
    """Serve records already held in memory."""

    def __init__(
        self,
        records: Sequence[VariantRecord],
        *,
        samples: Sequence[str] | None = None,
        name: str = "static",
        annotation_format: str | None = None,
    ) -> None:
        self.name = name
        self.records = list(records)
        if samples is None:
            samples = list(dict.fromkeys(call.sample for record in self.records for call in record.genotypes))
        self._samples = list(samples)
        self._annotation_format = annotation_format

    @property
    def samples(self) -> list[str]:
        return list(self._samples)

    def read(self) -> Iterable[VariantRecord]:
        return iter(self.records)

    def annotation_format(self) -> str | None:
        return self._annotation_format
