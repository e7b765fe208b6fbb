"""VCF source backed by PyVCF3."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import vcf

from variantgraph.adapters.base import VariantSource
from variantgraph.errors import UnexpectedGenotypeError
from variantgraph.models import GenotypeCall, VariantRecord

logger = logging.getLogger(__name__)

_GT_SEPARATOR = re.compile(r"[/|]")


def parse_gt(gt: str | None) -> tuple[tuple[int | None, ...], bool]:
    """Split a ``GT`` string into allele indexes and the phased flag."""

    if not gt:
        return (), False
    indexes = tuple(None if part in ("", ".") else int(part) for part in _GT_SEPARATOR.split(gt))
    return indexes, "|" in gt


class VcfVariantSource(VariantSource):
    """Read an annotated VCF (plain or bgzipped) into ``VariantRecord``s."""

    def __init__(self, path: str | Path, *, annotation_field: str = "CSQ") -> None:
        self.path = Path(path)
        self.name = self.path.name
        self.annotation_field = annotation_field
        self._header: tuple[list[str], str | None] | None = None

    @contextmanager
    def _reader(self) -> Iterator[Any]:
        compressed = self.path.name.endswith(".gz")
        read_mode = "rb" if compressed else "r"
        with open(self.path, mode=read_mode) as handle:
            yield vcf.Reader(handle, compressed=compressed)

    def _load_header(self) -> tuple[list[str], str | None]:
        if self._header is None:
            with self._reader() as reader:
                info = reader.infos.get(self.annotation_field)
                self._header = (list(reader.samples), info.desc if info is not None else None)
        return self._header

    @property
    def samples(self) -> list[str]:
        return list(self._load_header()[0])

    def annotation_format(self) -> str | None:
        return self._load_header()[1]

    def read(self) -> Iterable[VariantRecord]:
        with self._reader() as reader:
            for record in reader:
                yield self._convert(record)

    def _convert(self, record: Any) -> VariantRecord:
        reference = str(record.REF)
        alternates = tuple("." if alt is None else str(alt) for alt in (record.ALT or []))
        alleles = (reference, *alternates)
        location = f"{record.CHROM}:{record.POS}"

        calls = []
        for sample_call in record.samples:
            indexes, phased = parse_gt(getattr(sample_call.data, "GT", None))
            try:
                bases = tuple(None if index is None else alleles[index] for index in indexes)
            except IndexError as exc:
                raise UnexpectedGenotypeError(
                    f"Genotype {sample_call.data.GT} for sample {sample_call.sample} at {location} "
                    f"references a missing allele"
                ) from exc
            quality = getattr(sample_call.data, "GQ", None)
            calls.append(
                GenotypeCall(
                    sample=sample_call.sample,
                    allele_indexes=indexes,
                    alleles=bases,
                    quality=int(quality) if quality is not None else None,
                    phased=phased,
                )
            )

        raw = record.INFO.get(self.annotation_field)
        if raw is None:
            annotations: tuple[str, ...] = ()
        elif isinstance(raw, (list, tuple)):
            annotations = tuple(str(item) for item in raw if item)
        else:
            annotations = (str(raw),)

        end = record.INFO.get("END")
        return VariantRecord(
            contig=str(record.CHROM),
            start=int(record.POS),
            reference=reference,
            alternates=alternates,
            end=int(end) if isinstance(end, int) else None,
            filters=tuple(record.FILTER or ()),
            genotypes=tuple(calls),
            annotations=annotations,
        )
