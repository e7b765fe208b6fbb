"""Variant keys, allele matching and the per-run annotation index."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from variantgraph.annotation.parser import AnnotationParser
from variantgraph.errors import UnexpectedGenotypeError
from variantgraph.models import AnnotationRecord, GenotypeCall, VariantRecord, Zygosity

logger = logging.getLogger(__name__)

DELETION_PLACEHOLDER = "-"


@dataclass(frozen=True)
class VariantKey:
    """The two alleles a genotype call carries at one site."""

    contig: str
    start: int
    reference: str
    first: str
    second: str
    end: int | None = None

    @property
    def key(self) -> str:
        return f"{self.contig}:{self.start}{self.first}>{self.second}"

    def node_properties(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "Variant": self.key,
            "Contig": self.contig,
            "Start": self.start,
            "Reference": self.reference,
            "Alternative": self.second,
        }
        if self.end is not None:
            properties["End"] = self.end
        return properties


def normalize_variant_key(
    contig: str,
    start: int,
    reference: str,
    alleles: Sequence[str],
    end: int | None = None,
) -> VariantKey:
    """Build the canonical key for two called alleles.

    ``alleles`` must be in VCF allele-index order. A homozygous call keys as
    reference -> allele; a heterozygous call keys as first -> second allele.
    """

    if len(alleles) != 2:
        raise UnexpectedGenotypeError(
            f"Expected two called alleles at {contig}:{start}, got {len(alleles)}"
        )
    first, second = alleles
    if first == second:
        first = reference
    return VariantKey(contig=contig, start=start, reference=reference, first=first, second=second, end=end)


def key_for_call(record: VariantRecord, call: GenotypeCall) -> VariantKey:
    if call.ploidy != 2 or any(index is None for index in call.allele_indexes):
        raise UnexpectedGenotypeError(
            f"Cannot key genotype {call.genotype} for sample {call.sample} at {record.location}"
        )
    ordered = sorted(zip(call.allele_indexes, call.alleles))
    return normalize_variant_key(
        record.contig,
        record.start,
        record.reference,
        [allele for _, allele in ordered],
        end=record.stop,
    )


class AlleleShape(str, Enum):
    SUBSTITUTION = "substitution"
    DELETION = "deletion"
    INSERTION = "insertion"


def classify_allele_shape(first: str, second: str) -> AlleleShape:
    if len(first) == len(second):
        return AlleleShape.SUBSTITUTION
    if len(first) > len(second) == 1:
        return AlleleShape.DELETION
    if len(first) == 1 < len(second):
        return AlleleShape.INSERTION
    raise UnexpectedGenotypeError(f"Unexpected allele lengths: {first}>{second}")


class AlleleMatcher:
    """Select the annotation records that describe a call's second allele."""

    def expected_allele(self, key: VariantKey) -> str:
        shape = classify_allele_shape(key.first, key.second)
        if shape is AlleleShape.DELETION:
            return DELETION_PLACEHOLDER
        if shape is AlleleShape.INSERTION:
            return key.second[1:]
        return key.second

    def match(self, key: VariantKey, records: Iterable[AnnotationRecord]) -> frozenset[AnnotationRecord]:
        expected = self.expected_allele(key)
        return frozenset(
            record for record in records if record.has_identity() and record.allele == expected
        )


@dataclass
class AnnotationIndex:
    """Matched annotation records per variant key for one input."""

    matches: dict[str, frozenset[AnnotationRecord]] = field(default_factory=dict)
    variant_calls: int = 0
    unannotated_calls: int = 0
    truncated_annotations: int = 0

    def __len__(self) -> int:
        return len(self.matches)

    def get(self, key: str) -> frozenset[AnnotationRecord]:
        return self.matches.get(key, frozenset())

    def items(self) -> Iterator[tuple[str, frozenset[AnnotationRecord]]]:
        for key in sorted(self.matches):
            yield key, self.matches[key]

    @classmethod
    def build(
        cls,
        records: Iterable[VariantRecord],
        parser: AnnotationParser,
        matcher: AlleleMatcher | None = None,
    ) -> "AnnotationIndex":
        """Parse and match every heterozygous or homozygous-variant call.

        Calls with no matching record are counted and logged; they still get
        their sample, variant and genotype data in the graph.
        """

        matcher = matcher or AlleleMatcher()
        index = cls()

        for record in records:
            calls = [call for call in record.genotypes if call.zygosity in (Zygosity.HET, Zygosity.HOM_VAR)]
            if not calls:
                continue

            parsed: set[AnnotationRecord] = set()
            for text in record.annotations:
                if not text:
                    continue
                result = parser.parse(text)
                if result.truncated:
                    index.truncated_annotations += 1
                parsed.add(result.record)

            for call in calls:
                key = key_for_call(record, call)
                index.variant_calls += 1
                matched = matcher.match(key, parsed)
                if not matched:
                    index.unannotated_calls += 1
                    logger.warning(
                        "Missing annotation for sample %s at %s (%s)", call.sample, record.location, key.key
                    )
                    continue
                index.matches[key.key] = index.get(key.key) | matched

        return index
