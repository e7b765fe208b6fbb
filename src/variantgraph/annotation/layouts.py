"""Versioned VEP annotation field layouts.

A layout is the ordered list of VEP column names found in one annotation
string. Each column name maps to a single ``FieldRule`` describing which
``AnnotationRecord`` attribute it fills and how the raw text is decoded, so
supporting a new VEP release is a matter of listing its columns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import Any
from urllib.parse import unquote

from variantgraph.config import AnnotationLayoutVersion
from variantgraph.models import Prediction, Rank

logger = logging.getLogger(__name__)

FIELD_DELIMITER = "|"
MULTI_VALUE_DELIMITER = "&"


def _text(value: str) -> str:
    return value


def _multi(value: str) -> frozenset[str]:
    return frozenset(item for item in value.split(MULTI_VALUE_DELIMITER) if item)


def _hgvs(value: str) -> str | None:
    """Drop the ``ENST...:`` reference prefix and unescape the descriptor."""

    _, separator, descriptor = value.partition(":")
    if not separator:
        descriptor = value
    return unquote(descriptor) or None


def _hgvs_protein(value: str) -> str | None:
    descriptor = _hgvs(value)
    if descriptor and "(" in descriptor and ")" in descriptor:
        descriptor = descriptor.split("(", 1)[1].split(")", 1)[0]
    return descriptor or None


def _prediction(value: str) -> Prediction:
    name, _, remainder = value.partition("(")
    score: float | None = None
    if remainder:
        try:
            score = float(remainder.rstrip(")"))
        except ValueError:
            score = None
    return Prediction(prediction=name, score=score)


def _rank(value: str) -> Rank:
    number, separator, total = value.partition("/")
    return Rank(number=number, total=total if separator and total else None)


@dataclass(frozen=True)
class FieldRule:
    """Target attribute and decoder for one VEP column."""

    attribute: str
    decoder: Callable[[str], Any] = _text


FIELD_RULES: dict[str, FieldRule] = {
    "ALLELE": FieldRule("allele"),
    "CONSEQUENCE": FieldRule("consequences", _multi),
    "IMPACT": FieldRule("impact"),
    "SYMBOL": FieldRule("symbol"),
    "GENE": FieldRule("gene"),
    "FEATURE_TYPE": FieldRule("feature_type"),
    "FEATURE": FieldRule("feature"),
    "BIOTYPE": FieldRule("biotype"),
    "EXON": FieldRule("exon", _rank),
    "INTRON": FieldRule("intron", _rank),
    "HGVSC": FieldRule("hgvs_coding", _hgvs),
    "HGVSP": FieldRule("hgvs_protein", _hgvs_protein),
    "CDNA_POSITION": FieldRule("cdna_position"),
    "CDS_POSITION": FieldRule("cds_position"),
    "PROTEIN_POSITION": FieldRule("protein_position"),
    "AMINO_ACIDS": FieldRule("amino_acids"),
    "CODONS": FieldRule("codons"),
    "EXISTING_VARIATION": FieldRule("existing_variation"),
    "DISTANCE": FieldRule("distance"),
    "STRAND": FieldRule("strand"),
    "SYMBOL_SOURCE": FieldRule("symbol_source"),
    "HGNC_ID": FieldRule("hgnc_id"),
    "CANONICAL": FieldRule("canonical"),
    "TSL": FieldRule("tsl"),
    "CCDS": FieldRule("ccds"),
    "ENSP": FieldRule("ensp"),
    "SWISSPROT": FieldRule("swissprot"),
    "TREMBL": FieldRule("trembl"),
    "UNIPARC": FieldRule("uniparc"),
    "SIFT": FieldRule("sift", _prediction),
    "POLYPHEN": FieldRule("polyphen", _prediction),
    "DOMAINS": FieldRule("domains"),
    "GMAF": FieldRule("gmaf"),
    "AFR_MAF": FieldRule("afr_maf"),
    "AMR_MAF": FieldRule("amr_maf"),
    "ASN_MAF": FieldRule("asn_maf"),
    "EAS_MAF": FieldRule("eas_maf"),
    "EUR_MAF": FieldRule("eur_maf"),
    "SAS_MAF": FieldRule("sas_maf"),
    "AA_MAF": FieldRule("aa_maf"),
    "EA_MAF": FieldRule("ea_maf"),
    "CLIN_SIG": FieldRule("clinical_significance", _multi),
    "SOMATIC": FieldRule("somatic"),
    "PUBMED": FieldRule("pubmed"),
    "MOTIF_NAME": FieldRule("motif_name"),
    "MOTIF_POS": FieldRule("motif_pos"),
    "HIGH_INF_POS": FieldRule("high_inf_pos"),
    "MOTIF_SCORE_CHANGE": FieldRule("motif_score_change"),
}


@dataclass(frozen=True)
class AnnotationLayout:
    """Ordered VEP column names plus layout-wide decoding quirks.

    ``hgnc_symbols_only`` reproduces the oldest VEP output, where ``SYMBOL``
    is only trusted when ``SYMBOL_SOURCE`` is ``HGNC``.
    """

    name: str
    fields: tuple[str, ...]
    hgnc_symbols_only: bool = False

    def __len__(self) -> int:
        return len(self.fields)

    @cached_property
    def rules(self) -> tuple[FieldRule | None, ...]:
        return tuple(FIELD_RULES.get(name.strip().upper()) for name in self.fields)

    @classmethod
    def from_format(cls, names: Sequence[str], name: str = "header") -> "AnnotationLayout":
        """Build a layout from the column names of a VCF header description."""

        cleaned = tuple(item.strip() for item in names if item.strip())
        unknown = [item for item in cleaned if item.upper() not in FIELD_RULES]
        if unknown:
            logger.debug("Ignoring unrecognised annotation columns: %s", ", ".join(unknown))
        return cls(name=name, fields=cleaned)


LAYOUTS: dict[AnnotationLayoutVersion, AnnotationLayout] = {
    AnnotationLayoutVersion.LEGACY: AnnotationLayout(
        name=AnnotationLayoutVersion.LEGACY.value,
        fields=(
            "Allele", "Gene", "Feature", "Feature_type", "Consequence", "cDNA_position",
            "CDS_position", "Protein_position", "Amino_acids", "Codons", "Existing_variation",
            "AA_MAF", "EA_MAF", "EXON", "INTRON", "DISTANCE", "STRAND", "CLIN_SIG", "SYMBOL",
            "SYMBOL_SOURCE", "SIFT", "PolyPhen", "GMAF", "HGVSc", "HGVSp", "AFR_MAF", "AMR_MAF",
            "ASN_MAF", "EUR_MAF",
        ),
        hgnc_symbols_only=True,
    ),
    AnnotationLayoutVersion.V75: AnnotationLayout(
        name=AnnotationLayoutVersion.V75.value,
        fields=(
            "Allele", "Gene", "Feature", "Feature_type", "Consequence", "cDNA_position",
            "CDS_position", "Protein_position", "Amino_acids", "Codons", "Existing_variation",
            "AA_MAF", "EA_MAF", "EXON", "INTRON", "MOTIF_NAME", "MOTIF_POS", "HIGH_INF_POS",
            "MOTIF_SCORE_CHANGE", "DISTANCE", "STRAND", "CLIN_SIG", "CANONICAL", "SYMBOL",
            "SYMBOL_SOURCE", "SIFT", "PolyPhen", "GMAF", "BIOTYPE", "ENSP", "DOMAINS", "CCDS",
            "HGVSc", "HGVSp", "AFR_MAF", "AMR_MAF", "ASN_MAF", "EUR_MAF", "PUBMED",
        ),
    ),
    AnnotationLayoutVersion.V79: AnnotationLayout(
        name=AnnotationLayoutVersion.V79.value,
        fields=(
            "Allele", "Consequence", "IMPACT", "SYMBOL", "Gene", "Feature_type", "Feature",
            "BIOTYPE", "EXON", "INTRON", "HGVSc", "HGVSp", "cDNA_position", "CDS_position",
            "Protein_position", "Amino_acids", "Codons", "Existing_variation", "DISTANCE",
            "STRAND", "SYMBOL_SOURCE", "HGNC_ID", "CANONICAL", "TSL", "CCDS", "ENSP",
            "SWISSPROT", "TREMBL", "UNIPARC", "SIFT", "PolyPhen", "DOMAINS", "GMAF", "AFR_MAF",
            "AMR_MAF", "ASN_MAF", "EAS_MAF", "EUR_MAF", "SAS_MAF", "AA_MAF", "EA_MAF",
            "CLIN_SIG", "SOMATIC", "PUBMED", "MOTIF_NAME", "MOTIF_POS", "HIGH_INF_POS",
            "MOTIF_SCORE_CHANGE",
        ),
    ),
}


def get_layout(version: AnnotationLayoutVersion | str) -> AnnotationLayout:
    return LAYOUTS[AnnotationLayoutVersion(version)]


def parse_format_description(description: str | None) -> tuple[str, ...] | None:
    """Extract column names from a header such as ``"... Format: Allele|Gene|..."``."""

    if not description:
        return None
    _, marker, format_part = description.partition("Format:")
    if not marker:
        return None
    names = tuple(
        item.strip() for item in format_part.strip().strip('"').split(FIELD_DELIMITER) if item.strip()
    )
    return names or None


def detect_layout(description: str | None = None, samples: Iterable[str] | None = None) -> AnnotationLayout:
    """Pick the layout for a run.

    The header description wins; presets are preferred when the column list
    matches one exactly. Without a header the widest of the annotation
    ``samples`` selects the smallest preset that can hold it, so a truncated
    leading record does not narrow the layout. Scanning stops once a sample
    fills the widest preset.
    """

    names = parse_format_description(description)
    if names is not None:
        for layout in LAYOUTS.values():
            if tuple(item.upper() for item in layout.fields) == tuple(item.upper() for item in names):
                return layout
        return AnnotationLayout.from_format(names)

    presets = sorted(LAYOUTS.values(), key=len)
    widest = 0
    for sample in samples or ():
        widest = max(widest, len(sample.split(FIELD_DELIMITER)))
        if widest >= len(presets[-1]):
            break

    if widest:
        for layout in presets:
            if widest <= len(layout):
                return layout
        return presets[-1]

    logger.warning("No annotation header or record to detect layout from; assuming %s", AnnotationLayoutVersion.V79.value)
    return LAYOUTS[AnnotationLayoutVersion.V79]
