"""Canonical in-memory data models used by VariantGraph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class Zygosity(str, Enum):
    """Classification of one sample's genotype call."""

    NO_CALL = "no_call"
    HOM_REF = "hom_ref"
    HET = "het"
    HOM_VAR = "hom_var"
    MIXED = "mixed"


@dataclass(frozen=True)
class GenotypeCall:
    """One sample's genotype at a site, alleles resolved to bases.

    ``allele_indexes`` keeps the VCF ``GT`` indexes (``None`` for ``.``) and
    ``alleles`` the matching bases, so ``0/1`` at an ``A>G`` site is
    ``(0, 1)`` / ``("A", "G")``.
    """

    sample: str
    allele_indexes: tuple[int | None, ...]
    alleles: tuple[str | None, ...]
    quality: int | None = None
    phased: bool = False

    @property
    def ploidy(self) -> int:
        return len(self.allele_indexes)

    @property
    def genotype(self) -> str:
        separator = "|" if self.phased else "/"
        return separator.join("." if index is None else str(index) for index in self.allele_indexes)

    @property
    def zygosity(self) -> Zygosity:
        called = [index for index in self.allele_indexes if index is not None]
        if not called:
            return Zygosity.NO_CALL
        if len(called) != len(self.allele_indexes):
            return Zygosity.MIXED
        if all(index == 0 for index in called):
            return Zygosity.HOM_REF
        if all(index == called[0] for index in called):
            return Zygosity.HOM_VAR
        return Zygosity.HET


@dataclass(frozen=True)
class VariantRecord:
    """Single decoded VCF data line."""

    contig: str
    start: int
    reference: str
    alternates: tuple[str, ...] = ()
    end: int | None = None
    filters: tuple[str, ...] = ()
    genotypes: tuple[GenotypeCall, ...] = ()
    annotations: tuple[str, ...] = ()

    @property
    def stop(self) -> int:
        """Inclusive 1-based end coordinate."""

        if self.end is not None:
            return self.end
        return self.start + len(self.reference) - 1

    @property
    def location(self) -> str:
        return f"{self.contig}:{self.start}"

    @property
    def is_filtered(self) -> bool:
        return any(item not in ("PASS", ".", "") for item in self.filters)

    @property
    def is_variant(self) -> bool:
        return any(alt not in ("", ".") for alt in self.alternates)

    def allele(self, index: int) -> str:
        """Return the bases for a VCF allele index (0 is the reference)."""

        if index == 0:
            return self.reference
        return self.alternates[index - 1]


class Prediction(NamedTuple):
    """SIFT/PolyPhen call such as ``deleterious(0.02)``."""

    prediction: str
    score: float | None = None


class Rank(NamedTuple):
    """Exon or intron position such as ``3/12``."""

    number: str
    total: str | None = None


@dataclass(frozen=True)
class AnnotationRecord:
    """One decoded VEP annotation block.

    Every field is optional; absent values are ``None`` (never ``""``).
    Equality and hashing are field-wise so repeated blocks collapse in a set.
    """

    allele: str | None = None
    consequences: frozenset[str] = field(default_factory=frozenset)
    impact: str | None = None
    symbol: str | None = None
    gene: str | None = None
    feature_type: str | None = None
    feature: str | None = None
    biotype: str | None = None
    exon: Rank | None = None
    intron: Rank | None = None
    hgvs_coding: str | None = None
    hgvs_protein: str | None = None
    cdna_position: str | None = None
    cds_position: str | None = None
    protein_position: str | None = None
    amino_acids: str | None = None
    codons: str | None = None
    existing_variation: str | None = None
    distance: str | None = None
    strand: str | None = None
    symbol_source: str | None = None
    hgnc_id: str | None = None
    canonical: str | None = None
    tsl: str | None = None
    ccds: str | None = None
    ensp: str | None = None
    swissprot: str | None = None
    trembl: str | None = None
    uniparc: str | None = None
    sift: Prediction | None = None
    polyphen: Prediction | None = None
    domains: str | None = None
    gmaf: str | None = None
    afr_maf: str | None = None
    amr_maf: str | None = None
    asn_maf: str | None = None
    eas_maf: str | None = None
    eur_maf: str | None = None
    sas_maf: str | None = None
    aa_maf: str | None = None
    ea_maf: str | None = None
    clinical_significance: frozenset[str] = field(default_factory=frozenset)
    somatic: str | None = None
    pubmed: str | None = None
    motif_name: str | None = None
    motif_pos: str | None = None
    high_inf_pos: str | None = None
    motif_score_change: str | None = None

    def has_identity(self) -> bool:
        """True when the record names a feature, a gene and a symbol."""

        return bool(self.feature and self.gene and self.symbol)

    def gene_properties(self) -> dict[str, Any]:
        return _present({"Symbol": self.symbol, "GeneID": self.gene, "SymbolSource": self.symbol_source})

    def feature_properties(self) -> dict[str, Any]:
        canonical = None
        if self.canonical is not None:
            canonical = self.canonical.upper() == "YES"
        return _present(
            {
                "Feature": self.feature,
                "FeatureType": self.feature_type,
                "Biotype": self.biotype,
                "Canonical": canonical,
            }
        )

    def annotation_properties(self) -> dict[str, Any]:
        """Properties stored on the Annotation node for this record."""

        return _present(
            {
                "Exon": self.exon.number if self.exon else None,
                "TotalExons": self.exon.total if self.exon else None,
                "Intron": self.intron.number if self.intron else None,
                "TotalIntrons": self.intron.total if self.intron else None,
                "Strand": self.strand,
                "HGVSc": self.hgvs_coding,
                "HGVSp": self.hgvs_protein,
                "Sift": self.sift.prediction if self.sift else None,
                "SiftScore": self.sift.score if self.sift else None,
                "Polyphen": self.polyphen.prediction if self.polyphen else None,
                "PolyphenScore": self.polyphen.score if self.polyphen else None,
            }
        )


def _present(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}
