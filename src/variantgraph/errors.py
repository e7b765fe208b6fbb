"""Exception hierarchy and typed consistency results for VariantGraph."""

from __future__ import annotations

from dataclasses import dataclass


class VariantGraphError(Exception):
    """Base class for errors that abort an import run."""


class ConfigError(VariantGraphError):
    """Raised when an import configuration is invalid."""


class GraphStoreError(VariantGraphError):
    """Raised when the graph storage backend rejects an operation."""


class UnexpectedGenotypeError(VariantGraphError):
    """Genotype shape the importer cannot represent (ploidy, allele lengths)."""


class NonUniqueAnnotationError(VariantGraphError):
    """Two different annotations claim the same (variant, feature) key."""


@dataclass(frozen=True)
class ConsistencyIssue:
    """Describes why a genotype call cannot be imported."""

    sample: str
    location: str
    genotype: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}: sample={self.sample} site={self.location} GT={self.genotype}"


class ImportValidationError(VariantGraphError):
    """Raised by the pipeline when a consistency check fails."""

    def __init__(self, issue: ConsistencyIssue) -> None:
        super().__init__(str(issue))
        self.issue = issue
