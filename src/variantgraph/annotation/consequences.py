"""Functional-consequence tags and their relationship types."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


CONSEQUENCE_TAGS: tuple[str, ...] = (
    "transcript_ablation",
    "splice_acceptor_variant",
    "splice_donor_variant",
    "stop_gained",
    "frameshift_variant",
    "stop_lost",
    "start_lost",
    "initiator_codon_variant",
    "transcript_amplification",
    "inframe_insertion",
    "inframe_deletion",
    "missense_variant",
    "protein_altering_variant",
    "splice_region_variant",
    "incomplete_terminal_codon_variant",
    "start_retained_variant",
    "stop_retained_variant",
    "synonymous_variant",
    "coding_sequence_variant",
    "mature_miRNA_variant",
    "five_prime_UTR_variant",
    "three_prime_UTR_variant",
    "non_coding_transcript_exon_variant",
    "intron_variant",
    "NMD_transcript_variant",
    "non_coding_transcript_variant",
    "upstream_gene_variant",
    "downstream_gene_variant",
    "TFBS_ablation",
    "TFBS_amplification",
    "TF_binding_site_variant",
    "regulatory_region_ablation",
    "regulatory_region_amplification",
    "feature_elongation",
    "regulatory_region_variant",
    "feature_truncation",
    "intergenic_variant",
)


def relationship_type_for(tag: str) -> str:
    return f"HAS_{tag.upper()}_CONSEQUENCE"


class ConsequenceTaxonomy:
    """Membership test and tag -> relationship-type table."""

    def __init__(self, tags: Iterable[str] = CONSEQUENCE_TAGS) -> None:
        self._relationships = {tag: relationship_type_for(tag) for tag in tags}
        self._reported_unknown: set[str] = set()

    def __contains__(self, tag: object) -> bool:
        return tag in self._relationships

    def __len__(self) -> int:
        return len(self._relationships)

    def relationship_type(self, tag: str) -> str:
        """Return the relationship type for a known tag."""

        try:
            return self._relationships[tag]
        except KeyError:
            raise KeyError(f"Unknown consequence tag: {tag}") from None

    def relationship_types(self, consequences: Iterable[str]) -> list[str]:
        """Relationship types for every known tag; unknown tags are reported once."""

        types = []
        for tag in consequences:
            if tag in self:
                types.append(self._relationships[tag])
            elif tag not in self._reported_unknown:
                self._reported_unknown.add(tag)
                logger.warning("Unknown consequence tag '%s'; no relationship created", tag)
        return sorted(types)

