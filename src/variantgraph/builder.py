"""Stage-by-stage construction of the variant graph."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from variantgraph.annotation.consequences import ConsequenceTaxonomy
from variantgraph.cache import EntityKind, ImportSession
from variantgraph.errors import ConsistencyIssue, NonUniqueAnnotationError, VariantGraphError
from variantgraph.models import AnnotationRecord, VariantRecord, Zygosity
from variantgraph.quality import GenotypeValidator
from variantgraph.storage.base import NodeId
from variantgraph.variants import AnnotationIndex, key_for_call

if TYPE_CHECKING:
    from variantgraph.adapters.morbid_map import MorbidMap

logger = logging.getLogger(__name__)

HET_RELATIONSHIP = "HAS_HET_VARIANT"
HOM_RELATIONSHIP = "HAS_HOM_VARIANT"
SYMBOL_RELATIONSHIP = "IN_SYMBOL"
FEATURE_RELATIONSHIP = "IN_FEATURE"
PHENOTYPE_RELATIONSHIP = "HAS_ASSOCIATED_PHENOTYPE"

_GENOTYPE_RELATIONSHIPS = {
    Zygosity.HET: (HET_RELATIONSHIP, HOM_RELATIONSHIP),
    Zygosity.HOM_VAR: (HOM_RELATIONSHIP, HET_RELATIONSHIP),
}


def annotation_id(variant_key: str, feature: str) -> str:
    return f"{variant_key}:{feature}"


def _signature(properties: dict[str, Any]) -> frozenset:
    return frozenset(
        (name, tuple(value) if isinstance(value, list) else value)
        for name, value in properties.items()
        if name != EntityKind.ANNOTATION.key_property
    )


def _record_order(record: AnnotationRecord) -> tuple:
    return (
        record.feature or "",
        record.symbol or "",
        record.gene or "",
        tuple(sorted(record.consequences)),
        tuple(sorted((key, str(value)) for key, value in record.annotation_properties().items())),
    )


class GraphBuilder:
    """Write samples, variants, genotypes, annotations and consequences.

    Every stage merges through the ``ImportSession`` so it can be re-run
    against a partially populated graph without creating duplicates. Stages
    that check genotype consistency return the first ``ConsistencyIssue``
    and write nothing for that call.
    """

    def __init__(
        self,
        session: ImportSession,
        taxonomy: ConsequenceTaxonomy | None = None,
        validator: GenotypeValidator | None = None,
    ) -> None:
        self.session = session
        self.taxonomy = taxonomy if taxonomy is not None else ConsequenceTaxonomy()
        self.validator = validator or GenotypeValidator()
        self._feature_symbols: dict[str, str] = {}

    def add_sample_nodes(self, samples: Iterable[str]) -> int:
        count = 0
        for sample in samples:
            self.session.merge_node(EntityKind.SAMPLE, sample)
            count += 1
        logger.info("Sample nodes ready: %d", count)
        return count

    def add_variant_nodes(self, records: Iterable[VariantRecord]) -> ConsistencyIssue | None:
        for record in records:
            for call in record.genotypes:
                if not self.validator.is_processable(call):
                    continue
                issue = self.validator.check(record, call)
                if issue is not None:
                    return issue
                key = key_for_call(record, call)
                self.session.merge_node(EntityKind.VARIANT, key.key, key.node_properties())
        logger.info("Variant nodes ready: %d", self.session.cache.size(EntityKind.VARIANT))
        return None

    def add_genotype_relationships(
        self,
        records: Iterable[VariantRecord],
        batch_id: str | None = None,
    ) -> ConsistencyIssue | None:
        for record in records:
            for call in record.genotypes:
                if not self.validator.is_processable(call):
                    continue
                issue = self.validator.check(record, call)
                if issue is not None:
                    return issue

                rel_type, opposite = _GENOTYPE_RELATIONSHIPS[call.zygosity]
                key = key_for_call(record, call)
                sample_id = self.session.merge_node(EntityKind.SAMPLE, call.sample)
                variant_id = self.session.merge_node(EntityKind.VARIANT, key.key, key.node_properties())

                if self.session.relationship_exists(sample_id, opposite, variant_id):
                    return self.validator.issue(
                        record, call, f"Sample already has {opposite} to {key.key}"
                    )

                properties = {"GQ": call.quality, "BatchID": batch_id}
                self.session.merge_relationship(
                    sample_id,
                    rel_type,
                    variant_id,
                    {name: value for name, value in properties.items() if value is not None},
                )
        logger.info(
            "Genotype relationships created: het=%d hom=%d",
            self.session.created_relationships[HET_RELATIONSHIP],
            self.session.created_relationships[HOM_RELATIONSHIP],
        )
        return None

    def add_annotation_nodes(self, index: AnnotationIndex) -> int:
        """Merge Gene, Feature and Annotation nodes for every matched record.

        Raises ``NonUniqueAnnotationError`` when two records for the same
        variant and feature disagree on node content or consequences,
        including a record that disagrees with a node stored by an earlier run.
        """

        count = 0
        for variant_key, records in index.items():
            for record in sorted(records, key=_record_order):
                feature_id = self.session.merge_node(
                    EntityKind.FEATURE,
                    record.feature,
                    {**record.feature_properties(), "Symbol": record.symbol},
                )
                self._link_feature_to_gene(record, feature_id)

                node_key = annotation_id(variant_key, record.feature)
                properties = {**record.annotation_properties(), "Consequences": sorted(record.consequences)}
                signature = _signature(properties)
                seen = self.session.annotation_signatures.get(node_key)
                if seen is None:
                    stored = self.session.stored_properties(EntityKind.ANNOTATION, node_key)
                    seen = signature if stored is None else _signature(stored)
                    self.session.annotation_signatures[node_key] = seen
                if seen != signature:
                    raise NonUniqueAnnotationError(
                        f"Non-unique annotation for variant {variant_key} in feature {record.feature}"
                    )

                node_id = self.session.merge_node(EntityKind.ANNOTATION, node_key, properties)
                self.session.merge_relationship(node_id, FEATURE_RELATIONSHIP, feature_id)
                count += 1
        logger.info("Annotation nodes ready: %d", self.session.cache.size(EntityKind.ANNOTATION))
        return count

    def _link_feature_to_gene(self, record: AnnotationRecord, feature_id: NodeId) -> None:
        linked = self._feature_symbols.get(record.feature)
        if linked is None:
            stored = self.session.stored_properties(EntityKind.FEATURE, record.feature)
            linked = stored.get("Symbol", record.symbol) if stored else record.symbol
            self._feature_symbols[record.feature] = linked
        if linked != record.symbol:
            logger.warning(
                "Feature %s already belongs to %s; ignoring symbol %s", record.feature, linked, record.symbol
            )
            return
        gene_id = self.session.merge_node(EntityKind.GENE, record.symbol, record.gene_properties())
        self.session.merge_relationship(feature_id, SYMBOL_RELATIONSHIP, gene_id)

    def add_consequence_relationships(self, index: AnnotationIndex) -> int:
        created = 0
        for variant_key, records in index.items():
            variant_id = self.session.lookup(EntityKind.VARIANT, variant_key)
            if variant_id is None:
                raise VariantGraphError(f"Variant node {variant_key} is missing; add variant nodes first")
            for record in sorted(records, key=_record_order):
                node_id = self.session.lookup(EntityKind.ANNOTATION, annotation_id(variant_key, record.feature))
                if node_id is None:
                    raise VariantGraphError(
                        f"Annotation node {variant_key}:{record.feature} is missing; add annotation nodes first"
                    )
                for rel_type in self.taxonomy.relationship_types(record.consequences):
                    created += self.session.merge_relationship(variant_id, rel_type, node_id)
        logger.info("Consequence relationships created: %d", created)
        return created

    def add_phenotype_relationships(self, morbid_map: "MorbidMap") -> int:
        created = 0
        for symbol, disorders in morbid_map.items():
            gene_id = self.session.lookup(EntityKind.GENE, symbol)
            if gene_id is None:
                continue
            for disorder in sorted(disorders):
                phenotype_id = self.session.merge_node(EntityKind.PHENOTYPE, disorder)
                created += self.session.merge_relationship(gene_id, PHENOTYPE_RELATIONSHIP, phenotype_id)
        logger.info("Phenotype relationships created: %d", created)
        return created
