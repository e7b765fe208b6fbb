"""Composable VariantGraph import orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import asdict, dataclass, field
from typing import Any

from variantgraph.adapters.base import VariantSource
from variantgraph.adapters.morbid_map import MorbidMap
from variantgraph.annotation.consequences import ConsequenceTaxonomy
from variantgraph.annotation.layouts import AnnotationLayout, detect_layout, get_layout
from variantgraph.annotation.parser import AnnotationParser
from variantgraph.builder import GraphBuilder
from variantgraph.cache import EntityKind, ImportSession
from variantgraph.config import ImportConfig
from variantgraph.errors import ImportValidationError
from variantgraph.models import VariantRecord
from variantgraph.quality import GenotypeValidator
from variantgraph.storage.base import GraphStore
from variantgraph.variants import AlleleMatcher, AnnotationIndex

logger = logging.getLogger(__name__)


@dataclass
class ImportRunReport:
    """Execution summary for an import run."""

    source: str
    layout: str
    samples: int
    variant_calls: int
    unannotated_calls: int
    annotated_variants: int
    truncated_annotations: int
    created_nodes: dict[str, int] = field(default_factory=dict)
    created_relationships: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class GraphImportPipeline:
    """Validate calls, index annotations and run the builder stages in order.

    Genotype consistency is checked across the whole input before the first
    write, so a mixed or unrepresentable call aborts the run with an empty
    graph delta.
    """

    def __init__(
        self,
        *,
        source: VariantSource,
        store: GraphStore,
        config: ImportConfig | None = None,
        morbid_map: MorbidMap | None = None,
        taxonomy: ConsequenceTaxonomy | None = None,
        validator: GenotypeValidator | None = None,
        matcher: AlleleMatcher | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.config = config or ImportConfig()
        self.morbid_map = morbid_map
        self.taxonomy = taxonomy
        self.validator = validator or GenotypeValidator()
        self.matcher = matcher or AlleleMatcher()

    def run(self) -> ImportRunReport:
        self._prepare_store()

        layout = self._resolve_layout()
        logger.info("Importing %s with %s annotation layout", self.source.name, layout.name)

        issues = self.validator.validate(self._records())
        if issues:
            for issue in issues[1:]:
                logger.error("Consistency issue: %s", issue)
            raise ImportValidationError(issues[0])

        index = AnnotationIndex.build(self._records(), AnnotationParser(layout), self.matcher)
        if index.unannotated_calls:
            logger.warning(
                "%d of %d calls have no matching annotation", index.unannotated_calls, index.variant_calls
            )

        session = ImportSession(self.store)
        builder = GraphBuilder(session, taxonomy=self.taxonomy, validator=self.validator)
        batch_id = self.config.batch_id or self.source.name

        samples = builder.add_sample_nodes(self.source.samples)
        issue = builder.add_variant_nodes(self._records())
        if issue is None:
            issue = builder.add_genotype_relationships(self._records(), batch_id)
        if issue is not None:
            raise ImportValidationError(issue)
        builder.add_annotation_nodes(index)
        builder.add_consequence_relationships(index)
        if self.morbid_map is not None:
            builder.add_phenotype_relationships(self.morbid_map)

        return ImportRunReport(
            source=self.source.name,
            layout=layout.name,
            samples=samples,
            variant_calls=index.variant_calls,
            unannotated_calls=index.unannotated_calls,
            annotated_variants=len(index),
            truncated_annotations=index.truncated_annotations,
            created_nodes=dict(session.created_nodes),
            created_relationships=dict(session.created_relationships),
        )

    def _prepare_store(self) -> None:
        for kind in EntityKind:
            self.store.ensure_unique_constraint(kind.label, kind.key_property)
        if not self.store.await_indexes(self.config.index_wait_seconds):
            logger.warning(
                "Indexes not online after %ss; continuing with slower lookups",
                self.config.index_wait_seconds,
            )

    def _resolve_layout(self) -> AnnotationLayout:
        if self.config.layout is not None:
            return get_layout(self.config.layout)
        return detect_layout(description=self.source.annotation_format(), samples=self._annotation_texts())

    def _annotation_texts(self) -> Iterator[str]:
        for record in self._records():
            for text in record.annotations:
                if text:
                    yield text

    def _records(self) -> Iterator[VariantRecord]:
        for record in self.source.read():
            if not record.is_variant:
                continue
            if record.is_filtered and not self.config.include_filtered:
                continue
            yield record
