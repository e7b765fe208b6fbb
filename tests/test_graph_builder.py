import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from variantgraph import (  # noqa: E402
    AnnotationLayoutVersion,
    GraphBuilder,
    GraphImportPipeline,
    ImportConfig,
    ImportSession,
    ImportValidationError,
    NonUniqueAnnotationError,
)
from variantgraph.adapters import MorbidMap, StaticVariantSource  # noqa: E402
from variantgraph.annotation import LAYOUTS  # noqa: E402
from variantgraph.models import GenotypeCall, VariantRecord  # noqa: E402
from variantgraph.storage import InMemoryGraphStore  # noqa: E402

V79_FIELDS = LAYOUTS[AnnotationLayoutVersion.V79].fields
V79_CONFIG = ImportConfig(layout=AnnotationLayoutVersion.V79, batch_id="batch-1")


def _csq(**values: str) -> str:
    return "|".join(values.get(name, "") for name in V79_FIELDS)


BRCA1_MISSENSE = _csq(
    Allele="G",
    Consequence="missense_variant",
    IMPACT="MODERATE",
    SYMBOL="BRCA1",
    Gene="ENSG00000012048",
    Feature_type="Transcript",
    Feature="ENST00000357654",
    BIOTYPE="protein_coding",
    HGVSp="ENSP00000350283.3:p.Val1736Ala",
    SYMBOL_SOURCE="HGNC",
)


def _record(
    start: int,
    reference: str,
    alternates: tuple[str, ...],
    calls: dict[str, tuple[int | None, ...]],
    annotations: tuple[str, ...] = (),
    *,
    contig: str = "chr1",
    filters: tuple[str, ...] = ("PASS",),
    quality: int | None = 99,
) -> VariantRecord:
    alleles = (reference, *alternates)
    genotypes = tuple(
        GenotypeCall(
            sample=sample,
            allele_indexes=indexes,
            alleles=tuple(None if index is None else alleles[index] for index in indexes),
            quality=quality,
        )
        for sample, indexes in calls.items()
    )
    return VariantRecord(
        contig=contig,
        start=start,
        reference=reference,
        alternates=alternates,
        filters=filters,
        genotypes=genotypes,
        annotations=annotations,
    )


def _run(records, store=None, config=V79_CONFIG, **kwargs):
    store = store or InMemoryGraphStore()
    source = StaticVariantSource(records, name="test.vcf")
    report = GraphImportPipeline(source=source, store=store, config=config, **kwargs).run()
    return store, report


def _node(store: InMemoryGraphStore, label: str, key: str, value: str):
    matches = [node for node in store.nodes_with_label(label) if node.properties.get(key) == value]
    assert len(matches) == 1
    return matches[0]


def test_brca1_heterozygous_missense_graph() -> None:
    store, report = _run([_record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE,))])

    sample = _node(store, "Sample", "SampleID", "S1")
    variant = _node(store, "Variant", "Variant", "chr1:1000A>G")
    gene = _node(store, "Gene", "Symbol", "BRCA1")
    feature = _node(store, "Feature", "Feature", "ENST00000357654")
    annotation = _node(store, "Annotation", "AnnotationID", "chr1:1000A>G:ENST00000357654")

    assert store.node_count() == 5
    assert store.has_relationship(sample.node_id, "HAS_HET_VARIANT", variant.node_id)
    assert not store.has_relationship(sample.node_id, "HAS_HOM_VARIANT", variant.node_id)
    assert store.has_relationship(feature.node_id, "IN_SYMBOL", gene.node_id)
    assert store.has_relationship(annotation.node_id, "IN_FEATURE", feature.node_id)
    assert store.has_relationship(variant.node_id, "HAS_MISSENSE_VARIANT_CONSEQUENCE", annotation.node_id)
    assert store.relationship_count() == 4
    assert store.relationship_count("HAS_HOM_VARIANT") == 0

    het = store.relationships[(sample.node_id, "HAS_HET_VARIANT", variant.node_id)]
    assert het.properties == {"GQ": 99, "BatchID": "batch-1"}
    assert gene.properties == {"Symbol": "BRCA1", "GeneID": "ENSG00000012048", "SymbolSource": "HGNC"}
    assert annotation.properties["HGVSp"] == "p.Val1736Ala"
    assert variant.properties["Alternative"] == "G"

    assert report.layout == "v79"
    assert report.samples == 1
    assert report.variant_calls == 1
    assert report.annotated_variants == 1
    assert report.unannotated_calls == 0
    assert report.created_nodes == {"Sample": 1, "Variant": 1, "Gene": 1, "Feature": 1, "Annotation": 1}


def test_second_run_adds_nothing() -> None:
    records = [
        _record(1000, "A", ("G",), {"S1": (0, 1), "S2": (1, 1)}, (BRCA1_MISSENSE,)),
        _record(2000, "C", ("T",), {"S1": (0, 0), "S2": (0, 1)}),
    ]
    store, _ = _run(records)
    nodes, relationships = store.node_count(), store.relationship_count()

    _, report = _run(records, store=store)

    assert store.node_count() == nodes
    assert store.relationship_count() == relationships
    assert report.created_nodes == {}
    assert report.created_relationships == {}


def test_homozygous_call_links_with_hom_relationship() -> None:
    store, _ = _run([_record(1000, "A", ("G",), {"S1": (0, 1), "S2": (1, 1)}, (BRCA1_MISSENSE,))])

    variant = _node(store, "Variant", "Variant", "chr1:1000A>G")
    s2 = _node(store, "Sample", "SampleID", "S2")

    assert store.has_relationship(s2.node_id, "HAS_HOM_VARIANT", variant.node_id)
    assert not store.has_relationship(s2.node_id, "HAS_HET_VARIANT", variant.node_id)
    assert store.node_count("Variant") == 1


def test_mixed_call_aborts_before_any_genotype_relationship() -> None:
    records = [
        _record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE,)),
        _record(2000, "C", ("T",), {"S1": (None, 1)}),
    ]
    store = InMemoryGraphStore()

    with pytest.raises(ImportValidationError) as excinfo:
        _run(records, store=store)

    assert excinfo.value.issue.message == "Mixed genotype call"
    assert excinfo.value.issue.location == "chr1:2000"
    assert store.relationship_count() == 0


def test_builder_stage_reports_mixed_call_without_writing_it() -> None:
    store = InMemoryGraphStore()
    builder = GraphBuilder(ImportSession(store))
    records = [_record(2000, "C", ("T",), {"S1": (None, 1)})]

    issue = builder.add_genotype_relationships(records, "batch-1")

    assert issue is not None
    assert issue.sample == "S1"
    assert issue.genotype == "./1"
    assert store.relationship_count() == 0


def test_haploid_call_aborts_run() -> None:
    records = [_record(3000, "A", ("G",), {"S1": (1,)}, contig="chrY")]

    with pytest.raises(ImportValidationError, match="ploidy"):
        _run(records)


def test_unclassifiable_indel_aborts_run() -> None:
    records = [_record(3000, "ATG", ("GC",), {"S1": (0, 1)})]

    with pytest.raises(ImportValidationError, match="allele lengths"):
        _run(records)


def test_conflicting_annotation_for_same_feature_is_fatal() -> None:
    other_protein = BRCA1_MISSENSE.replace("p.Val1736Ala", "p.Val1736Gly")
    records = [_record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE, other_protein))]

    with pytest.raises(NonUniqueAnnotationError):
        _run(records)


def test_repeated_identical_annotation_blocks_collapse() -> None:
    records = [_record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE, BRCA1_MISSENSE))]

    store, _ = _run(records)

    assert store.node_count("Annotation") == 1


def test_unmatched_call_is_a_coverage_warning(caplog: pytest.LogCaptureFixture) -> None:
    records = [_record(1000, "A", ("T",), {"S1": (0, 1)}, (BRCA1_MISSENSE,))]

    with caplog.at_level(logging.WARNING):
        store, report = _run(records)

    assert report.unannotated_calls == 1
    assert store.node_count("Variant") == 1
    assert store.relationship_count("HAS_HET_VARIANT") == 1
    assert store.node_count("Annotation") == 0
    assert "Missing annotation for sample S1" in caplog.text


def test_deletion_and_insertion_calls_join_their_annotations() -> None:
    deletion = _csq(Allele="-", Consequence="frameshift_variant", SYMBOL="TTN", Gene="ENSG1", Feature="ENST1")
    insertion = _csq(Allele="TT", Consequence="inframe_insertion", SYMBOL="TTN", Gene="ENSG1", Feature="ENST1")
    records = [
        _record(100, "AT", ("A",), {"S1": (0, 1)}, (deletion, insertion)),
        _record(200, "A", ("ATT",), {"S1": (0, 1)}, (deletion, insertion)),
    ]

    store, _ = _run(records)

    assert store.relationship_count("HAS_FRAMESHIFT_VARIANT_CONSEQUENCE") == 1
    assert store.relationship_count("HAS_INFRAME_INSERTION_CONSEQUENCE") == 1
    _node(store, "Annotation", "AnnotationID", "chr1:100AT>A:ENST1")
    _node(store, "Annotation", "AnnotationID", "chr1:200A>ATT:ENST1")


def test_no_call_hom_ref_and_non_variant_records_are_skipped() -> None:
    records = [
        _record(1000, "A", ("G",), {"S1": (None, None), "S2": (0, 0)}),
        _record(1500, "C", (".",), {"S1": (0, 0)}),
    ]

    store, report = _run(records)

    assert store.node_count("Sample") == 2
    assert store.node_count("Variant") == 0
    assert report.variant_calls == 0


def test_filtered_records_need_include_filtered() -> None:
    records = [_record(1000, "A", ("G",), {"S1": (0, 1)}, filters=("LowQual",))]

    store, _ = _run(records)
    assert store.node_count("Variant") == 0

    store, _ = _run(records, config=V79_CONFIG.with_overrides(include_filtered=True))
    assert store.node_count("Variant") == 1


def test_consequence_edges_only_for_present_tags() -> None:
    multi = BRCA1_MISSENSE.replace("missense_variant", "missense_variant&splice_region_variant&novel_tag")

    store, _ = _run([_record(1000, "A", ("G",), {"S1": (0, 1)}, (multi,))])

    types = sorted({rel.rel_type for rel in store.relationships.values() if rel.rel_type.endswith("_CONSEQUENCE")})
    assert types == ["HAS_MISSENSE_VARIANT_CONSEQUENCE", "HAS_SPLICE_REGION_VARIANT_CONSEQUENCE"]


def test_resumes_after_partial_import() -> None:
    records = [_record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE,))]
    store = InMemoryGraphStore()
    builder = GraphBuilder(ImportSession(store))
    builder.add_sample_nodes(["S1"])
    assert builder.add_variant_nodes(records) is None

    _, report = _run(records, store=store)

    assert store.node_count("Sample") == 1
    assert store.node_count("Variant") == 1
    assert report.created_nodes == {"Gene": 1, "Feature": 1, "Annotation": 1}


def test_existing_hom_relationship_blocks_het_relationship() -> None:
    store = InMemoryGraphStore()
    _run([_record(1000, "A", ("G",), {"S1": (1, 1)})], store=store)

    with pytest.raises(ImportValidationError, match="HAS_HOM_VARIANT"):
        _run([_record(1000, "A", ("G",), {"S1": (0, 1)})], store=store)

    assert store.relationship_count("HAS_HET_VARIANT") == 0


def test_phenotypes_link_to_known_genes() -> None:
    morbid_map = MorbidMap({"BRCA1": frozenset({"Breast cancer", "Fanconi anemia"}), "TTN": frozenset({"Myopathy"})})

    store, report = _run(
        [_record(1000, "A", ("G",), {"S1": (0, 1)}, (BRCA1_MISSENSE,))],
        morbid_map=morbid_map,
    )

    assert store.node_count("Phenotype") == 2
    assert store.relationship_count("HAS_ASSOCIATED_PHENOTYPE") == 2
    assert report.created_relationships["HAS_ASSOCIATED_PHENOTYPE"] == 2


def test_feature_keeps_symbol_linked_by_earlier_import(caplog: pytest.LogCaptureFixture) -> None:
    old = _csq(Allele="G", Consequence="missense_variant", SYMBOL="OLD1", Gene="ENSG1", Feature="ENST1")
    new = _csq(Allele="T", Consequence="synonymous_variant", SYMBOL="NEW1", Gene="ENSG2", Feature="ENST1")
    store, _ = _run([_record(1000, "A", ("G",), {"S1": (0, 1)}, (old,))])

    with caplog.at_level(logging.WARNING):
        _run([_record(2000, "C", ("T",), {"S1": (0, 1)}, (new,))], store=store)

    feature = _node(store, "Feature", "Feature", "ENST1")
    gene = _node(store, "Gene", "Symbol", "OLD1")
    assert feature.properties["Symbol"] == "OLD1"
    assert store.relationship_count("IN_SYMBOL") == 1
    assert store.has_relationship(feature.node_id, "IN_SYMBOL", gene.node_id)
    assert store.node_count("Gene") == 1
    assert "Feature ENST1 already belongs to OLD1" in caplog.text


def test_conflicting_annotation_from_earlier_import_is_fatal() -> None:
    old = _csq(Allele="G", Consequence="missense_variant", SYMBOL="OLD1", Gene="ENSG1", Feature="ENST1")
    new = _csq(Allele="G", Consequence="synonymous_variant", SYMBOL="NEW1", Gene="ENSG2", Feature="ENST1")
    store, _ = _run([_record(1000, "A", ("G",), {"S1": (0, 1)}, (old,))])
    annotation = _node(store, "Annotation", "AnnotationID", "chr1:1000A>G:ENST1")
    assert annotation.properties["Consequences"] == ["missense_variant"]

    with pytest.raises(NonUniqueAnnotationError):
        _run([_record(1000, "A", ("G",), {"S2": (0, 1)}, (new,))], store=store)

    assert store.relationship_count("IN_SYMBOL") == 1
    assert store.relationship_count("HAS_MISSENSE_VARIANT_CONSEQUENCE") == 1
    assert store.relationship_count("HAS_SYNONYMOUS_VARIANT_CONSEQUENCE") == 0


def test_truncated_first_annotation_does_not_narrow_detected_layout() -> None:
    truncated = "|".join(BRCA1_MISSENSE.split("|")[:33])
    titin = _csq(Allele="T", Consequence="stop_gained", SYMBOL="TTN", Gene="ENSG00000155657", Feature="ENST2")
    records = [
        _record(1000, "A", ("G",), {"S1": (0, 1)}, (truncated,)),
        _record(2000, "C", ("T",), {"S1": (0, 1)}, (titin,)),
    ]

    store, report = _run(records, config=ImportConfig(batch_id="batch-1"))

    assert report.layout == "v79"
    assert report.annotated_variants == 2
    _node(store, "Gene", "Symbol", "BRCA1")
    _node(store, "Feature", "Feature", "ENST00000357654")
    assert store.relationship_count("HAS_STOP_GAINED_CONSEQUENCE") == 1


def test_each_import_warns_about_unknown_consequence_tags(caplog: pytest.LogCaptureFixture) -> None:
    novel = BRCA1_MISSENSE.replace("missense_variant", "missense_variant&novel_tag")
    records = [_record(1000, "A", ("G",), {"S1": (0, 1)}, (novel,))]

    with caplog.at_level(logging.WARNING):
        _run(records)
        _run(records)

    warnings = [record for record in caplog.records if "novel_tag" in record.getMessage()]
    assert len(warnings) == 2
