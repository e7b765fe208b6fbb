"""Core VariantGraph import primitives.

This package turns VEP-annotated variant calls into a property graph of
samples, variants, genes, transcripts, annotations and consequence edges.
"""

from .builder import GraphBuilder
from .cache import EntityCache, EntityKind, ImportSession
from .config import AnnotationLayoutVersion, ImportConfig, ImportConfigLoader, StoreConfig
from .errors import (
    ConfigError,
    ConsistencyIssue,
    GraphStoreError,
    ImportValidationError,
    NonUniqueAnnotationError,
    UnexpectedGenotypeError,
    VariantGraphError,
)
from .models import AnnotationRecord, GenotypeCall, Prediction, Rank, VariantRecord, Zygosity
from .pipeline import GraphImportPipeline, ImportRunReport
from .quality import GenotypeValidator
from .registry import GraphStoreRegistry, StorePluginSpec, build_default_store_registry
from .variants import (
    AlleleMatcher,
    AlleleShape,
    AnnotationIndex,
    VariantKey,
    classify_allele_shape,
    key_for_call,
    normalize_variant_key,
)

__all__ = [
    "AnnotationLayoutVersion",
    "ImportConfig",
    "ImportConfigLoader",
    "StoreConfig",
    "ConfigError",
    "ConsistencyIssue",
    "GraphStoreError",
    "ImportValidationError",
    "NonUniqueAnnotationError",
    "UnexpectedGenotypeError",
    "VariantGraphError",
    "AnnotationRecord",
    "GenotypeCall",
    "Prediction",
    "Rank",
    "VariantRecord",
    "Zygosity",
    "VariantKey",
    "AlleleShape",
    "AlleleMatcher",
    "AnnotationIndex",
    "classify_allele_shape",
    "key_for_call",
    "normalize_variant_key",
    "GenotypeValidator",
    "EntityKind",
    "EntityCache",
    "ImportSession",
    "GraphBuilder",
    "GraphImportPipeline",
    "ImportRunReport",
    "GraphStoreRegistry",
    "StorePluginSpec",
    "build_default_store_registry",
]
