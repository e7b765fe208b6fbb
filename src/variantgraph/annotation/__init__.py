"""VEP annotation decoding."""

from .consequences import CONSEQUENCE_TAGS, ConsequenceTaxonomy, relationship_type_for
from .layouts import (
    FIELD_RULES,
    LAYOUTS,
    AnnotationLayout,
    FieldRule,
    detect_layout,
    get_layout,
    parse_format_description,
)
from .parser import AnnotationParser, AnnotationParseResult

__all__ = [
    "CONSEQUENCE_TAGS",
    "ConsequenceTaxonomy",
    "relationship_type_for",
    "FIELD_RULES",
    "LAYOUTS",
    "AnnotationLayout",
    "FieldRule",
    "detect_layout",
    "get_layout",
    "parse_format_description",
    "AnnotationParser",
    "AnnotationParseResult",
]
