"""Input adapters for VariantGraph."""

from .base import StaticVariantSource, VariantSource
from .morbid_map import MorbidMap
from .vcf import VcfVariantSource, parse_gt

__all__ = [
    "VariantSource",
    "StaticVariantSource",
    "VcfVariantSource",
    "MorbidMap",
    "parse_gt",
]
