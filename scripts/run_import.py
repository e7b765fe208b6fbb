#!/usr/bin/env python3
"""Import a VEP-annotated VCF into a variant graph."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from variantgraph import (  # noqa: E402
    AnnotationLayoutVersion,
    ConfigError,
    GraphImportPipeline,
    ImportConfig,
    ImportConfigLoader,
    StoreConfig,
    VariantGraphError,
    build_default_store_registry,
)
from variantgraph.adapters import MorbidMap, VcfVariantSource  # noqa: E402
from variantgraph.storage import DuckDBGraphStore, GraphStore  # noqa: E402

logger = logging.getLogger("variantgraph.run_import")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a VEP-annotated VCF into a variant graph")
    parser.add_argument("input", help="Annotated VCF (.vcf or .vcf.gz)")
    parser.add_argument("target", help="Graph target: DuckDB file path or Neo4j URI")
    parser.add_argument("--config", help="Path to import JSON config")
    parser.add_argument("--store", help="Graph store backend (duckdb, memory, neo4j or a plugin name)")
    parser.add_argument("--batch-id", help="Batch identifier stored on genotype relationships")
    parser.add_argument(
        "--layout",
        choices=[item.value for item in AnnotationLayoutVersion],
        help="Annotation layout; detected from the VCF header when omitted",
    )
    parser.add_argument("--annotation-field", help="INFO field holding VEP annotations (default CSQ)")
    parser.add_argument(
        "--include-filtered",
        action="store_true",
        help="Import records whose FILTER is not PASS",
    )
    parser.add_argument("--morbid-map", help="OMIM morbid map to link genes to phenotypes")
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Resume into the existing graph instead of recreating it",
    )
    parser.add_argument("--export-parquet", help="Write DuckDB node/relationship tables to this directory")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Runner log level.",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> ImportConfig:
    config = ImportConfigLoader().load(args.config) if args.config else ImportConfig()
    store = StoreConfig(type=args.store.strip().lower(), params=config.store.params) if args.store else None
    return config.with_overrides(
        batch_id=args.batch_id,
        layout=args.layout,
        annotation_field=args.annotation_field,
        include_filtered=True if args.include_filtered else None,
        morbid_map_path=args.morbid_map,
        store=store,
    )


def open_store(config: StoreConfig, target: str, *, reset: bool) -> GraphStore:
    """Open the configured store on ``target``, recreating it unless resuming."""

    params = dict(config.params)
    if config.type == "duckdb":
        params["db_path"] = target
        if reset and target != ":memory:":
            for path in (Path(target), Path(f"{target}.wal")):
                if path.exists():
                    logger.info("Deleting existing graph file %s", path)
                    path.unlink()
    elif config.type == "neo4j":
        params["uri"] = target

    store = build_default_store_registry().create(config.type, **params)
    if reset and config.type != "duckdb":
        store.clear()
    return store


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = load_config(args)
        morbid_map = MorbidMap.load(config.morbid_map_path) if config.morbid_map_path else None
        source = VcfVariantSource(args.input, annotation_field=config.annotation_field)

        with open_store(config.store, args.target, reset=not args.keep_existing) as store:
            report = GraphImportPipeline(
                source=source,
                store=store,
                config=config,
                morbid_map=morbid_map,
            ).run()

            if args.export_parquet:
                if not isinstance(store, DuckDBGraphStore):
                    raise ConfigError("--export-parquet requires the duckdb store")
                store.export_parquet(args.export_parquet)

            payload = report.to_dict()
            payload["nodes"] = store.node_count()
            payload["relationships"] = store.relationship_count()
    except (VariantGraphError, OSError) as exc:
        logger.error("Import failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
