"""Consistency checks for genotype calls."""

from __future__ import annotations

from collections.abc import Iterable

from variantgraph.errors import ConsistencyIssue, UnexpectedGenotypeError
from variantgraph.models import GenotypeCall, VariantRecord, Zygosity
from variantgraph.variants import classify_allele_shape, key_for_call

SKIPPED_ZYGOSITIES = frozenset({Zygosity.NO_CALL, Zygosity.HOM_REF})


class GenotypeValidator:
    """Decide which calls enter the graph and whether they can be represented.

    Checks return a ``ConsistencyIssue`` instead of raising; the pipeline
    decides that any issue aborts the run.
    """

    def is_processable(self, call: GenotypeCall) -> bool:
        return call.zygosity not in SKIPPED_ZYGOSITIES

    def check(self, record: VariantRecord, call: GenotypeCall) -> ConsistencyIssue | None:
        if call.zygosity is Zygosity.MIXED:
            return self.issue(record, call, "Mixed genotype call")
        if call.ploidy != 2:
            return self.issue(record, call, f"Unexpected ploidy {call.ploidy}")
        try:
            key = key_for_call(record, call)
            classify_allele_shape(key.first, key.second)
        except UnexpectedGenotypeError as exc:
            return self.issue(record, call, str(exc))
        return None

    def validate(self, records: Iterable[VariantRecord]) -> list[ConsistencyIssue]:
        issues: list[ConsistencyIssue] = []
        for record in records:
            for call in record.genotypes:
                if not self.is_processable(call):
                    continue
                issue = self.check(record, call)
                if issue is not None:
                    issues.append(issue)
        return issues

    @staticmethod
    def issue(record: VariantRecord, call: GenotypeCall, message: str) -> ConsistencyIssue:
        return ConsistencyIssue(
            sample=call.sample,
            location=record.location,
            genotype=call.genotype,
            message=message,
        )
