"""
Finding aggregation: deduplicate, group by function and rank.
"""
import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import AnalysisReport, Finding, FunctionGroup

logger = logging.getLogger(__name__)


class FindingAggregator:
    """
    Turns a flat list of findings into an :class:`AnalysisReport`.

    Duplicates (same rule, function and location) collapse to the first
    occurrence. Groups are ordered by their highest severity, then by
    declaration order; findings inside a group keep their input order.
    Aggregating an already aggregated report's findings is a no-op.
    """

    def aggregate(
        self,
        contract_name: str,
        function_order: Sequence[str],
        findings: Iterable[Finding],
    ) -> AnalysisReport:
        declared = {}
        for index, key in enumerate(function_order):
            declared.setdefault(key, index)

        seen = set()
        grouped: Dict[str, List[Finding]] = {}
        names: Dict[str, str] = {}
        duplicates = 0
        for finding in findings:
            if finding.key in seen:
                duplicates += 1
                continue
            seen.add(finding.key)
            grouped.setdefault(finding.function_key, []).append(finding)
            names.setdefault(finding.function_key, finding.function_name)
        if duplicates:
            logger.debug(f"Dropped {duplicates} duplicate findings for {contract_name}")

        # Functions not in the declared order sort after every declared one.
        unknown_index = len(declared)
        groups = [
            FunctionGroup(
                function_name=names[key],
                function_signature=key,
                declaration_index=declared.get(key, declared.get(names[key], unknown_index)),
                findings=tuple(items),
            )
            for key, items in grouped.items()
        ]
        groups.sort(key=_group_rank)
        return AnalysisReport(contract_name=contract_name, groups=tuple(groups))

    def regroup(self, report: AnalysisReport) -> AnalysisReport:
        """Re-aggregate a report, e.g. after merging findings from several runs."""
        order = [g.function_signature for g in sorted(report.groups, key=lambda g: g.declaration_index)]
        return self.aggregate(report.contract_name, order, report.findings)


def _group_rank(group: FunctionGroup) -> Tuple[int, int, str]:
    return (-group.max_severity.score, group.declaration_index, group.function_signature)
