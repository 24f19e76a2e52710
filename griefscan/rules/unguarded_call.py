"""
External dependency without a fallback.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import Match, matches_for, rule


def _severity(function: FunctionUnit, match: Match) -> Severity:
    return Severity.MEDIUM if match.get("in_loop") else Severity.LOW


@builtin_rule
@rule(
    "unguarded-external-call",
    title="External call without fallback",
    requires=[FactKind.UNGUARDED_EXTERNAL_CALL],
    severity=_severity,
    category="external",
    cwe_id="CWE-754",
    confidence=0.5,
)
def unguarded_external_call(function: FunctionUnit, facts: FunctionFacts):
    """External calls whose failure reverts the caller."""
    return matches_for(
        facts,
        FactKind.UNGUARDED_EXTERNAL_CALL,
        lambda fact: (
            f"{fact.identifiers[0]} can revert and is not wrapped in try/catch; "
            f"its failure makes {function.name} revert"
            + (" for the whole batch." if fact.get("in_loop") else ".")
        ),
    )
