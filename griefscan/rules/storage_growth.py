"""
Storage growth without bound: shared state that any caller can extend.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import Match, matches_for, rule


def _severity(function: FunctionUnit, match: Match) -> Severity:
    return Severity.MEDIUM if match.get("operation") == "push" else Severity.LOW


def _rationale(fact) -> str:
    name = fact.identifiers[0]
    if fact.get("operation") == "push":
        return f"Any caller can append to {name}; its length, and every loop over it, is attacker-controlled."
    return f"Any caller can increment the shared counter {name}, griefing code that depends on it."


@builtin_rule
@rule(
    "unbounded-storage-growth",
    title="Shared storage grows without bound",
    requires=[FactKind.SHARED_MUTABLE_COUNTER],
    severity=_severity,
    category="griefing",
    cwe_id="CWE-770",
    confidence=0.5,
)
def unbounded_storage_growth(function: FunctionUnit, facts: FunctionFacts):
    """Unrestricted functions that append to or count up shared storage."""
    return matches_for(facts, FactKind.SHARED_MUTABLE_COUNTER, _rationale)
