"""
Reentrancy ordering: an external call made before the state it depends on is updated.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import Match, matches_for, rule


def _severity(function: FunctionUnit, match: Match) -> Severity:
    # A guard caps the finding at MEDIUM; it never drops below that.
    if match.get("guarded") or not match.get("value_transfer"):
        return Severity.MEDIUM
    return Severity.HIGH


def _rationale(fact) -> str:
    target, *written = fact.identifiers
    text = (
        f"{target} is called before {', '.join(written)} is updated; a re-entrant call "
        f"observes the stale value (checks-effects-interactions violated)"
    )
    if fact.get("guarded"):
        text += ", although a reentrancy guard limits the impact"
    return text + "."


@builtin_rule
@rule(
    "reentrancy",
    title="External call before state update",
    requires=[FactKind.EXTERNAL_CALL_BEFORE_STATE_WRITE],
    severity=_severity,
    category="reentrancy",
    cwe_id="CWE-841",
    confidence=0.8,
)
def reentrancy(function: FunctionUnit, facts: FunctionFacts):
    """External calls that precede writes to balance-affecting storage."""
    return matches_for(facts, FactKind.EXTERNAL_CALL_BEFORE_STATE_WRITE, _rationale)
