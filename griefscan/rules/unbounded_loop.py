"""
Gas-limit denial of service: loops bounded by storage that anyone can grow.
"""
from ..core.models import FactKind, FunctionFacts, Severity, StatementFact
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import Match, matches_for, rule


def _severity(function: FunctionUnit, match: Match) -> Severity:
    # Payout loops lock funds once they stop fitting in a block.
    return Severity.HIGH if match.get("pays_out") else Severity.MEDIUM


def _rationale(fact: StatementFact) -> str:
    collection = fact.identifiers[0] if fact.identifiers else "storage"
    if fact.get("reason") == "constant-exceeds-limit":
        text = f"Loop runs {collection} iterations, above the configured bound"
    else:
        text = f"Loop bound {fact.get('bound') or collection} grows with {collection} in storage"
    if fact.get("pays_out"):
        text += " and every iteration transfers funds"
    return text + "; once it outgrows the block gas limit the function can no longer complete."


@builtin_rule
@rule(
    "unbounded-loop",
    title="Loop over unbounded storage collection",
    requires=[FactKind.LOOP_OVER_UNBOUNDED_COLLECTION],
    severity=_severity,
    category="dos",
    cwe_id="CWE-400",
    confidence=0.7,
    tags=["gas-limit"],
)
def unbounded_loop(function: FunctionUnit, facts: FunctionFacts):
    """Loops whose iteration count is read from mutable storage."""
    return matches_for(facts, FactKind.LOOP_OVER_UNBOUNDED_COLLECTION, _rationale)
