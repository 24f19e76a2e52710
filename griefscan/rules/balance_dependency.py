"""
Unsafe external interaction: reward math driven by a manipulable balance query.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import matches_for, rule


@builtin_rule
@rule(
    "balance-dependency",
    title="Reward computed from balance query",
    requires=[FactKind.BALANCE_OF_DEPENDENCY],
    severity=Severity.MEDIUM,
    category="external",
    cwe_id="CWE-682",
    confidence=0.6,
    tags=["donation"],
)
def balance_dependency(function: FunctionUnit, facts: FunctionFacts):
    """Reward or share formulas that read a live balance instead of internal accounting."""
    return matches_for(
        facts,
        FactKind.BALANCE_OF_DEPENDENCY,
        lambda fact: (
            f"{fact.identifiers[0]} is computed from {', '.join(fact.identifiers[1:])}; "
            f"anyone can inflate that balance with a direct transfer and skew the result."
        ),
    )
