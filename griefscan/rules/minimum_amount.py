"""
Low-decimal rounding and dust griefing: amounts accepted without a minimum.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import matches_for, rule


@builtin_rule
@rule(
    "minimum-amount",
    title="Missing minimum amount check",
    requires=[FactKind.NO_MINIMUM_AMOUNT_CHECK],
    severity=Severity.LOW,
    category="arithmetic",
    cwe_id="CWE-1339",
    confidence=0.4,
    tags=["rounding", "dust"],
)
def minimum_amount(function: FunctionUnit, facts: FunctionFacts):
    """Fund-moving entry points that accept arbitrarily small amounts."""
    return matches_for(
        facts,
        FactKind.NO_MINIMUM_AMOUNT_CHECK,
        lambda fact: (
            f"{function.name} moves funds but never requires {fact.identifiers[0]} to exceed "
            f"a minimum; dust amounts can round fees or shares to zero and make spam cheap."
        ),
    )
