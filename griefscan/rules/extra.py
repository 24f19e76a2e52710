"""
Opt-in rules that are not part of the built-in set.

Register them explicitly::

    registry = RuleRegistry.with_builtins()
    registry.register(front_running)
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.syntax import FunctionUnit
from .base import matches_for, rule


@rule(
    "front-running",
    title="Secret submitted without commit-reveal",
    requires=[FactKind.MISSING_COMMIT_REVEAL],
    severity=Severity.MEDIUM,
    category="front-running",
    cwe_id="CWE-362",
    confidence=0.5,
)
def front_running(function: FunctionUnit, facts: FunctionFacts):
    """Public functions that check a plaintext secret against a stored hash."""
    return matches_for(
        facts,
        FactKind.MISSING_COMMIT_REVEAL,
        lambda fact: (
            f"{function.name} checks the caller-supplied {fact.identifiers[0]} against "
            f"{fact.identifiers[1]} in the clear; an observer can copy it from the "
            f"mempool and submit first."
        ),
    )
