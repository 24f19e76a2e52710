"""
Push-based payments: the contract sends funds to recipients instead of letting them withdraw.
"""
from ..core.models import FactKind, FunctionFacts, Severity
from ..core.registry import builtin_rule
from ..core.syntax import FunctionUnit
from .base import Match, rule

# Recipients that can only hurt themselves by reverting.
SELF_RECIPIENTS = frozenset({"", "msg.sender", "tx.origin", "this"})


def _severity(function: FunctionUnit, match: Match) -> Severity:
    return Severity.HIGH if match.fact.kind == FactKind.PUSH_FUNDS_IN_LOOP else Severity.MEDIUM


@builtin_rule
@rule(
    "push-payment",
    title="Push payment to recipients",
    requires=[FactKind.PUSH_FUNDS_IN_LOOP, FactKind.UNGUARDED_EXTERNAL_CALL],
    severity=_severity,
    category="dos",
    cwe_id="CWE-703",
    confidence=0.7,
    tags=["auction", "pull-over-push"],
)
def push_payment(function: FunctionUnit, facts: FunctionFacts):
    """Fund transfers whose failure blocks other users."""
    for fact in facts.of_kind(FactKind.PUSH_FUNDS_IN_LOOP):
        calls = ", ".join(fact.identifiers)
        yield Match(
            fact.location,
            f"Funds are pushed with {calls} inside a loop; a single recipient that "
            f"reverts or runs out of gas blocks every payout.",
            fact.identifiers,
            fact,
        )
    for fact in facts.of_kind(FactKind.UNGUARDED_EXTERNAL_CALL):
        recipient = fact.get("recipient", "")
        if not fact.get("value_transfer") or fact.get("in_loop") or recipient in SELF_RECIPIENTS:
            continue
        yield Match(
            fact.location,
            f"Funds are pushed to {recipient}; if {recipient} is a contract that "
            f"rejects payment, {function.name} reverts for every caller.",
            fact.identifiers + (recipient,),
            fact,
        )
