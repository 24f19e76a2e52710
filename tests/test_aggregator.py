"""
Tests for finding deduplication, grouping and ranking.
"""
from griefscan.core.aggregator import FindingAggregator
from griefscan.core.models import Finding, Severity, SourceLocation

ORDER = ["deposit(uint256)", "withdraw()", "distribute()", "sweep()"]


def finding(rule_id, signature, severity, line=1):
    return Finding(
        rule_id=rule_id,
        severity=severity,
        contract_name="Vault",
        function_name=signature.split("(")[0],
        rationale=f"{rule_id} in {signature}",
        location=SourceLocation(line, 4, "Vault.sol"),
        function_signature=signature,
    )


RAW = [
    finding("minimum-amount", "deposit(uint256)", Severity.LOW, 10),
    finding("reentrancy", "withdraw()", Severity.HIGH, 20),
    finding("unguarded-external-call", "withdraw()", Severity.LOW, 20),
    finding("reentrancy", "withdraw()", Severity.HIGH, 20),
    finding("unbounded-loop", "distribute()", Severity.HIGH, 30),
    finding("push-payment", "distribute()", Severity.HIGH, 30),
    finding("unguarded-external-call", "sweep()", Severity.LOW, 40),
]


def test_deduplicates_exact_triples():
    report = FindingAggregator().aggregate("Vault", ORDER, RAW)
    withdraw = report.for_function("withdraw()")
    assert [f.rule_id for f in withdraw] == ["reentrancy", "unguarded-external-call"]
    assert len(report.findings) == 6


def test_same_rule_at_different_locations_is_kept():
    raw = [finding("reentrancy", "withdraw()", Severity.HIGH, 20),
           finding("reentrancy", "withdraw()", Severity.HIGH, 25)]
    report = FindingAggregator().aggregate("Vault", ORDER, raw)
    assert len(report.findings) == 2


def test_groups_ranked_by_severity_then_declaration():
    report = FindingAggregator().aggregate("Vault", ORDER, RAW)

    assert [g.function_signature for g in report.groups] == [
        "withdraw()", "distribute()", "deposit(uint256)", "sweep()",
    ]
    assert [g.max_severity for g in report.groups] == [Severity.HIGH, Severity.HIGH, Severity.LOW, Severity.LOW]
    # Emission order inside a group.
    assert [f.rule_id for f in report.groups[1].findings] == ["unbounded-loop", "push-payment"]


def test_aggregation_is_idempotent():
    aggregator = FindingAggregator()
    once = aggregator.aggregate("Vault", ORDER, RAW)
    twice = aggregator.aggregate("Vault", ORDER, once.findings)

    assert twice == once
    assert aggregator.regroup(once) == once
    assert twice.to_dict() == once.to_dict()


def test_undeclared_functions_sort_last():
    raw = [finding("reentrancy", "helper()", Severity.LOW), finding("reentrancy", "sweep()", Severity.LOW)]
    report = FindingAggregator().aggregate("Vault", ORDER, raw)
    assert [g.function_signature for g in report.groups] == ["sweep()", "helper()"]


def test_report_accessors():
    report = FindingAggregator().aggregate("Vault", ORDER, RAW)

    assert report.for_function("distribute") == report.for_function("distribute()")
    assert [f.function_name for f in report.by_rule("reentrancy")] == ["withdraw"]
    counts = report.severity_counts()
    assert counts["HIGH"] == 3
    assert counts["LOW"] == 3
    assert counts["CRITICAL"] == 0

    data = report.to_dict()
    assert data["contract"] == "Vault"
    assert data["groups"][0]["signature"] == "withdraw()"
    assert data["groups"][0]["findings"][0]["location"] == {"file": "Vault.sol", "line": 20, "column": 4}


def test_empty_input():
    report = FindingAggregator().aggregate("Vault", ORDER, [])
    assert report.groups == ()
    assert report.findings == []
