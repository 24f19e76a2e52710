"""
Tests for the rule engine: ordering, applicability and fault isolation.
"""
import json
import logging

from griefscan.config.settings import RuleSettings
from griefscan.core.engine import RuleEngine
from griefscan.core.extractor import FactExtractor
from griefscan.core.models import FactKind, RULE_EVALUATION_ERROR, Severity
from griefscan.core.registry import get_builtin_rules
from griefscan.core.syntax import load_contract
from griefscan.rules.base import Match, rule

from helpers import binop, call, contract, fn, for_loop, index, member, payable, state, stmt


def splitter_facts():
    body = [for_loop(binop("<", "i", "recipients.length"),
                     [stmt(call(member(payable(index("recipients", "i")), "transfer"), 1))])]
    unit = load_contract(contract("Splitter", [fn("distribute", body), fn("noop")],
                                  [state("recipients", "address[]")]))
    return FactExtractor().extract(unit)


def test_findings_follow_rule_order():
    contract_facts = splitter_facts()
    findings = RuleEngine(get_builtin_rules()).evaluate_contract(contract_facts)

    assert [f.rule_id for f in findings] == ["unbounded-loop", "push-payment", "unguarded-external-call"]
    assert all(f.contract_name == "Splitter" for f in findings)
    assert all(f.function_signature == "distribute()" for f in findings)


def test_reversed_registration_reverses_output():
    contract_facts = splitter_facts()
    findings = RuleEngine(list(reversed(get_builtin_rules()))).evaluate_contract(contract_facts)
    assert [f.rule_id for f in findings] == ["unguarded-external-call", "push-payment", "unbounded-loop"]


def test_repeated_runs_are_identical():
    engine = RuleEngine(get_builtin_rules())
    first = [f.to_dict() for f in engine.evaluate_contract(splitter_facts())]
    second = [f.to_dict() for f in engine.evaluate_contract(splitter_facts())]
    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_rules_without_required_facts_are_skipped():
    calls = []

    @rule("needs-commit", title="t", requires=[FactKind.MISSING_COMMIT_REVEAL])
    def needs_commit(function, facts):
        calls.append(function.name)
        return []

    RuleEngine([needs_commit]).evaluate_contract(splitter_facts())
    assert calls == []


def test_severity_override_applies_to_every_finding():
    settings = RuleSettings(severity_overrides={"unguarded-external-call": "critical"})
    findings = RuleEngine(get_builtin_rules(), settings).evaluate_contract(splitter_facts())

    overridden = [f for f in findings if f.rule_id == "unguarded-external-call"]
    assert [f.severity for f in overridden] == [Severity.CRITICAL]
    assert [f.severity for f in findings if f.rule_id == "unbounded-loop"] == [Severity.HIGH]


def test_failing_rule_is_isolated(caplog):
    @rule("explodes", title="Always fails", requires=[FactKind.UNGUARDED_EXTERNAL_CALL])
    def explodes(function, facts):
        yield Match(function.location, "partial")
        raise RuntimeError("boom")

    rules = [explodes, *get_builtin_rules()]
    with caplog.at_level(logging.ERROR, logger="griefscan.core.engine"):
        findings = RuleEngine(rules).evaluate_contract(splitter_facts())

    assert [f.rule_id for f in findings] == [
        RULE_EVALUATION_ERROR, "unbounded-loop", "push-payment", "unguarded-external-call",
    ]
    error = findings[0]
    assert error.severity == Severity.INFO
    assert error.is_error
    assert "explodes" in error.rationale
    assert "boom" in error.rationale
    assert error.identifiers == ("explodes",)
    assert error.remediation
    assert "explodes" in caplog.text


def test_failing_severity_function_is_isolated():
    def bad_severity(function, match):
        raise ValueError("no severity")

    @rule("bad-severity", title="t", requires=[FactKind.PUSH_FUNDS_IN_LOOP], severity=bad_severity)
    def bad(function, facts):
        return [Match(function.location, "x")]

    findings = RuleEngine([bad]).evaluate_contract(splitter_facts())
    assert len(findings) == 1
    assert findings[0].rule_id == RULE_EVALUATION_ERROR
    assert "no severity" in findings[0].rationale
