"""
Tests for the analysis pipeline and batch execution.
"""
import pytest

from griefscan.config.settings import EngineSettings, RuleSettings, Settings
from griefscan.core.analyzer import Analyzer
from griefscan.core.errors import MalformedInput, RegistryLockedError
from griefscan.core.models import FactKind, Severity
from griefscan.core.registry import RuleRegistry
from griefscan.core.syntax import load_contract
from griefscan.rules.base import Match, rule

from helpers import binop, call, contract, fn, for_loop, index, member, payable, state, stmt


def splitter(name="Splitter"):
    body = [for_loop(binop("<", "i", "recipients.length"),
                     [stmt(call(member(payable(index("recipients", "i")), "transfer"), 1))])]
    return contract(name, [fn("noop"), fn("distribute", body)], [state("recipients", "address[]")])


def auction(name="Auction"):
    bid = fn("bid", [stmt(call(member(payable("highestBidder"), "transfer"), "highestBid"))], mutability="payable")
    return contract(name, [bid], [state("highestBidder", "address"), state("highestBid", "uint256")])


def test_analyze_contract_unit():
    report = Analyzer().analyze(load_contract(splitter()))
    assert report.contract_name == "Splitter"
    assert [g.function_signature for g in report.groups] == ["distribute()"]
    assert report.groups[0].max_severity == Severity.HIGH


def test_analyze_malformed_mapping_raises():
    with pytest.raises(MalformedInput):
        Analyzer().analyze_mapping({"name": "Broken", "functions": [{"name": ""}]})


def test_disabled_rules_are_not_evaluated():
    settings = Settings(rules=RuleSettings(disabled=["category:dos"]))
    report = Analyzer(settings=settings).analyze_mapping(splitter())
    assert [f.rule_id for f in report.findings] == ["unguarded-external-call"]


def test_batch_isolates_malformed_contracts():
    broken = {"name": "Broken", "functions": [{"name": "f", "body": [{"node": "Teleport"}]}]}
    settings = Settings(engine=EngineSettings(max_workers=2))

    batch = Analyzer(settings=settings).analyze_batch(
        [splitter(), broken, load_contract(auction()), splitter("Splitter2")]
    )

    assert [r.contract_name for r in batch.reports] == ["Splitter", "Auction", "Splitter2"]
    assert len(batch.errors) == 1
    error = batch.errors[0]
    assert error.contract_name == "Broken"
    assert error.error_type == "MalformedInput"
    assert "Teleport" in error.message
    # Errors never appear among findings.
    assert all(not f.is_error for f in batch.findings)
    assert batch.report_for("Auction").by_rule("push-payment")
    assert batch.report_for("Broken") is None
    assert batch.to_dict()["errors"][0]["contract"] == "Broken"


def test_batch_matches_single_analysis():
    analyzer = Analyzer()
    batch = analyzer.analyze_batch([splitter(), auction()])
    assert batch.reports[0] == analyzer.analyze_mapping(splitter())
    assert batch.reports[1] == analyzer.analyze_mapping(auction())


def test_empty_batch():
    batch = Analyzer().analyze_batch([])
    assert batch.reports == ()
    assert batch.errors == ()


def test_registration_during_batch_is_rejected():
    registry = RuleRegistry.with_builtins()
    attempts = []

    @rule("late", title="Late rule", requires=[FactKind.UNGUARDED_EXTERNAL_CALL])
    def late(function, facts):
        return []

    @rule("registers-late", title="Registers during analysis", requires=[FactKind.UNGUARDED_EXTERNAL_CALL])
    def registers_late(function, facts):
        try:
            registry.register(late)
        except RegistryLockedError as e:
            attempts.append(e)
        return [Match(function.location, "ran")]

    registry.register(registers_late)
    batch = Analyzer(registry=registry).analyze_batch([splitter()])

    assert len(attempts) == 1
    assert "late" not in registry
    assert batch.reports[0].by_rule("registers-late")
    # Unlocked again once the batch completes.
    registry.register(late)
    assert "late" in registry
