"""
Tests for the packaged remediation table.
"""
from griefscan.core.models import RULE_EVALUATION_ERROR
from griefscan.core.registry import get_builtin_rules
from griefscan.rules.extra import front_running
from griefscan.rules.remediation import load_remediation_table, remediation_for


def test_every_rule_has_remediation_text():
    table = load_remediation_table()
    for rule in [*get_builtin_rules(), front_running]:
        assert rule.remediation_key in table, rule.rule_id
        summary, *snippets = table[rule.remediation_key]
        assert summary
        assert snippets, rule.rule_id


def test_summary_comes_first():
    text = remediation_for("push-payment")
    assert "withdraw" in text[0]
    assert "pendingReturns" in text[1]


def test_error_entry_has_no_snippets():
    assert len(remediation_for(RULE_EVALUATION_ERROR)) == 1


def test_unknown_key():
    assert remediation_for("no-such-rule") == ()


def test_table_is_cached():
    assert load_remediation_table() is load_remediation_table()
