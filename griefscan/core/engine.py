"""
Rule evaluation over extracted facts.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..config.settings import RuleSettings
from ..rules.base import Rule
from ..rules.remediation import remediation_for
from .errors import RuleEvaluationError
from .extractor import ContractFacts
from .models import RULE_EVALUATION_ERROR, Finding, FunctionFacts, Severity
from .syntax import FunctionUnit

logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Applies an ordered set of rules to each function's facts.

    Findings come out in rule order, then in the order each rule yields
    them. A rule that raises produces one informational finding and the
    remaining rules still run.
    """

    def __init__(self, rules: Sequence[Rule], rule_settings: Optional[RuleSettings] = None):
        self.rules = tuple(rules)
        self.rule_settings = rule_settings or RuleSettings()

    def evaluate(self, contract_name: str, function: FunctionUnit, facts: FunctionFacts) -> List[Finding]:
        """Run every applicable rule against one function."""
        findings: List[Finding] = []
        kinds = facts.kinds
        for rule in self.rules:
            if not rule.applies_to(kinds):
                continue
            try:
                findings.extend(self._apply(rule, contract_name, function, facts))
            except Exception as e:
                error = RuleEvaluationError(rule.rule_id, function.signature, e)
                logger.error(str(error), exc_info=True)
                findings.append(self._error_finding(rule, contract_name, function, error))
        return findings

    def evaluate_contract(self, contract_facts: ContractFacts) -> List[Finding]:
        contract_name = contract_facts.contract.name
        findings: List[Finding] = []
        for function, facts in contract_facts.items():
            findings.extend(self.evaluate(contract_name, function, facts))
        logger.debug(f"{len(findings)} findings for {contract_name}")
        return findings

    def _apply(self, rule: Rule, contract_name: str, function: FunctionUnit, facts: FunctionFacts) -> Iterable[Finding]:
        # Materialize first so a failure halfway through yields no partial output.
        matches = list(rule.match(function, facts))
        override = self.rule_settings.override_for(rule.rule_id)
        remediation = remediation_for(rule.remediation_key)
        return [
            Finding(
                rule_id=rule.rule_id,
                severity=override or rule.severity_for(function, match),
                contract_name=contract_name,
                function_name=function.name,
                rationale=match.rationale,
                location=match.location,
                title=rule.title,
                remediation_key=rule.remediation_key,
                remediation=remediation,
                identifiers=tuple(match.identifiers),
                confidence=rule.confidence,
                category=rule.category,
                cwe_id=rule.cwe_id,
                function_signature=function.signature,
            )
            for match in matches
        ]

    def _error_finding(self, rule: Rule, contract_name: str, function: FunctionUnit, error: RuleEvaluationError) -> Finding:
        return Finding(
            rule_id=RULE_EVALUATION_ERROR,
            severity=Severity.INFO,
            contract_name=contract_name,
            function_name=function.name,
            rationale=str(error),
            location=function.location,
            title=f"Rule {rule.rule_id} failed",
            remediation_key=RULE_EVALUATION_ERROR,
            remediation=remediation_for(RULE_EVALUATION_ERROR),
            identifiers=(rule.rule_id,),
            confidence=0.0,
            category="internal",
            function_signature=function.signature,
        )
