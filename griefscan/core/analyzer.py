"""
Analysis pipeline: Syntax Model -> facts -> findings -> grouped report.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..config.settings import Settings
from .aggregator import FindingAggregator
from .engine import RuleEngine
from .errors import GriefscanError
from .extractor import FactExtractor
from .models import AnalysisReport, BatchReport, ContractError
from .registry import RuleRegistry
from .syntax import ContractUnit, load_contract

logger = logging.getLogger(__name__)

ContractInput = Union[ContractUnit, Mapping[str, Any]]


class Analyzer:
    """
    Runs the full pipeline for one contract or a batch of contracts.

    Rule selection is validated up front, so an unknown rule identifier in
    the settings fails here rather than during analysis.
    """

    def __init__(self, registry: Optional[RuleRegistry] = None, settings: Optional[Settings] = None):
        self.registry = registry if registry is not None else RuleRegistry.with_builtins()
        self.settings = settings or Settings()
        self.extractor = FactExtractor(self.settings.extraction)
        self.aggregator = FindingAggregator()
        # Raises UnknownRuleIdentifier on bad configuration.
        self.registry.resolve(self.settings.rules)

    def analyze(self, contract: ContractUnit) -> AnalysisReport:
        """
        Analyze one contract with the registry's current rules.

        Raises:
            MalformedInput: if the contract is structurally invalid
        """
        return self._analyze(contract, self.registry.resolve(self.settings.rules))

    def analyze_mapping(self, data: Mapping[str, Any], file_path: Optional[str] = None) -> AnalysisReport:
        return self.analyze(load_contract(data, file_path))

    def analyze_batch(self, contracts: Iterable[ContractInput]) -> BatchReport:
        """
        Analyze several contracts concurrently.

        The registry is read-only for the duration of the batch. A contract
        that fails (malformed input or an unexpected error) is reported in
        ``errors`` and does not affect the others. Reports keep input order.
        """
        items = list(contracts)
        with self.registry.batch() as snapshot:
            rules = self.registry.resolve(self.settings.rules, snapshot)
            workers = max(1, min(self.settings.engine.max_workers, len(items) or 1))
            logger.info(f"Analyzing {len(items)} contracts with {len(rules)} rules ({workers} workers)")
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(lambda item: self._analyze_safely(item, rules), items))

        reports: List[AnalysisReport] = []
        errors: List[ContractError] = []
        for report, error in results:
            if error is not None:
                errors.append(error)
            else:
                reports.append(report)
        if errors:
            logger.warning(f"{len(errors)} of {len(items)} contracts could not be analyzed")
        return BatchReport(reports=tuple(reports), errors=tuple(errors))

    def _analyze_safely(self, item: ContractInput, rules) -> Tuple[Optional[AnalysisReport], Optional[ContractError]]:
        name = _contract_name(item)
        try:
            contract = item if isinstance(item, ContractUnit) else load_contract(item)
            return self._analyze(contract, rules), None
        except GriefscanError as e:
            logger.error(f"Skipping contract {name}: {e}")
            return None, ContractError(name, type(e).__name__, str(e))
        except Exception as e:
            logger.error(f"Unexpected error analyzing contract {name}: {e}", exc_info=True)
            return None, ContractError(name, type(e).__name__, str(e))

    def _analyze(self, contract: ContractUnit, rules: Sequence) -> AnalysisReport:
        contract_facts = self.extractor.extract(contract)
        engine = RuleEngine(rules, self.settings.rules)
        findings = engine.evaluate_contract(contract_facts)
        order = [fn.signature for fn in contract.functions]
        return self.aggregator.aggregate(contract.name, order, findings)


def _contract_name(item: Any) -> str:
    if isinstance(item, ContractUnit):
        return item.name
    if isinstance(item, Mapping) and isinstance(item.get("name"), str):
        return item["name"]
    return "<unknown>"
