"""
griefscan: heuristic detection of griefing and denial-of-service patterns
in smart contracts.

Typical use::

    from griefscan import Analyzer, load_contract

    report = Analyzer().analyze(load_contract(parsed_contract))
    for finding in report.findings:
        print(finding.severity, finding.rule_id, finding.rationale)
"""

__version__ = "0.1.0"

from .config.loader import ConfigLoader, load_config
from .config.settings import EngineSettings, ExtractionSettings, RuleSettings, Settings
from .core.aggregator import FindingAggregator
from .core.analyzer import Analyzer
from .core.engine import RuleEngine
from .core.errors import (
    ConfigurationError,
    GriefscanError,
    MalformedInput,
    RegistryLockedError,
    RuleEvaluationError,
    UnknownRuleIdentifier,
)
from .core.extractor import ContractFacts, FactExtractor
from .core.models import (
    AnalysisReport,
    BatchReport,
    ContractError,
    FactKind,
    Finding,
    FunctionFacts,
    FunctionGroup,
    Severity,
    SourceLocation,
    StatementFact,
)
from .core.registry import RuleRegistry, get_builtin_rules
from .core.syntax import ContractUnit, FunctionUnit, load_contract, load_contracts
from .log import configure_logging
from .rules.base import Match, Rule, rule

__all__ = [
    "__version__",
    "Analyzer",
    "AnalysisReport",
    "BatchReport",
    "ConfigLoader",
    "ConfigurationError",
    "ContractError",
    "ContractFacts",
    "ContractUnit",
    "EngineSettings",
    "ExtractionSettings",
    "FactExtractor",
    "FactKind",
    "Finding",
    "FindingAggregator",
    "FunctionFacts",
    "FunctionGroup",
    "FunctionUnit",
    "GriefscanError",
    "MalformedInput",
    "Match",
    "RegistryLockedError",
    "Rule",
    "RuleEngine",
    "RuleEvaluationError",
    "RuleRegistry",
    "RuleSettings",
    "Settings",
    "Severity",
    "SourceLocation",
    "StatementFact",
    "UnknownRuleIdentifier",
    "configure_logging",
    "get_builtin_rules",
    "load_config",
    "load_contract",
    "load_contracts",
    "rule",
]
