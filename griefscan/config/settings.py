"""
Configuration settings for griefscan.

The analysis core accepts these models as plain data; loading them from
files and the environment lives in :mod:`griefscan.config.loader`.
"""

import logging
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.models import Severity

logger = logging.getLogger(__name__)


class RuleSettings(BaseModel):
    """Configuration for rule selection and severity overrides."""
    # None means every registered rule is enabled.
    enabled: Optional[List[str]] = None
    disabled: List[str] = Field(default_factory=list)
    severity_overrides: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def normalize_overrides(self) -> "RuleSettings":
        normalized = {}
        for rule_id, value in self.severity_overrides.items():
            try:
                normalized[rule_id] = Severity.from_string(value).name
            except ValueError:
                logger.warning(f"Invalid severity override {value!r} for {rule_id}. Ignoring.")
        self.severity_overrides = normalized
        return self

    def override_for(self, rule_id: str) -> Optional[Severity]:
        value = self.severity_overrides.get(rule_id)
        return Severity[value] if value else None


class ExtractionSettings(BaseModel):
    """Heuristic thresholds and vocabularies used by the fact extractor."""
    reward_variable_pattern: str = r"(reward|share|payout|dividend|interest|yield|earned)"
    balance_query_members: List[str] = Field(default_factory=lambda: ["balanceOf", "balance"])
    value_transfer_members: List[str] = Field(
        default_factory=lambda: ["transfer", "send", "sendValue", "safeTransfer", "safeTransferETH"]
    )
    low_level_call_members: List[str] = Field(
        default_factory=lambda: ["call", "delegatecall", "staticcall", "send"]
    )
    token_pull_members: List[str] = Field(default_factory=lambda: ["transferFrom", "safeTransferFrom"])
    reentrancy_guard_modifiers: List[str] = Field(
        default_factory=lambda: ["nonReentrant", "noReentrancy", "reentrancyGuard", "lock"]
    )
    access_control_modifiers: List[str] = Field(
        default_factory=lambda: [
            "onlyOwner", "onlyAdmin", "onlyRole", "requiresAuth",
            "restricted", "authorized", "onlyGovernance",
        ]
    )
    commit_name_pattern: str = r"^commit"
    # Guards must reject every amount <= this floor.
    minimum_amount_floor: int = 0
    # Constant loop bounds above this are treated like storage-driven bounds.
    max_constant_loop_bound: Optional[int] = None

    @field_validator("reward_variable_pattern", "commit_name_pattern")
    @classmethod
    def check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value

    @field_validator("minimum_amount_floor")
    @classmethod
    def check_floor(cls, value: int) -> int:
        if value < 0:
            raise ValueError("minimum_amount_floor must be >= 0")
        return value


class EngineSettings(BaseModel):
    """Configuration for batch execution."""
    max_workers: int = 4

    @model_validator(mode="after")
    def validate_workers(self) -> "EngineSettings":
        if self.max_workers < 1:
            logger.warning("Invalid max_workers value. Using default: 4")
            self.max_workers = 4
        return self


class Settings(BaseModel):
    """Main configuration settings."""
    rules: RuleSettings = Field(default_factory=RuleSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
