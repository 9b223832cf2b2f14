"""Human approval gate for agent outputs before the next decision."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from teamgraph.intercept.base import TeamInterceptor
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_REVIEWED_STEP = "approval_reviewed_step"

RISK_LEVELS_ORDER = ["critical", "high", "medium", "low"]


@dataclass
class ApprovalDecision:
    """Outcome of the rule check for one agent output."""

    needs_approval: bool
    reason: str = ""
    risk_level: str = "low"  # low, medium, high, critical


@dataclass(frozen=True)
class ApprovalRequest:
    team: str
    agent: str
    content: str
    decision: ApprovalDecision


Approver = Callable[[ApprovalRequest], bool]


class ApprovalChecker:
    """Decides whether an agent's output needs human review.

    Three rule layers, highest priority first:
    1. Per-agent custom checkers (code)
    2. Global risk patterns (apply to every agent)
    3. Per-agent YAML rules (``always`` flag or risk patterns)

    YAML layout::

        global:
          risk_patterns:
            critical:
              patterns: ["DROP\\s+TABLE"]
              reason: "Destructive SQL"
        agents:
          Deployer:
            always: true
          Coder:
            patterns:
              high: ["rm\\s+-rf"]
    """

    def __init__(self, config_path: Optional[Path] = None, rules: Optional[Dict[str, Any]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.rules = rules if rules is not None else self._load_config()
        self.custom_checkers: Dict[str, Callable[[str], ApprovalDecision]] = {}
        self.global_patterns = self._load_global_patterns()

    def _load_config(self) -> dict:
        if not self.config_path or not self.config_path.exists():
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            LOGGER.warning(f"Failed to load approval config {self.config_path}: {e}")
            return {}

    def _load_global_patterns(self) -> Dict[str, Any]:
        risk_patterns = self.rules.get("global", {}).get("risk_patterns", {})
        patterns_by_level = {}
        for level, pattern_config in risk_patterns.items():
            if isinstance(pattern_config, dict):
                patterns_by_level[level] = {
                    "patterns": pattern_config.get("patterns", []),
                    "action": pattern_config.get("action", "require_approval"),
                    "reason": pattern_config.get("reason", f"Matched global {level} risk pattern"),
                }
        return patterns_by_level

    def register_checker(self, agent_name: str, checker: Callable[[str], ApprovalDecision]) -> None:
        self.custom_checkers[agent_name] = checker

    def check(self, agent_name: str, content: str) -> ApprovalDecision:
        if agent_name in self.custom_checkers:
            return self.custom_checkers[agent_name](content)

        decision = self._check_global_patterns(content)
        if decision.needs_approval:
            return decision

        if agent_name in self.rules.get("agents", {}):
            return self._check_agent_rules(agent_name, content)

        return ApprovalDecision(needs_approval=False)

    def _check_global_patterns(self, content: str) -> ApprovalDecision:
        for risk_level in RISK_LEVELS_ORDER:
            config = self.global_patterns.get(risk_level)
            if not config or config["action"] != "require_approval":
                continue
            for pattern in config["patterns"]:
                if re.search(pattern, content, re.IGNORECASE):
                    return ApprovalDecision(True, reason=config["reason"], risk_level=risk_level)
        return ApprovalDecision(needs_approval=False)

    def _check_agent_rules(self, agent_name: str, content: str) -> ApprovalDecision:
        agent_config = self.rules["agents"][agent_name] or {}
        if not agent_config.get("enabled", True):
            return ApprovalDecision(needs_approval=False)
        if agent_config.get("always"):
            return ApprovalDecision(True, reason=f"Output of {agent_name} always requires review", risk_level="medium")

        for risk_level, pattern_list in agent_config.get("patterns", {}).items():
            action = agent_config.get("actions", {}).get(risk_level, "require_approval")
            if action != "require_approval":
                continue
            for pattern in pattern_list:
                if re.search(pattern, content, re.IGNORECASE):
                    return ApprovalDecision(True, reason=f"Matched {risk_level} risk pattern: {pattern}", risk_level=risk_level)
        return ApprovalDecision(needs_approval=False)


class HumanApprovalInterceptor(TeamInterceptor):
    """Pre-decision gate: asks ``approver`` before the team acts on a risky output.

    Without an approver every flagged output is rejected.
    """

    def __init__(self, checker: Optional[ApprovalChecker] = None, approver: Optional[Approver] = None) -> None:
        self.checker = checker or ApprovalChecker()
        self.approver = approver

    def should_continue(self, trace: TeamTrace) -> bool:
        steps = trace.steps
        reviewed = trace.get_scratch(KEY_REVIEWED_STEP, trace.turn_start - 1)
        index = len(steps) - 1
        while index > reviewed and not steps[index].is_agent:
            index -= 1
        if index <= reviewed:
            return True

        step = steps[index]
        trace.set_scratch(KEY_REVIEWED_STEP, len(steps) - 1)
        decision = self.checker.check(step.source, step.content)
        if not decision.needs_approval:
            return True

        request = ApprovalRequest(team=trace.team_name, agent=step.source, content=step.content, decision=decision)
        LOGGER.info(f"Approval required for output of '{step.source}' ({decision.risk_level}): {decision.reason}")
        approved = bool(self.approver(request)) if self.approver else False
        LOGGER.info(f"Approval for '{step.source}': {'granted' if approved else 'rejected'}")
        if not approved:
            trace.add_step("approval", f"Output of {step.source} rejected: {decision.reason}")
        return approved


__all__ = ["ApprovalChecker", "ApprovalDecision", "ApprovalRequest", "HumanApprovalInterceptor"]
