"""Tests for rule-based approval of agent outputs."""

from unittest.mock import Mock

import pytest
import yaml

from teamgraph.intercept import ApprovalChecker, ApprovalDecision, HumanApprovalInterceptor
from teamgraph.trace import TeamTrace


@pytest.fixture
def approval_config(tmp_path):
    """Write an approval rules file with global and per-agent rules."""
    config = {
        "global": {
            "risk_patterns": {
                "critical": {
                    "patterns": [r"password\s*[=:]\s*\S+", r"api[_-]?key\s*[=:]\s*\S+"],
                    "action": "require_approval",
                    "reason": "Sensitive credentials in output",
                },
                "high": {
                    "patterns": [r"DROP\s+(TABLE|DATABASE)"],
                    "action": "require_approval",
                    "reason": "Destructive SQL",
                },
            }
        },
        "agents": {
            "Deployer": {"always": True},
            "Coder": {
                "patterns": {"high": [r"rm\s+-rf"], "low": [r"print\("]},
                "actions": {"low": "allow"},
            },
            "Intern": {"enabled": False, "always": True},
        },
    }
    path = tmp_path / "approval.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


@pytest.fixture
def checker(approval_config):
    return ApprovalChecker(config_path=approval_config)


class TestApprovalChecker:
    def test_global_critical_pattern(self, checker):
        decision = checker.check("Writer", "connect with password=hunter2")
        assert decision.needs_approval
        assert decision.risk_level == "critical"
        assert decision.reason == "Sensitive credentials in output"

    def test_global_patterns_apply_to_every_agent(self, checker):
        assert checker.check("Anyone", "DROP TABLE users;").risk_level == "high"

    def test_agent_always_flag(self, checker):
        decision = checker.check("Deployer", "deploying v1.2")
        assert decision.needs_approval
        assert "always requires review" in decision.reason

    def test_agent_pattern(self, checker):
        decision = checker.check("Coder", "cleanup: rm -rf build/")
        assert decision.needs_approval
        assert decision.risk_level == "high"

    def test_allowed_action_is_not_flagged(self, checker):
        assert not checker.check("Coder", "print('hello')").needs_approval

    def test_disabled_agent(self, checker):
        assert not checker.check("Intern", "anything").needs_approval

    def test_unknown_agent_safe_output(self, checker):
        assert not checker.check("Writer", "a harmless paragraph").needs_approval

    def test_custom_checker_has_priority(self, checker):
        checker.register_checker("Deployer", lambda content: ApprovalDecision(False))
        assert not checker.check("Deployer", "deploying v1.2").needs_approval

    def test_missing_config_file(self, tmp_path):
        checker = ApprovalChecker(config_path=tmp_path / "missing.yaml")
        assert checker.rules == {}
        assert not checker.check("Coder", "rm -rf /").needs_approval

    def test_invalid_yaml_is_ignored(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("global: [unclosed", encoding="utf-8")
        assert ApprovalChecker(config_path=path).rules == {}


class TestHumanApprovalInterceptor:
    def _trace(self, agent, content):
        trace = TeamTrace("ops", "ship it")
        trace.add_step("supervisor", agent)
        trace.add_step(agent, content, is_agent=True)
        return trace

    def test_safe_output_passes_without_asking(self, checker):
        approver = Mock(return_value=False)
        interceptor = HumanApprovalInterceptor(checker, approver)
        assert interceptor.should_continue(self._trace("Writer", "release notes"))
        approver.assert_not_called()

    def test_approved_output_continues(self, checker):
        approver = Mock(return_value=True)
        interceptor = HumanApprovalInterceptor(checker, approver)
        trace = self._trace("Deployer", "deploying v1.2")
        assert interceptor.should_continue(trace)
        request = approver.call_args[0][0]
        assert request.team == "ops"
        assert request.agent == "Deployer"
        assert request.content == "deploying v1.2"
        assert request.decision.needs_approval

    def test_each_output_reviewed_once(self, checker):
        approver = Mock(return_value=True)
        interceptor = HumanApprovalInterceptor(checker, approver)
        trace = self._trace("Deployer", "deploying v1.2")
        interceptor.should_continue(trace)
        trace.add_step("supervisor", "Writer")
        interceptor.should_continue(trace)
        assert approver.call_count == 1

    def test_rejection_leaves_step(self, checker):
        interceptor = HumanApprovalInterceptor(checker, Mock(return_value=False))
        trace = self._trace("Coder", "rm -rf /tmp/cache")
        assert interceptor.should_continue(trace) is False
        assert trace.steps[-1].source == "approval"
        assert trace.steps[-1].content.startswith("Output of Coder rejected")

    def test_no_approver_rejects_flagged_output(self, checker):
        interceptor = HumanApprovalInterceptor(checker)
        assert interceptor.should_continue(self._trace("Deployer", "deploying")) is False
