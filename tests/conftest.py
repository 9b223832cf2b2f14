"""Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from teamgraph.agents import FunctionAgent  # noqa: E402
from teamgraph.persistence import InMemorySession  # noqa: E402
from teamgraph.runtime import EngineOptions, build  # noqa: E402


class ScriptedModel:
    """LanguageModel stub replaying canned responses.

    Exception instances in ``responses`` are raised instead of returned. Once
    the script runs out, the last response is repeated.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self._last = ""

    def complete(self, system_prompt, user_prompt, prior_messages=()):
        self.calls.append((system_prompt, user_prompt))
        item = self.responses.pop(0) if self.responses else self._last
        if isinstance(item, BaseException):
            raise item
        self._last = item
        return item


def echo_agent(name, description="", outputs=None, estimator=None):
    """FunctionAgent returning ``outputs`` in order, then ``"<name> output #n"``."""
    outputs = list(outputs or [])
    calls = []

    def handler(task, trace):
        calls.append(task)
        if outputs:
            return outputs.pop(0)
        return f"{name} output #{len(calls)}"

    agent = FunctionAgent(name, handler, description or f"{name} expert", estimator=estimator)
    agent.calls = calls
    return agent


@pytest.fixture
def scripted_model():
    return ScriptedModel


@pytest.fixture
def make_agent():
    return echo_agent


@pytest.fixture
def coder():
    return echo_agent("Coder", "Writes Python code")


@pytest.fixture
def reviewer():
    return echo_agent("Reviewer", "Reviews code for defects")


@pytest.fixture
def session():
    return InMemorySession("test-session")


@pytest.fixture
def make_engine():
    """Build a team with a scripted supervisor and test-friendly defaults."""

    def _make(agents, protocol="hierarchical", responses=(), graph_spec=None, **options):
        options.setdefault("name", "dev")
        options.setdefault("retry_delay_ms", 0)
        interceptors = options.pop("interceptors", ())
        model = options.pop("model", None) or ScriptedModel(responses)
        engine = build(
            graph_spec,
            agents,
            protocol,
            EngineOptions(**options),
            model=model,
            interceptors=interceptors,
        )
        return engine, model

    return _make
