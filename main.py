#!/usr/bin/env python3
"""teamgraph CLI entrypoint

Runs a team described in a YAML file against one task.

Usage:
    # New task
    python main.py --team config/dev_team.yaml --task "Write a CSV parser with tests"

    # Override the protocol declared in the file
    python main.py --team config/dev_team.yaml --protocol contract_net --task "..."

    # Resume a stored run (needs SESSION_DB_PATH or --db)
    python main.py --team config/dev_team.yaml --session 3f2a --db data/sessions.db

    # List stored sessions
    python main.py --db data/sessions.db --list-sessions
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from teamgraph.agents import ChatAgent
from teamgraph.config import Settings, get_settings
from teamgraph.errors import TeamGraphError
from teamgraph.intercept import (
    ApprovalChecker,
    ApprovalRequest,
    AuditInterceptor,
    HumanApprovalInterceptor,
    LoopingTeamInterceptor,
)
from teamgraph.persistence import SessionStore, open_session
from teamgraph.runtime import EngineOptions, TeamEngine, build, build_model_resolver
from teamgraph.utils import log_error, setup_logging

LOGGER = logging.getLogger("teamgraph.cli")

INTERCEPTORS = ("audit", "looping", "approval")


def load_team_config(path: str) -> Dict[str, Any]:
    """Read a team definition file.

    Raises:
        TeamGraphError: Missing file, invalid YAML or no agents declared.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise TeamGraphError(f"Team file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TeamGraphError(f"Invalid team file {config_path}: {e}") from e

    if not config.get("agents"):
        raise TeamGraphError(f"Team file {config_path} declares no agents")
    return config


def console_approver(request: ApprovalRequest) -> bool:
    print(f"\n[approval] {request.agent} ({request.decision.risk_level}): {request.decision.reason}")
    print(request.content)
    answer = input("Approve this output? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def build_interceptors(names: List[str], config: Dict[str, Any], approver: Optional[Callable] = None) -> list:
    interceptors = []
    for name in names:
        if name == "audit":
            interceptors.append(AuditInterceptor())
        elif name == "looping":
            interceptors.append(LoopingTeamInterceptor())
        elif name == "approval":
            checker = ApprovalChecker(config_path=config.get("approval_rules"))
            interceptors.append(HumanApprovalInterceptor(checker, approver or console_approver))
        else:
            raise TeamGraphError(f"Unknown interceptor '{name}'. Available: {', '.join(INTERCEPTORS)}")
    return interceptors


def build_team(
    config: Dict[str, Any],
    *,
    protocol: Optional[str] = None,
    resolver: Optional[Callable[[str], Any]] = None,
    settings: Optional[Settings] = None,
    approver: Optional[Callable] = None,
) -> TeamEngine:
    """Assemble a ``TeamEngine`` from a loaded team definition.

    Every agent and the supervisor get their chat model from ``resolver``
    (default: ChatOpenAI clients configured by ``MODEL_*`` settings).
    """
    settings = settings or get_settings()
    resolver = resolver or build_model_resolver(settings)

    agents = []
    for entry in config["agents"]:
        model_id = entry.get("model") or settings.models.model_id
        agents.append(
            ChatAgent(
                entry["name"],
                entry.get("description", ""),
                resolver(model_id),
                system_prompt=entry.get("system_prompt"),
            )
        )

    options = dict(config.get("options") or {})
    options.setdefault("name", config.get("name", "team"))
    options.setdefault("description", config.get("description", ""))

    supervisor_model = resolver(config.get("supervisor_model") or settings.models.model_id)
    return build(
        None,
        agents,
        protocol or config.get("protocol", "hierarchical"),
        EngineOptions.from_dict(options),
        model=supervisor_model,
        interceptors=build_interceptors(config.get("interceptors") or [], config, approver),
        settings=settings,
    )


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="teamgraph - run a multi-agent team on one task",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--team", type=str, help="Team definition file (YAML)")
    parser.add_argument("--task", type=str, help="Task text; omit to resume --session")
    parser.add_argument("--protocol", type=str, help="Override the protocol declared in the team file")
    parser.add_argument("--session", type=str, help="Session id (new or stored)")
    parser.add_argument("--db", type=str, help="SQLite session database (default: SESSION_DB_PATH)")
    parser.add_argument("--list-sessions", action="store_true", help="List stored sessions and exit")
    parser.add_argument("--show-trace", action="store_true", help="Print every step after the run")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    observability = settings.observability
    setup_logging(
        level=getattr(logging, observability.log_level.upper(), logging.INFO),
        log_dir=observability.log_dir,
    )

    db_path = args.db if args.db is not None else observability.session_db_path
    if args.list_sessions:
        if not db_path:
            print("No session database configured (use --db or SESSION_DB_PATH).")
            return 1
        for session_id, count, updated_at in SessionStore(db_path).list_sessions():
            print(f"{session_id}  values={count}  updated={updated_at}")
        return 0

    if not args.team:
        print("--team is required")
        return 1

    try:
        engine = build_team(load_team_config(args.team), protocol=args.protocol, settings=settings)
        session = open_session(args.session, db_path=db_path)
        print(f"Team '{engine.name}' ({engine.config.protocol.name}), session {session.session_id}")
        answer, trace = engine.run(args.task, session)
    except TeamGraphError as e:
        log_error(LOGGER, e, context="teamgraph CLI run")
        print(f"Error: {e.user_message}")
        return 1

    if args.show_trace:
        for step in trace.current_turn_steps():
            print(f"[{step.source}] {step.content}")
    print(f"\nAnswer> {answer or '(no answer)'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
