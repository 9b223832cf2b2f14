"""Decision step: ask the supervisor model who works next and commit the route."""

from __future__ import annotations

import logging
import time
from typing import Optional

from teamgraph.constants import ID_BIDDING, ID_END, ID_SUPERVISOR, ID_SYSTEM
from teamgraph.errors import ModelInvocationError, is_parameter_error, is_retryable
from teamgraph.prompts import build_supervisor_system_prompt, build_supervisor_user_prompt
from teamgraph.tasks.base import TaskComponent
from teamgraph.tasks.decision_parser import parse_decision
from teamgraph.trace import TeamTrace
from teamgraph.utils.logging_utils import log_decision_prompt, log_model_retry, log_routing_decision

LOGGER = logging.getLogger(__name__)


class SupervisorTask(TaskComponent):
    """One decision cycle per visit.

    Order: protocol ``should_run`` gate, interceptor gate, termination guard,
    prompt assembly, model call with linear backoff, route resolution
    (protocol first, then generic parsing), protocol veto, commit.
    """

    name = ID_SUPERVISOR

    def __init__(self, config) -> None:
        self.config = config

    def run(self, trace: TeamTrace) -> None:
        config = self.config
        protocol = config.protocol

        if trace.cancelled:
            trace.terminate(f"Cancelled: {trace.cancel_reason}")
            return

        if not protocol.should_run(trace):
            LOGGER.debug(f"[{config.name}] Protocol {protocol.name} skipped the decision step")
            return

        veto = config.interceptors.gate(trace)
        if veto is not None:
            trace.terminate(
                f"[Skipped] Supervisor decision was intercepted by {type(veto).__name__}",
                source=ID_SUPERVISOR,
            )
            return

        termination = config.guard.check(trace, config.finish_marker)
        if termination is not None:
            if termination.final_answer and trace.final_answer is None:
                trace.final_answer = termination.final_answer
            trace.terminate(f"[Terminated] {termination.reason}")
            return

        self._dispatch(trace)

    # ========== Decision cycle ==========

    def _dispatch(self, trace: TeamTrace) -> None:
        config = self.config
        protocol = config.protocol

        system_prompt = build_supervisor_system_prompt(
            agents=config.agents.values(),
            task=trace.task,
            finish_marker=config.finish_marker,
            instruction=protocol.prepare_instruction(trace),
            role=config.supervisor_role,
        )
        user_prompt = build_supervisor_user_prompt(
            context=protocol.prepare_context(trace),
            history=trace.formatted_history(window=protocol.history_window(trace)),
            iteration=trace.iteration_count + 1,
            finish_marker=config.finish_marker,
        )
        log_decision_prompt(LOGGER, config.name, system_prompt, user_prompt, config.log_prompt_max_length)

        config.interceptors.on_model_start(trace, system_prompt, user_prompt)
        try:
            decision = self._call_with_retry(system_prompt, user_prompt)
        except ModelInvocationError:
            raise
        except (TypeError, ValueError) as exc:
            # Parameter-shape errors become an observation instead of a retry
            decision = f"Error: {exc}"
            trace.last_decision = decision
            trace.iteration_count += 1
            trace.terminate(f"[Error] Supervisor model rejected the request parameters: {exc}")
            return

        config.interceptors.on_model_end(trace, decision)
        decision = (decision or "").strip()
        trace.last_decision = decision

        route, diagnostic = self._resolve(trace, decision)
        config.interceptors.on_decision(trace, decision, route)

        if route != ID_END and not protocol.accepts_route(trace, decision, route):
            LOGGER.warning(f"[{config.name}] Routing to '{route}' denied by protocol {protocol.name}")
            diagnostic = f"[Terminated] Supervisor routing denied by protocol: {route}"
            route = ID_END

        self._commit(trace, decision, route, diagnostic)

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        config = self.config
        attempts = max(1, config.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                return config.model.complete(system_prompt, user_prompt)
            except Exception as exc:
                if is_parameter_error(exc):
                    raise
                if not is_retryable(exc) or attempt == attempts:
                    LOGGER.error(f"[{config.name}] Supervisor failed after {attempt} attempt(s): {exc}")
                    raise ModelInvocationError(
                        f"Supervisor model call failed after {attempt} attempt(s): {exc}",
                        user_message="The supervisor model is unavailable.",
                    ) from exc
                delay_s = config.retry_delay_ms * attempt / 1000.0
                log_model_retry(LOGGER, config.name, attempt, attempts, exc, delay_s)
                time.sleep(delay_s)
        raise ModelInvocationError("Supervisor model call failed")

    def _resolve(self, trace: TeamTrace, decision: str):
        config = self.config
        route: Optional[str] = config.protocol.resolve_route(trace, decision) if decision else None
        if route is not None and route not in config.agents and route not in (ID_END, ID_BIDDING):
            LOGGER.warning(f"[{config.name}] Protocol proposed unknown route '{route}', falling back to parsing")
            route = None
        if route is not None:
            return route, None

        parsed = parse_decision(decision, config.agents, config.finish_marker, trace.last_agent_content())
        if parsed.final_answer is not None:
            trace.final_answer = parsed.final_answer
        return parsed.route, parsed.diagnostic

    def _commit(self, trace: TeamTrace, decision: str, route: str, diagnostic: Optional[str]) -> None:
        trace.commit_route(route)
        if route != ID_END:
            self.config.protocol.on_routed(trace, route)

        trace.add_step(ID_SUPERVISOR, decision or "(empty decision)")
        if diagnostic:
            trace.add_step(ID_SYSTEM, diagnostic)
        trace.iteration_count += 1
        log_routing_decision(LOGGER, f"{self.config.name}/{ID_SUPERVISOR}", route, diagnostic or "")


__all__ = ["SupervisorTask"]
