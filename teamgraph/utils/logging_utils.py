"""Logging utilities for teamgraph."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "teamgraph"


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = "logs",
) -> logging.Logger:
    """Setup logging configuration for teamgraph.

    Args:
        level: Console logging level (default: INFO)
        log_dir: Directory for the detailed log file; falsy disables it

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Set to DEBUG to capture all child logs
    logger.propagate = False

    logger.handlers = []

    if log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        log_file = logs_path / f"teamgraph_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        # File handler (detailed logs)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("teamgraph logging started")
    logger.info("=" * 80)

    return logger


def truncate(text: str, limit: int = 500) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "... (truncated)"


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.info(f"Routing decision from {from_node}: → {decision}")
    if reason:
        logger.info(f"  → Reason: {reason}")


def log_decision_prompt(logger: logging.Logger, team: str, system_prompt: str, user_prompt: str, limit: int = 500) -> None:
    """Log the prompt pair sent to the supervisor model (truncated)."""
    logger.debug(f"[{team}] Supervisor system prompt:\n{truncate(system_prompt, limit)}")
    logger.debug(f"[{team}] Supervisor user prompt:\n{truncate(user_prompt, limit)}")


def log_model_retry(logger: logging.Logger, team: str, attempt: int, max_attempts: int, error: Exception, delay_s: float) -> None:
    """Log a failed model attempt that will be retried."""
    logger.warning(
        f"[{team}] Supervisor model call failed (attempt {attempt}/{max_attempts}): "
        f"{type(error).__name__}: {error}; retrying in {delay_s:.2f}s"
    )


def log_trace_summary(logger: logging.Logger, trace) -> None:
    """Log a one-block summary of a finished trace."""
    logger.info(f"Team [{trace.team_name}] finished:")
    logger.info(f"  - route: {trace.route}")
    logger.info(f"  - iterations: {trace.iteration_count}/{trace.max_iterations}")
    logger.info(f"  - steps: {len(trace.steps)}")
    logger.info(f"  - final answer: {truncate(trace.final_answer or '', 100)}")
    if trace.error:
        logger.info(f"  - error: {trace.error}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {str(error)}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)
