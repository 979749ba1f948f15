"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for tracing agent runs
driven by the execution controller, including:
- A span per run (execute or resume)
- Run start/finish records with outcome and duration
- Interrupt requests that did not settle within the grace period

Tracing is disabled unless LOGFIRE_ENABLED is true and a token is configured.
When disabled every helper is a cheap no-op.
"""

import contextlib
import logging
from typing import Any, ContextManager, Optional

import logfire

from steerable_agent.core.config import MonitoringSettings, settings

logger = logging.getLogger(__name__)

_logfire_active = False


def is_enabled() -> bool:
    return _logfire_active


def initialize_logfire(config: Optional[MonitoringSettings] = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    Args:
        config: Monitoring configuration; defaults to the environment driven settings.

    Returns:
        True when Logfire was configured, False when monitoring stays disabled.
    """
    global _logfire_active
    cfg = config or settings.monitoring

    if not cfg.enabled:
        logger.debug("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        _logfire_active = False
        return False

    if not cfg.token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        _logfire_active = False
        return False

    try:
        logfire.configure(
            token=cfg.token,
            service_name=cfg.service_name,
            environment=cfg.environment,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        _logfire_active = False
        return False

    _logfire_active = True
    logger.info(f"Logfire monitoring initialized: service={cfg.service_name}, environment={cfg.environment}")
    return True


def run_span(name: str, **attributes: Any) -> ContextManager[Any]:
    """
    Return a Logfire span for a run, or a null context when monitoring is off.

    Args:
        name: Span message template
        **attributes: Span attributes (agent id, run id, mode)
    """
    if not _logfire_active:
        return contextlib.nullcontext()
    try:
        return logfire.span(name, **attributes)
    except Exception:
        logger.debug(f"Could not open Logfire span: {name}")
        return contextlib.nullcontext()


def log_run_started(agent_id: str, run_id: str, mode: str) -> None:
    """
    Log the start of a run.

    Args:
        agent_id: The controller's agent identifier
        run_id: The run identifier
        mode: ``execute`` or ``resume``
    """
    if not _logfire_active:
        return
    try:
        logfire.info("Agent run started", agent_id=agent_id, run_id=run_id, mode=mode)
    except Exception:
        logger.debug(f"Could not log run start to Logfire: run_id={run_id}")


def log_run_finished(agent_id: str, run_id: str, state: str, duration_ms: float) -> None:
    """
    Log the end of a run.

    Args:
        agent_id: The controller's agent identifier
        run_id: The run identifier
        state: Terminal state (completed, interrupted, failed)
        duration_ms: The duration of the run in milliseconds
    """
    if not _logfire_active:
        return
    try:
        logfire.info(
            "Agent run finished",
            agent_id=agent_id,
            run_id=run_id,
            state=state,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log run finish to Logfire: run_id={run_id}")


def log_interrupt_stalled(agent_id: str, run_id: Optional[str], reason: str, waited_s: float) -> None:
    """
    Log an interrupt request whose run did not settle within the grace period.

    Args:
        agent_id: The controller's agent identifier
        run_id: The run that is still running
        reason: The interruption reason
        waited_s: Seconds waited before giving up
    """
    if not _logfire_active:
        return
    try:
        logfire.warn(
            "Interrupt did not settle within grace period",
            agent_id=agent_id,
            run_id=run_id,
            reason=reason,
            waited_s=waited_s,
        )
    except Exception:
        logger.debug(f"Could not log stalled interrupt to Logfire: run_id={run_id}")


# Initialize Logfire on module import
initialize_logfire()
