"""
Core utilities and configuration for steerable-agent.

This package provides the settings model, logging configuration and the
optional Logfire monitoring integration shared by the execution core.
"""

from steerable_agent.core.config import ExecutionSettings, MonitoringSettings, Settings, settings
from steerable_agent.core.logging_config import get_logger, setup_logging

__all__ = [
    "ExecutionSettings",
    "MonitoringSettings",
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
