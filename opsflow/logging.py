"""Centralized logging configuration for opsflow."""

import json
import logging
from typing import Any, Dict, Optional

from .config import settings


logger = logging.getLogger("opsflow")
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))


def log_event(
    workflow_id: str,
    node_id: str,
    event: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a structured workflow event.

    Args:
        workflow_id (str): Workflow identifier.
        node_id (str): Node identifier.
        event (str): Event description.
        details (dict | None): Additional event details.
    """
    payload = {
        "workflow_id": workflow_id,
        "node_id": node_id,
        "event": event,
        "details": details or {},
    }
    logger.info(json.dumps(payload, default=str))


def log_error(
    workflow_id: str,
    node_id: str,
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an error with context.

    Args:
        workflow_id (str): Workflow identifier.
        node_id (str): Node identifier where the error occurred.
        error (Exception): The exception that was raised.
        context (dict | None): Additional context about the error.
    """
    payload = {
        "workflow_id": workflow_id,
        "node_id": node_id,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }
    logger.error(json.dumps(payload, default=str))


def set_log_level(level: str) -> None:
    """Set the opsflow logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    logger.setLevel(numeric_level)
