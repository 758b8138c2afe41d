"""
Structured logging for Backend Veritas.

JSON logs with timestamp, identity, event_type. Use get_logger() in all agent modules.
"""

from backend_veritas.logging.logger import bind_identity, configure_logging, get_logger, short_id

__all__ = ["bind_identity", "configure_logging", "get_logger", "short_id"]
