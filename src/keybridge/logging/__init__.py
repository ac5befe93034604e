"""Logging subsystem for keybridge.

Public API::

    from keybridge.logging import configure_logging

    configure_logging(settings.logging)
"""

from keybridge.logging.sanitize import sanitize_for_logs
from keybridge.logging.setup import bind_command_context, configure_logging

__all__ = ["bind_command_context", "configure_logging", "sanitize_for_logs"]
