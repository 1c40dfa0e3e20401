import logging

from .models import SystemLog

logger = logging.getLogger('pharmadesk')


def log_system_event(level, source, message, details=None, organization=None):
    """Persist a SystemLog row and mirror it to the application logger."""
    SystemLog.objects.create(
        organization=organization,
        level=level,
        source=source,
        message=message,
        details=details or {}
    )
    getattr(logger, level.lower())(f"[{source}] {message}")
