"""
Logging bootstrap for the simulation engine.

Usage:
    from dropsim_core.config import get_settings
    from dropsim_core.logging import configure_logging

    configure_logging(get_settings())  # idempotent

- Supports JSON (python-json-logger) and plain formats
- Supports stdout/stderr/file destinations
- Tags every record with the simulation session id when one is bound
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

_configured = False


class SessionContextFilter(logging.Filter):
    """Ensures every record carries a ``session_id`` attribute for formatters."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "session_id", None):
            record.session_id = "-"
        return True


def _level_from_str(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _make_handler(destination: str, filename: Optional[str]) -> logging.Handler:
    if destination == "stdout":
        return logging.StreamHandler(stream=sys.stdout)
    if destination == "stderr":
        return logging.StreamHandler(stream=sys.stderr)
    path = Path(filename or "dropsim.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def _make_formatter(json_enabled: bool, fmt: str) -> logging.Formatter:
    if json_enabled:
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(session_id)s"
        )
    return logging.Formatter(fmt + " [session:%(session_id)s]")


def configure_logging(settings=None, *, force: bool = False) -> None:
    """
    Configure root logging from ``settings.logging``. Safe to call multiple times.

    Params:
      - settings: dropsim_core.config.Settings (lazily loaded if None)
      - force: reconfigure even if logging was already configured
    """
    global _configured

    if _configured and not force:
        return

    if settings is None:
        from dropsim_core.config import get_settings  # lazy import to avoid cycles

        settings = get_settings()

    cfg = settings.logging
    level = _level_from_str(cfg.level)
    handler = _make_handler(cfg.destination, cfg.filename)
    handler.setFormatter(_make_formatter(cfg.json_format, cfg.format))
    handler.addFilter(SessionContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(handler)

    # Keep chatty libraries at INFO or quieter
    for name in ("uvicorn", "uvicorn.access", "httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Mirror of logging.getLogger that ensures base configuration exists."""
    if not (_configured or logging.getLogger().handlers):
        configure_logging()
    return logging.getLogger(name)


def session_adapter(logger: logging.Logger, session_id: str) -> logging.LoggerAdapter:
    """Bind a session id to every record emitted through the returned adapter."""
    return logging.LoggerAdapter(logger, {"session_id": session_id})


__all__ = ["configure_logging", "get_logger", "session_adapter", "SessionContextFilter"]
