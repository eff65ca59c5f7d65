"""Logging setup for the ctrpush command line."""

from __future__ import annotations

import logging
import sys

from ctrpush.orchestration.sudo import Credential

LOG_FORMAT = "%(message)s"
VERBOSE_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_formatter = logging.Formatter()


class SecretRedactingFilter(logging.Filter):
    """Mask a credential's secret in every record passing the handler."""

    def __init__(self, credential: Credential):
        super().__init__()
        self.credential = credential

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.credential.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        # Tracebacks are rendered after filtering; render them here instead.
        if record.exc_info:
            record.exc_text = _formatter.formatException(record.exc_info)
            record.exc_info = None
        if record.exc_text:
            record.exc_text = self.credential.redact(record.exc_text)
        if record.stack_info:
            record.stack_info = self.credential.redact(record.stack_info)
        return True


def configure_logging(
    verbose: bool = False,
    credential: Credential | None = None,
    stream=None,
) -> logging.Handler:
    """Install the ctrpush console handler, replacing any previous one."""
    pkg_logger = logging.getLogger("ctrpush")
    for h in list(pkg_logger.handlers):
        if getattr(h, "_ctrpush_handler", False):
            pkg_logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._ctrpush_handler = True
    handler.setFormatter(logging.Formatter(VERBOSE_LOG_FORMAT if verbose else LOG_FORMAT))
    if credential is not None:
        handler.addFilter(SecretRedactingFilter(credential))

    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    pkg_logger.propagate = False
    return handler
