"""Exception types raised by ctrpush.

Only local preparation problems are raised as exceptions; per-host
failures are captured into :class:`~ctrpush.job.HostResult` records.
"""

from __future__ import annotations


class CtrpushError(Exception):
    """Base class for job-fatal ctrpush errors."""


class ExportError(CtrpushError):
    """The image could not be exported or compressed locally."""

    def __init__(self, image: str, reason: str):
        self.image = image
        self.reason = reason
        super().__init__("Failed to export image '%s': %s" % (image, reason))
