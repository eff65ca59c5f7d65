"""Post-import verification against ``ctr images ls``.

Verification is best effort: a failed query and a missing image are
reported the same way, and nothing here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ctrpush.containers.load import ctr_argv
from ctrpush.job import DistributionJob, Host, Status
from ctrpush.orchestration.ssh import run_remote_command

logger = logging.getLogger(__name__)

# REF TYPE DIGEST SIZE(value) SIZE(unit) [PLATFORMS LABELS]
LISTING_MIN_FIELDS = 5
VERIFY_TIMEOUT = 60


@dataclass(frozen=True)
class ImageEntry:
    """One row of ``ctr images ls`` output."""

    ref: str
    type: str
    digest: str
    size: str


def parse_image_listing(text: str) -> list[ImageEntry]:
    """Parse ``ctr images ls`` tabular output.

    The header row is skipped.  Rows with too few whitespace-separated
    columns are logged as malformed and dropped.
    """
    entries: list[ImageEntry] = []
    for lineno, line in enumerate(text.splitlines(), 1):
        fields = line.split()
        if not fields:
            continue
        if fields[0] == "REF":
            continue
        if len(fields) < LISTING_MIN_FIELDS:
            logger.debug("Skipping malformed image listing line %d: %r", lineno, line)
            continue
        entries.append(ImageEntry(
            ref=fields[0],
            type=fields[1],
            digest=fields[2],
            size="%s %s" % (fields[3], fields[4]),
        ))
    return entries


def find_image(entries: list[ImageEntry], image: str) -> ImageEntry | None:
    """First entry whose ref contains *image* as a substring."""
    for entry in entries:
        if image in entry.ref:
            return entry
    return None


def verify_image(
    job: DistributionJob,
    host: Host,
    dry_run: bool = False,
) -> tuple[Status, ImageEntry | None]:
    """Check whether *job.image* is listed in the host's namespace.

    Returns:
        ``(Status.FOUND, entry)`` or ``(Status.NOT_FOUND, None)``.
    """
    argv = job.credential.escalate(ctr_argv(job.namespace, "images", "ls"))
    result = run_remote_command(
        host.address, [argv], job.ssh,
        stdin=job.credential.stdin, timeout=VERIFY_TIMEOUT, dry_run=dry_run,
    )
    if not result.success:
        logger.debug("Image listing on %s failed (rc=%d)", host, result.returncode)
        return Status.NOT_FOUND, None

    entry = find_image(parse_image_listing(result.stdout), job.image)
    if entry is None:
        return Status.NOT_FOUND, None
    return Status.FOUND, entry
