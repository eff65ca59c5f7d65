"""Remote decompress / import / cleanup of a staged image archive."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from ctrpush.containers.export import Artifact
from ctrpush.job import DistributionJob, Host, Status
from ctrpush.orchestration.ssh import render_command, run_remote_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteCommand:
    """A fail-fast chain of argv steps plus optional stdin payload."""

    steps: tuple[tuple[str, ...], ...]
    stdin: str | None = None

    def render(self) -> str:
        return render_command(self.steps)

    def __repr__(self) -> str:
        return "RemoteCommand(%r, stdin=%s)" % (self.render(), "<hidden>" if self.stdin else None)


def staged_paths(job: DistributionJob, artifact: Artifact) -> tuple[str, str]:
    """Remote paths of the compressed and the decompressed archive."""
    return (
        posixpath.join(job.staging_dir, artifact.compressed_name),
        posixpath.join(job.staging_dir, artifact.tar_name),
    )


def ctr_argv(namespace: str, *args: str) -> list[str]:
    return ["ctr", "-n", namespace] + list(args)


def build_load_command(job: DistributionJob, artifact: Artifact) -> RemoteCommand:
    """Compose ``gunzip && [sudo] ctr images import && rm`` for *job*.

    The decompressed archive is removed only when the import succeeded.
    """
    compressed, tar = staged_paths(job, artifact)
    import_argv = job.credential.escalate(ctr_argv(job.namespace, "images", "import", tar))
    steps = (
        ("gunzip", "-f", compressed),
        tuple(import_argv),
        ("rm", "-f", tar),
    )
    return RemoteCommand(steps=steps, stdin=job.credential.stdin)


def load_image(
    job: DistributionJob,
    artifact: Artifact,
    host: Host,
    dry_run: bool = False,
) -> tuple[Status, str]:
    """Decompress and import the staged archive on *host*.

    Returns:
        ``(Status.SUCCESS, "")`` or ``(Status.FAILURE, reason)``.
    """
    cmd = build_load_command(job, artifact)
    result = run_remote_command(
        host.address, cmd.steps, job.ssh, stdin=cmd.stdin, dry_run=dry_run,
    )
    if result.success:
        return Status.SUCCESS, ""
    reason = job.credential.redact(result.last_error_line)
    logger.debug("Load on %s failed (rc=%d): %s", host, result.returncode, reason)
    return Status.FAILURE, reason
