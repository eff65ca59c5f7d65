"""Final per-host report and exit status for a distribution run."""

from __future__ import annotations

import shlex
from collections import Counter

from ctrpush.job import ArtifactStats, DistributionJob, Host, HostResult, Status
from ctrpush.utils import format_size

EXIT_OK = 0
EXIT_NO_HOST_SUCCEEDED = 1


def summarize(results: dict[Host, HostResult]) -> dict[str, Counter]:
    """Count outcomes per stage: ``{"transfer": Counter({...}), ...}``."""
    return {
        "transfer": Counter(r.transfer for r in results.values()),
        "load": Counter(r.load for r in results.values()),
        "verify": Counter(r.verify for r in results.values()),
    }


def _row(cells: list[str], widths: list[int]) -> str:
    return "  ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()


def render_report(
    job: DistributionJob,
    results: dict[Host, HostResult],
    stats: ArtifactStats | None = None,
) -> list[str]:
    """Render the summary shown once every host has been processed.

    Returns:
        Output lines, free of any secret held by the job credential.
    """
    header = ["Host", "Transfer", "Load", "Verify", "Image"]
    rows = []
    for host in job.hosts:
        r = results[host]
        if r.image_ref:
            image = "%s (%s)" % (r.image_ref, r.size)
        else:
            image = r.detail or "-"
        rows.append([host.address, str(r.transfer), str(r.load), str(r.verify), image])
    widths = [max(len(row[i]) for row in [header] + rows) for i in range(len(header))]

    lines = ["", "Distribution summary for %s (namespace %s):" % (job.image, job.namespace)]
    if stats is not None:
        lines.append("  Artifact: %s compressed from %s" % (
            format_size(stats.compressed_size), format_size(stats.original_size)))
    lines.append(_row(header, widths))
    lines.append(_row(["-" * w for w in widths], widths))
    lines += [_row(row, widths) for row in rows]

    counts = summarize(results)
    total = len(results)
    lines.append("")
    lines.append("Transfer: %d/%d succeeded" % (counts["transfer"][Status.SUCCESS], total))
    lines.append("Load:     %d/%d succeeded" % (counts["load"][Status.SUCCESS], total))
    lines.append("Verify:   %d/%d found" % (counts["verify"][Status.FOUND], total))
    succeeded = sum(1 for r in results.values() if r.succeeded)
    lines.append("Hosts fully succeeded: %d/%d" % (succeeded, total))

    lines.append("")
    lines.append("To verify images on all hosts, run:")
    ls_argv = job.credential.escalate(["ctr", "-n", job.namespace, "images", "ls"])
    lines.append("  %s | grep %s" % (shlex.join(ls_argv), shlex.quote(job.image)))
    return [job.credential.redact(line) for line in lines]


def exit_code(results: dict[Host, HostResult], strict: bool = False) -> int:
    """Process exit status for a finished run.

    Partial success is a normal outcome and exits 0.  With *strict*, a
    run where no host fully succeeded exits non-zero.
    """
    if strict and not any(r.succeeded for r in results.values()):
        return EXIT_NO_HOST_SUCCEEDED
    return EXIT_OK
