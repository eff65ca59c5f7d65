"""Per-host image distribution pipeline.

Each host runs transfer → load → verify on its own.  A host that cannot
be reached or refuses the import is recorded and the run moves on; no
host's failure ever stops the others.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from ctrpush.containers.export import Artifact
from ctrpush.containers.load import load_image
from ctrpush.containers.verify import verify_image
from ctrpush.job import DistributionJob, Host, HostResult, Status
from ctrpush.orchestration.ssh import copy_to_remote

logger = logging.getLogger(__name__)


def process_host(
    job: DistributionJob,
    artifact: Artifact,
    host: Host,
    dry_run: bool = False,
) -> HostResult:
    """Run the transfer/load/verify pipeline on a single host.

    Verification runs even when the load failed: the image may already
    be present from an earlier run, or the import may have partly
    succeeded.
    """
    logger.info("Processing host: %s", host)

    logger.info("  - Copying %s to %s...", artifact.compressed_name, host)
    try:
        xfer = copy_to_remote(
            host.address, str(artifact.local_path), job.staging_dir, job.ssh, dry_run=dry_run,
        )
    except Exception as e:
        logger.exception("  - Transfer failed for %s", host)
        return HostResult.transfer_failed(host, detail=str(e))
    if not xfer.success:
        logger.warning("  - Transfer failed for %s, skipping: %s", host, xfer.last_error_line)
        return HostResult.transfer_failed(host, detail=xfer.last_error_line)
    logger.info("  - Transfer to %s successful", host)

    logger.info("  - Decompressing and loading image into containerd on %s...", host)
    try:
        load, load_detail = load_image(job, artifact, host, dry_run=dry_run)
    except Exception as e:
        logger.exception("  - Failed to load image on %s", host)
        load, load_detail = Status.FAILURE, job.credential.redact(str(e))
    if load is Status.SUCCESS:
        logger.info("  - Image loaded successfully on %s", host)
    else:
        logger.warning("  - Failed to load image on %s: %s", host, load_detail)

    if dry_run:
        return HostResult(host=host, transfer=Status.SUCCESS, load=load, detail="dry-run")

    logger.info("  - Verifying image on %s...", host)
    try:
        verify, entry = verify_image(job, host)
    except Exception:
        logger.exception("  - Verification error on %s", host)
        verify, entry = Status.NOT_FOUND, None
    if entry is not None:
        logger.info("    Image found on %s:", host)
        logger.info("      %s: %s", host, entry.ref)
        logger.info("      Size on %s: %s", host, entry.size)
    else:
        logger.warning("    Image verification failed on %s", host)

    return HostResult(
        host=host,
        transfer=Status.SUCCESS,
        load=load,
        verify=verify,
        image_ref=entry.ref if entry else None,
        size=entry.size if entry else None,
        detail=load_detail,
    )


def distribute_image(
    job: DistributionJob,
    artifact: Artifact,
    workers: int = 1,
    cancel: threading.Event | None = None,
    dry_run: bool = False,
) -> dict[Host, HostResult]:
    """Push *artifact* to every host of *job*.

    Hosts are processed through a thread pool of *workers* threads; with
    the default of one worker each host finishes before the next starts.
    Results are keyed by :class:`Host` and returned in host-list order,
    independent of completion order.

    An operator interrupt (``KeyboardInterrupt``) sets *cancel*: hosts
    that have not started are recorded as cancelled, while in-flight
    hosts are allowed to finish.

    Args:
        job: The distribution job.
        artifact: Prepared local archive (read-only for all hosts).
        workers: Maximum number of hosts processed concurrently.
        cancel: Event that stops new hosts from starting once set.
        dry_run: If True, log the remote operations without running them.

    Returns:
        Mapping of every job host to its :class:`HostResult`.
    """
    cancel = cancel or threading.Event()
    results: dict[Host, HostResult] = {}
    futures = {}
    pool = None

    def _task(host: Host) -> HostResult:
        if cancel.is_set():
            return HostResult.cancelled(host)
        return process_host(job, artifact, host, dry_run=dry_run)

    try:
        pool = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="ctrpush")
        for host in job.hosts:
            futures[host] = pool.submit(_task, host)
        for host, future in futures.items():
            results[host] = future.result()
    except KeyboardInterrupt:
        logger.warning("Interrupted: waiting for in-flight hosts, no new hosts will start")
        cancel.set()
        if pool is not None:
            pool.shutdown(wait=True, cancel_futures=True)
        for host in job.hosts:
            if host in results:
                continue
            future = futures.get(host)
            if future is None or future.cancelled():
                results[host] = HostResult.cancelled(host)
            else:
                results[host] = future.result()
    finally:
        if pool is not None:
            pool.shutdown(wait=True)

    ordered = {host: results[host] for host in job.hosts}
    ok = sum(1 for r in ordered.values() if r.succeeded)
    logger.info("Image distributed to %d/%d host(s)", ok, len(ordered))
    return ordered
