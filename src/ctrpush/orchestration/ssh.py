"""SSH/SCP execution helpers.

The system ``ssh`` and ``scp`` binaries are used so the operator's own SSH
config, agent and keys apply.  Remote commands are assembled from argument
lists with every element shell-quoted; secrets are only ever passed on the
remote command's stdin.
"""

from __future__ import annotations

import logging
import shlex
import signal
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Ephemeral fleet hosts are frequently re-imaged, so known_hosts is ignored.
SSH_BASE_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "LogLevel=ERROR",
]


@dataclass(frozen=True)
class SSHSettings:
    """Connection parameters shared by every host of a job."""

    user: str = "root"
    key: str | None = None
    connect_timeout: int = 10
    command_timeout: int = 1800


@dataclass(frozen=True)
class SSHResult:
    """Outcome of one ssh or scp invocation."""

    host: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def last_error_line(self) -> str:
        lines = [ln.strip() for ln in self.stderr.splitlines() if ln.strip()]
        return lines[-1] if lines else ("exit code %d" % self.returncode)


def build_ssh_opts(settings: SSHSettings) -> list[str]:
    """Build the option list common to ssh and scp."""
    opts = list(SSH_BASE_OPTIONS)
    opts += ["-o", "ConnectTimeout=%d" % settings.connect_timeout]
    if settings.key:
        opts += ["-i", settings.key]
    return opts


def build_ssh_opts_string(settings: SSHSettings) -> str:
    """Shell-quoted form of :func:`build_ssh_opts`, for display."""
    return shlex.join(build_ssh_opts(settings))


def _destination(host: str, settings: SSHSettings) -> str:
    return "%s@%s" % (settings.user, host) if settings.user else host


def _scp_destination(host: str, remote_dir: str, settings: SSHSettings) -> str:
    # scp needs IPv6 literals bracketed to tell the address from the path.
    if ":" in host and not host.startswith("["):
        host = "[%s]" % host
    return "%s:%s/" % (_destination(host, settings), remote_dir.rstrip("/"))


def render_command(steps) -> str:
    """Join argv steps into one fail-fast remote command line.

    Each step is a sequence of arguments; every argument is quoted, and
    steps are chained with ``&&`` so a failing step stops the rest.
    """
    return " && ".join(shlex.join(list(step)) for step in steps)


def _ignore_sigint() -> None:
    signal.signal(signal.SIGINT, signal.SIG_IGN)


def _run(argv: list[str], host: str, timeout: int, stdin: str | None = None) -> SSHResult:
    """Run a local ssh/scp process and capture its outcome.

    The child ignores SIGINT so an operator interrupt aimed at ctrpush
    does not kill in-flight remote operations, while it keeps the
    controlling terminal for password and passphrase prompts.  Without
    a payload its stdin is /dev/null, so concurrent children never
    read from the operator's terminal.
    """
    kwargs = {"input": stdin} if stdin is not None else {"stdin": subprocess.DEVNULL}
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            preexec_fn=_ignore_sigint,
            **kwargs,
        )
    except FileNotFoundError as e:
        return SSHResult(host=host, returncode=127, stderr="%s not found: %s" % (argv[0], e))
    except subprocess.TimeoutExpired:
        return SSHResult(host=host, returncode=124, stderr="timed out after %ds" % timeout)
    return SSHResult(
        host=host,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )


def run_remote_command(
    host: str,
    steps,
    settings: SSHSettings,
    stdin: str | None = None,
    timeout: int | None = None,
    dry_run: bool = False,
) -> SSHResult:
    """Run a chain of argv steps on a remote host.

    Args:
        host: Remote hostname or IP.
        steps: Sequence of argument lists, run in order with ``&&``.
        settings: SSH connection parameters.
        stdin: Optional data written to the remote command's stdin.
        timeout: Overall timeout in seconds (defaults to the command timeout).
        dry_run: If True, log the command and report success.

    Returns:
        An :class:`SSHResult`.
    """
    command = render_command(steps)
    argv = ["ssh"] + build_ssh_opts(settings) + [_destination(host, settings), command]
    if dry_run:
        logger.info("[dry-run] %s: %s", host, command)
        return SSHResult(host=host, returncode=0)
    logger.debug("Running on %s: %s", host, command)
    return _run(argv, host, timeout or settings.command_timeout, stdin=stdin)


def copy_to_remote(
    host: str,
    local_path: str,
    remote_dir: str,
    settings: SSHSettings,
    timeout: int | None = None,
    dry_run: bool = False,
) -> SSHResult:
    """Copy a local file into a remote directory with scp."""
    dest = _scp_destination(host, remote_dir, settings)
    argv = ["scp"] + build_ssh_opts(settings) + [local_path, dest]
    if dry_run:
        logger.info("[dry-run] Would copy %s to %s", local_path, dest)
        return SSHResult(host=host, returncode=0)
    logger.debug("Copying %s to %s", local_path, dest)
    return _run(argv, host, timeout or settings.command_timeout)
