"""Shared fixtures: a fake fleet standing in for the ssh/scp binaries."""

from __future__ import annotations

import io
import logging
import shlex
import subprocess
from unittest import mock

import pytest

LISTING_HEADER = (
    "REF                            TYPE                                                      "
    "DIGEST                                                                  SIZE     "
    "PLATFORMS             LABELS"
)


def listing_row(ref: str, size: str = "67.3 MiB") -> str:
    return (
        "%s application/vnd.docker.distribution.manifest.list.v2+json "
        "sha256:0d17b565c37bcbd895e9d92315a05c1c3c9a29f762b011a10c54a66cd53c9b31 "
        "%s linux/amd64,linux/arm64 io.cri-containerd.image=managed" % (ref, size)
    )


class FakeFleet:
    """Callable replacement for ``subprocess.run`` in the ssh module.

    Hosts behave like containerd nodes: an import of any archive adds
    ``imported_ref`` to the host's image store.
    """

    def __init__(self, imported_ref: str = "docker.io/library/nginx:latest"):
        self.imported_ref = imported_ref
        self.calls: list[tuple[list[str], str | None]] = []
        self.unreachable: set[str] = set()
        self.import_fails: set[str] = set()
        self.listing_fails: set[str] = set()
        self.sudo_password: str | None = None
        self.images: dict[str, list[str]] = {}

    def __call__(self, argv, input=None, **kwargs):
        self.calls.append((list(argv), input))
        if argv[0] == "scp":
            return self._scp(argv)
        return self._ssh(argv, input)

    @staticmethod
    def _host_of(dest: str) -> str:
        host = dest.split("@", 1)[-1]
        return host.strip("[]")

    def _done(self, argv, rc=0, stdout="", stderr=""):
        return subprocess.CompletedProcess(argv, rc, stdout, stderr)

    def _scp(self, argv):
        dest = argv[-1]
        host = self._host_of(dest.rsplit(":", 1)[0])
        if host in self.unreachable:
            return self._done(argv, 1, stderr="ssh: connect to host %s port 22: No route to host" % host)
        return self._done(argv)

    def _sudo_ok(self, words: list[str], stdin: str | None) -> bool:
        if words[0] != "sudo" or self.sudo_password is None:
            return True
        if words[1] == "-n":
            return False
        return stdin == self.sudo_password + "\n"

    def _ssh(self, argv, stdin):
        host = self._host_of(argv[-2])
        if host in self.unreachable:
            return self._done(argv, 255, stderr="ssh: connect to host %s port 22: No route to host" % host)
        for step in argv[-1].split(" && "):
            words = shlex.split(step)
            if words[0] in ("gunzip", "rm"):
                continue
            if not self._sudo_ok(words, stdin):
                return self._done(argv, 1, stderr="sudo: a password is required")
            if words[-2:] == ["images", "ls"]:
                if host in self.listing_fails:
                    return self._done(argv, 1, stderr="ctr: failed to dial")
                rows = [LISTING_HEADER] + [listing_row(r) for r in self.images.get(host, [])]
                return self._done(argv, stdout="\n".join(rows) + "\n")
            if "import" in words:
                if host in self.import_fails:
                    return self._done(argv, 1, stderr="ctr: unexpected EOF")
                self.images.setdefault(host, []).append(self.imported_ref)
        return self._done(argv)

    def ssh_commands(self, host: str | None = None) -> list[str]:
        cmds = []
        for argv, _ in self.calls:
            if argv[0] != "ssh":
                continue
            if host is None or self._host_of(argv[-2]) == host:
                cmds.append(argv[-1])
        return cmds


@pytest.fixture
def fleet():
    """Patch subprocess.run in the ssh module with a fake fleet."""
    fake = FakeFleet()
    with mock.patch("ctrpush.orchestration.ssh.subprocess.run", side_effect=fake):
        yield fake


class FakePopen:
    """Stand-in for ``docker save``: streams *payload* to stdout."""

    payload = b""
    returncode = 0
    error = b""
    argv: list[str] = []

    def __init__(self, argv, stdout=None, stderr=None):
        type(self).argv = list(argv)
        self.stdout = io.BytesIO(self.payload)
        if stderr is not None and self.error:
            stderr.write(self.error)

    def wait(self):
        return self.returncode

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def docker_save():
    """Patch ``docker save`` with a fake producing a compressible payload."""

    class _Popen(FakePopen):
        payload = b"layer-data " * 5000

    with mock.patch("ctrpush.containers.export.subprocess.Popen", _Popen):
        yield _Popen


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop console handlers installed by the CLI between tests."""
    yield
    pkg = logging.getLogger("ctrpush")
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.propagate = True
    pkg.setLevel(logging.NOTSET)
