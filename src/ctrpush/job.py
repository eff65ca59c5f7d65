"""Data model for a single image distribution run.

A :class:`DistributionJob` is built once per invocation, after the
credential has been resolved, and is never mutated afterwards.  Each
host's pipeline produces one :class:`HostResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ctrpush.orchestration.ssh import SSHSettings
from ctrpush.orchestration.sudo import Credential
from ctrpush.utils import sanitize_image_name


class Status(str, Enum):
    """Outcome of one pipeline stage on one host."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    FOUND = "found"
    NOT_FOUND = "not-found"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Host:
    """A target host.

    ``slot`` is the host's position in the requested host list, so the
    same address given twice yields two distinct hosts.
    """

    address: str
    slot: int = 0

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class DistributionJob:
    """Everything needed to push one image to a set of hosts."""

    image: str
    namespace: str
    hosts: tuple[Host, ...]
    credential: Credential
    ssh: SSHSettings = field(default_factory=SSHSettings)
    staging_dir: str = "/tmp"

    @property
    def stem(self) -> str:
        """Filesystem-safe name used for the staged artifact files."""
        return sanitize_image_name(self.image)

    @classmethod
    def create(
        cls,
        image: str,
        addresses: list[str],
        credential: Credential,
        namespace: str = "k8s.io",
        ssh: SSHSettings | None = None,
        staging_dir: str = "/tmp",
    ) -> "DistributionJob":
        hosts = tuple(Host(addr, slot) for slot, addr in enumerate(addresses))
        return cls(
            image=image,
            namespace=namespace,
            hosts=hosts,
            credential=credential,
            ssh=ssh or SSHSettings(),
            staging_dir=staging_dir.rstrip("/") or "/",
        )


@dataclass(frozen=True)
class ArtifactStats:
    """Size telemetry for the compressed artifact.  Informational only."""

    original_size: int
    compressed_size: int

    @property
    def percent_saved(self) -> float | None:
        if self.original_size <= 0:
            return None
        return round((1 - self.compressed_size / self.original_size) * 100, 1)


@dataclass(frozen=True)
class HostResult:
    """Terminal record of one host's transfer/load/verify pipeline."""

    host: Host
    transfer: Status
    load: Status = Status.SKIPPED
    verify: Status = Status.SKIPPED
    image_ref: str | None = None
    size: str | None = None
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        """True when every stage succeeded and the image was found."""
        return (
            self.transfer is Status.SUCCESS
            and self.load is Status.SUCCESS
            and self.verify is Status.FOUND
        )

    @classmethod
    def cancelled(cls, host: Host) -> "HostResult":
        return cls(host=host, transfer=Status.SKIPPED, detail="cancelled")

    @classmethod
    def transfer_failed(cls, host: Host, detail: str = "") -> "HostResult":
        return cls(host=host, transfer=Status.FAILURE, detail=detail)
