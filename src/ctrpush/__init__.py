"""ctrpush - Distribute container images to containerd hosts over SSH without a registry."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("ctrpush")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
