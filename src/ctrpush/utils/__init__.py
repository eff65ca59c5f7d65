"""Shared utility functions for ctrpush.

Small, self-contained helpers that are used across multiple modules.
Keeping them here avoids circular imports and reduces duplication.
"""

from __future__ import annotations

import re

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_image_name(image: str) -> str:
    """Turn an image reference into a filesystem-safe file stem.

    Every character outside ``[A-Za-z0-9._-]`` is replaced with ``_``::

        >>> sanitize_image_name("registry.local:5000/team/app:1.0")
        'registry.local_5000_team_app_1.0'
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", image)


def parse_host_list(value: str) -> list[str]:
    """Split a comma-separated host list, dropping empty entries.

    Order and duplicates are preserved.
    """
    return [h.strip() for h in value.split(",") if h.strip()]


def resolve_ssh_user(cli_user: str | None, config, fallback: str = "root") -> str:
    """Resolve SSH user from the command line, config, or the privileged default."""
    return cli_user or config.ssh_user or fallback


def format_size(num_bytes: int) -> str:
    """Format a byte count with IEC suffixes (``1.5M``, ``512K``, ``300``)."""
    size = float(num_bytes)
    for unit in ("", "K", "M", "G", "T"):
        if abs(size) < 1024 or unit == "T":
            if unit == "":
                return "%d" % size
            return "%.1f%s" % (size, unit)
        size /= 1024
    return "%d" % num_bytes


def load_yaml(path) -> dict:
    """Load a YAML file, returning an empty dict when it holds no mapping."""
    from pathlib import Path as _Path
    import yaml
    with _Path(path).open() as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}
