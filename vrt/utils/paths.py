"""Filesystem-safe names for anything that ends up in a path."""

from __future__ import annotations

import re

DEFAULT_COMPONENT = "default"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_path_component(value: object) -> str:
    """Strip every character outside ``[A-Za-z0-9_-]``.

    Empty or ``None`` input, or input with nothing left after stripping,
    yields ``"default"``. The result never contains ``/``, ``\\`` or ``..``.
    """
    if value is None:
        return DEFAULT_COMPONENT
    cleaned = _UNSAFE_RE.sub("", str(value))
    return cleaned or DEFAULT_COMPONENT


def sanitize_relative_dir(value: str | None) -> str:
    """Sanitize each ``/``-separated part of a relative directory name."""
    if not value:
        return DEFAULT_COMPONENT
    parts = [
        sanitize_path_component(part)
        for part in re.split(r"[\\/]+", value)
        if _UNSAFE_RE.sub("", part)
    ]
    return "/".join(parts) or DEFAULT_COMPONENT


def device_file_stem(device_name: str) -> str:
    """Turn a device preset name like ``iPhone 14 Pro`` into ``iPhone-14-Pro``."""
    return sanitize_path_component(re.sub(r"\s+", "-", device_name or ""))
