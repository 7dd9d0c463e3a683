from __future__ import annotations

import platform as _platform

from graphkit.state import Platform

_MACHINE_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "arm": "arm",
}

SUPPORTED_ARCHITECTURES: tuple[str, ...] = ("amd64", "arm", "arm64")


def normalize_architecture(machine: str) -> str:
    key = (machine or "").strip().lower()
    arch = _MACHINE_ALIASES.get(key)
    if arch is None:
        raise ValueError(
            f"Unsupported architecture: {machine!r} "
            f"(supported: {', '.join(SUPPORTED_ARCHITECTURES)})"
        )
    return arch


def host_architecture() -> str:
    return normalize_architecture(_platform.machine())


def linux_platform(architecture: str | None = None) -> Platform:
    return Platform(os="linux", architecture=architecture or host_architecture())
