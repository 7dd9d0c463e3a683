"""Declarative packaging request types.

These are created once from the input file and never mutated. Field names
mirror the bunnyfile keys; ``from`` is spelled ``from_``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

RootfsType = Literal["", "initrd", "raw", "block"]
ROOTFS_TYPES: tuple[str, ...] = ("initrd", "raw", "block")

SCRATCH_SOURCES = frozenset({"", "scratch"})
LOCAL_SOURCE = "local"


def _str_field(owner: str, name: str, value: object) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{owner}.{name} must be a string (got {type(value).__name__})")
    return value.strip()


def _str_tuple(owner: str, name: str, value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise TypeError(f"{owner}.{name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{owner}.{name} entries must be strings (got {type(item).__name__})")
        items.append(item)
    return tuple(items)


@dataclass(frozen=True)
class Platform:
    framework: str
    monitor: str
    version: str = ""
    arch: str = ""

    def __post_init__(self) -> None:
        for name in ("framework", "monitor", "version", "arch"):
            object.__setattr__(self, name, _str_field("platforms", name, getattr(self, name)))


@dataclass(frozen=True)
class Rootfs:
    from_: str = ""
    path: str = ""
    type: str = ""
    includes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in ("from_", "path", "type"):
            object.__setattr__(self, name, _str_field("rootfs", name.rstrip("_"), getattr(self, name)))
        object.__setattr__(self, "includes", _str_tuple("rootfs", "include", self.includes))

    @property
    def is_scratch(self) -> bool:
        return self.from_ in SCRATCH_SOURCES

    @property
    def is_local(self) -> bool:
        return self.from_ == LOCAL_SOURCE


@dataclass(frozen=True)
class Kernel:
    from_: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        for name in ("from_", "path"):
            object.__setattr__(self, name, _str_field("kernel", name.rstrip("_"), getattr(self, name)))

    @property
    def is_local(self) -> bool:
        return self.from_ == LOCAL_SOURCE


@dataclass(frozen=True)
class App:
    """Application source for frameworks that compile the kernel themselves."""

    from_: str = ""
    branch: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        for name in ("from_", "branch", "name"):
            object.__setattr__(self, name, _str_field("app", name.rstrip("_"), getattr(self, name)))

    @property
    def is_local(self) -> bool:
        return self.from_ == LOCAL_SOURCE

    @property
    def is_empty(self) -> bool:
        return not self.from_


@dataclass(frozen=True)
class Hops:
    version: str
    platform: Platform
    kernel: Kernel = field(default_factory=Kernel)
    rootfs: Rootfs = field(default_factory=Rootfs)
    app: App = field(default_factory=App)
    cmd: tuple[str, ...] = ()
    entrypoint: tuple[str, ...] = ()
    envs: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", _str_field("hops", "version", self.version))
        if not isinstance(self.platform, Platform):
            raise TypeError("Hops.platform must be a Platform")
        if not isinstance(self.kernel, Kernel):
            raise TypeError("Hops.kernel must be a Kernel")
        if not isinstance(self.rootfs, Rootfs):
            raise TypeError("Hops.rootfs must be a Rootfs")
        if not isinstance(self.app, App):
            raise TypeError("Hops.app must be an App")
        for name in ("cmd", "entrypoint", "envs"):
            object.__setattr__(self, name, _str_tuple("hops", name, getattr(self, name)))
        for env in self.envs:
            if "=" not in env or not env.split("=", 1)[0]:
                raise ValueError(f"Invalid env entry {env!r}: expected KEY=VALUE")
