from __future__ import annotations

from dataclasses import dataclass, field

from graphkit.platforms import normalize_architecture
from graphkit.state import State

from unipack.framework.config import PackerConfig
from unipack.framework.hops import App, Rootfs


@dataclass(frozen=True)
class BuildContext:
    """Per-request inputs the frameworks read when they build graph nodes."""

    config: PackerConfig
    host_arch: str
    rootfs: Rootfs = field(default_factory=Rootfs)
    app: App = field(default_factory=App)

    def __post_init__(self) -> None:
        object.__setattr__(self, "host_arch", normalize_architecture(self.host_arch))

    def local(self) -> State:
        return State.local(self.config.build_context_name)
