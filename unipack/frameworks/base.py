from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError
from unipack.framework.graph import files_state, initrd_state
from unipack.framework.hops import Platform

logger = logging.getLogger(__name__)

X86_64_ARCHES = frozenset({"x86_64", "amd64", "x86"})
DEFAULT_ARCHES = frozenset({"x86_64", "amd64", "aarch64", "arm64"})


class Framework(ABC):
    """
    Capability object for one unikernel framework.

    Subclasses declare their support matrix through the class attributes
    below. ``None`` for monitors or architectures means any value is
    accepted. One instance is created per packaging request.
    """

    name: ClassVar[str]
    doc: ClassVar[str] = ""
    default_rootfs_type: ClassVar[str]
    rootfs_types: ClassVar[frozenset[str]]
    monitors: ClassVar[frozenset[str] | None] = None
    architectures: ClassVar[frozenset[str] | None] = None
    builds_kernel: ClassVar[bool] = False

    def __init__(self, platform: Platform) -> None:
        self.platform = platform

    @property
    def label(self) -> str:
        """The framework name as requested, for messages."""
        return self.platform.framework or self.name

    def supports_rootfs_type(self, rootfs_type: str) -> bool:
        return rootfs_type in self.rootfs_types

    def supports_monitor(self, monitor: str) -> bool:
        return self.monitors is None or monitor in self.monitors

    def supports_arch(self, arch: str) -> bool:
        return self.architectures is None or arch in self.architectures

    def get_rootfs_type(self, declared: str = "") -> str:
        """Effective rootfs type: ``declared``, or the framework default when empty."""
        effective = declared or self.default_rootfs_type
        if not self.supports_rootfs_type(effective):
            supported = ", ".join(sorted(self.rootfs_types))
            raise CapabilityError(
                f"Unsupported rootfs type {effective!r} for framework {self.label} "
                f"(supported: {supported})"
            )
        return effective

    def check_platform(self, host_arch: str = "") -> list[str]:
        """Advisory monitor/arch checks. Mismatches are logged, never raised."""
        warnings: list[str] = []
        if not self.supports_monitor(self.platform.monitor):
            warnings.append(f"Monitor {self.platform.monitor!r} is not known to work with {self.label}")
        arch = self.platform.arch or host_arch
        if arch and not self.supports_arch(arch):
            warnings.append(f"Architecture {arch!r} is not known to work with {self.label}")
        for message in warnings:
            logger.warning(message)
        return warnings

    def target_arch(self, ctx: BuildContext) -> str:
        """Toolchain architecture name: x86_64 or aarch64."""
        arch = self.platform.arch or ctx.host_arch
        return "x86_64" if arch in X86_64_ARCHES else "aarch64"

    def _include_files(self, ctx: BuildContext, to_state: State) -> State:
        return files_state(ctx.rootfs.includes, ctx.local(), to_state)

    def _initrd_from_includes(self, ctx: BuildContext) -> State:
        content = self._include_files(ctx, State.scratch())
        return initrd_state(content, ctx.config)

    @abstractmethod
    def create_rootfs(self, ctx: BuildContext) -> State:
        """Build a rootfs node from the include list alone."""

    @abstractmethod
    def update_rootfs(self, ctx: BuildContext, base: State) -> State:
        """Append the include list onto an existing rootfs node."""

    def build_kernel(self, ctx: BuildContext) -> State:
        return State.scratch()
