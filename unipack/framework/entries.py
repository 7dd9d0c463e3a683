"""Turn kernel and rootfs declarations into resolved source entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError, ResolutionError
from unipack.framework.graph import base_state
from unipack.framework.hops import Kernel
from unipack.frameworks.base import Framework

logger = logging.getLogger(__name__)


class Origin(str, Enum):
    EMPTY = "empty"
    LOCAL = "local"
    REMOTE = "remote"
    SCRATCH = "scratch"


@dataclass(frozen=True)
class PackEntry:
    """
    Where one piece of the image comes from.

    ``state`` holds the content and ``file_path`` locates it inside that
    state. An empty ``file_path`` means the whole state is the payload.
    ``source_ref`` keeps the image reference for remote entries.
    """

    origin: Origin
    state: State = field(default_factory=State.scratch)
    file_path: str = ""
    source_ref: str = ""

    @classmethod
    def empty(cls) -> "PackEntry":
        return cls(origin=Origin.EMPTY)

    @property
    def is_empty(self) -> bool:
        return self.origin is Origin.EMPTY


def resolve_kernel(framework: Framework, ctx: BuildContext, kernel: Kernel) -> PackEntry:
    if kernel.is_local:
        return PackEntry(origin=Origin.LOCAL, state=ctx.local(), file_path=kernel.path)

    if not kernel.from_:
        if ctx.app.is_empty:
            return PackEntry.empty()
        built = framework.build_kernel(ctx)
        if built.is_scratch:
            raise ResolutionError(f"Framework {framework.label} can not build a kernel from source")
        logger.debug("Kernel will be built from %s with %s", ctx.app.from_, framework.label)
        return PackEntry(origin=Origin.SCRATCH, state=built, file_path=ctx.config.kernel_path)

    state = base_state(kernel.from_, framework.platform.monitor, ctx.config, ctx.host_arch)
    return PackEntry(
        origin=Origin.REMOTE, state=state, file_path=kernel.path, source_ref=kernel.from_
    )


def _check_rootfs_shape(framework: Framework, file_backed: bool, rootfs_type: str) -> None:
    """
    A rootfs file is passed to the monitor as an initrd or block device; a
    whole image is mounted as the container rootfs. The effective type,
    defaults included, has to agree with which of the two was given.
    """

    if file_backed and rootfs_type == "raw":
        raise CapabilityError(
            f"Rootfs type 'raw' for framework {framework.label} can not use a rootfs file; "
            "declare type initrd or block"
        )
    if not file_backed and rootfs_type != "raw":
        raise CapabilityError(
            f"A whole-image rootfs requires type raw (got {rootfs_type!r} for framework {framework.label})"
        )


def resolve_rootfs(framework: Framework, ctx: BuildContext) -> PackEntry:
    rootfs = ctx.rootfs
    # Rejects declared types the framework does not support, naming both.
    rootfs_type = framework.get_rootfs_type(rootfs.type)
    if not rootfs.is_scratch:
        _check_rootfs_shape(framework, rootfs.is_local or bool(rootfs.path), rootfs_type)

    if rootfs.is_local:
        return PackEntry(origin=Origin.LOCAL, state=ctx.local(), file_path=rootfs.path)

    if rootfs.is_scratch:
        if not rootfs.includes:
            return PackEntry.empty()
        state = framework.create_rootfs(ctx)
        file_path = "" if rootfs_type == "raw" else ctx.config.rootfs_path
        logger.debug(
            "Synthesized %s rootfs from %d include(s)", rootfs_type, len(rootfs.includes)
        )
        return PackEntry(origin=Origin.SCRATCH, state=state, file_path=file_path)

    state = base_state(rootfs.from_, framework.platform.monitor, ctx.config, ctx.host_arch)
    if rootfs.includes:
        state = framework.update_rootfs(ctx, state)
    return PackEntry(
        origin=Origin.REMOTE, state=state, file_path=rootfs.path, source_ref=rootfs.from_
    )
