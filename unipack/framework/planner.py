"""Choose the image base and the copies that complete it.

The policy, in order:

1. An empty kernel is an error.
2. A local kernel is copied to the canonical kernel path onto an empty base.
3. A remote or built kernel becomes the base, uncopied.
4. An empty rootfs adds nothing.
5. A synthesized single-file rootfs is copied to the canonical rootfs path.
6. A synthesized whole-state rootfs (raw) becomes the base.
7. A local rootfs is copied to the canonical rootfs path.
8. A remote rootfs becomes the base, unless a specific file inside it is
   wanted; that file is copied instead and the kernel's base is kept.
9. If nothing was copied but both entries are present, the kernel is copied
   out of its own state into the canonical kernel path so the final image
   always has a fixed kernel location.

Copies are recorded kernel first, then rootfs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from graphkit.state import State

from unipack.framework.config import PackerConfig
from unipack.framework.entries import Origin, PackEntry
from unipack.framework.errors import InvariantError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackCopy:
    src_state: State
    src_path: str
    dst_path: str


@dataclass(frozen=True)
class ImageSettings:
    base_ref: str = ""
    monitor: str = ""
    entrypoint: tuple[str, ...] = ()
    cmd: tuple[str, ...] = ()
    envs: tuple[str, ...] = ()


@dataclass
class PackagingPlan:
    """
    Everything needed to materialize the image.

    Built by one request and handed off; never shared between requests.
    """

    base: State = field(default_factory=State.scratch)
    copies: list[PackCopy] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    config: ImageSettings = field(default_factory=ImageSettings)

    def set_base(self, state: State, base_ref: str) -> None:
        self.base = state
        self.config = replace(self.config, base_ref=base_ref)

    def add_copy(self, src_state: State, src_path: str, dst_path: str) -> None:
        self.copies.append(PackCopy(src_state=src_state, src_path=src_path, dst_path=dst_path))


def set_base_and_get_paths(
    plan: PackagingPlan,
    kernel: PackEntry,
    rootfs: PackEntry,
    config: PackerConfig,
) -> tuple[str, str]:
    """Apply the base/copy policy to ``plan``; return (kernel path, rootfs path)."""

    if kernel.is_empty:
        raise InvariantError("Source of kernel State is empty")

    kernel_copied = False
    rootfs_copied = False
    kernel_path = kernel.file_path
    rootfs_path = rootfs.file_path

    if kernel.origin is Origin.LOCAL:
        plan.set_base(State.scratch(), "scratch")
        plan.add_copy(kernel.state, kernel.file_path, config.kernel_path)
        kernel_path = config.kernel_path
        kernel_copied = True
    elif kernel.origin in (Origin.REMOTE, Origin.SCRATCH):
        plan.set_base(kernel.state, kernel.source_ref)
    else:
        raise InvariantError(f"Unexpected kernel origin: {kernel.origin.value}")

    if rootfs.origin is Origin.EMPTY:
        rootfs_path = ""
    elif rootfs.origin is Origin.LOCAL or rootfs.file_path:
        plan.add_copy(rootfs.state, rootfs.file_path, config.rootfs_path)
        rootfs_path = config.rootfs_path
        rootfs_copied = True
    elif rootfs.origin in (Origin.SCRATCH, Origin.REMOTE):
        plan.set_base(rootfs.state, rootfs.source_ref)
        rootfs_path = ""
    else:
        raise InvariantError(f"Unexpected rootfs origin: {rootfs.origin.value}")

    if not kernel_copied and not rootfs_copied and not rootfs.is_empty:
        plan.add_copy(kernel.state, kernel.file_path, config.kernel_path)
        kernel_path = config.kernel_path

    logger.debug(
        "Planned base=%s copies=%d kernel=%s rootfs=%s",
        plan.config.base_ref or "scratch",
        len(plan.copies),
        kernel_path,
        rootfs_path or "<none>",
    )
    return kernel_path, rootfs_path
