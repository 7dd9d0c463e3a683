from __future__ import annotations

from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError
from unipack.frameworks.base import Framework


class GenericFramework(Framework):
    """Fallback for any framework name without a dedicated implementation."""

    name = "generic"
    doc = "Plain packaging of a prebuilt kernel with an initrd, raw or block rootfs."
    default_rootfs_type = "raw"
    rootfs_types = frozenset({"initrd", "raw", "block"})

    def create_rootfs(self, ctx: BuildContext) -> State:
        rootfs_type = self.get_rootfs_type(ctx.rootfs.type)
        if rootfs_type == "initrd":
            return self._initrd_from_includes(ctx)
        if rootfs_type == "raw":
            return self._include_files(ctx, State.scratch())
        raise CapabilityError(f"Can not create a {rootfs_type} rootfs for framework {self.label}")

    def update_rootfs(self, ctx: BuildContext, base: State) -> State:
        rootfs_type = self.get_rootfs_type(ctx.rootfs.type)
        if rootfs_type != "raw":
            raise CapabilityError(
                f"Can not update an existing {rootfs_type} rootfs for framework {self.label}"
            )
        return self._include_files(ctx, base)
