from __future__ import annotations

from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError
from unipack.frameworks.base import DEFAULT_ARCHES, Framework


class UnikraftFramework(Framework):
    name = "unikraft"
    doc = "Unikraft kernels, usually pulled from the builder hub; initrd rootfs only."
    default_rootfs_type = "initrd"
    rootfs_types = frozenset({"initrd"})
    monitors = frozenset({"qemu", "firecracker"})
    architectures = DEFAULT_ARCHES

    def create_rootfs(self, ctx: BuildContext) -> State:
        self.get_rootfs_type(ctx.rootfs.type)
        return self._initrd_from_includes(ctx)

    def update_rootfs(self, ctx: BuildContext, base: State) -> State:
        rootfs_type = self.get_rootfs_type(ctx.rootfs.type)
        raise CapabilityError(
            f"Can not update an existing {rootfs_type} rootfs for framework {self.label}"
        )
