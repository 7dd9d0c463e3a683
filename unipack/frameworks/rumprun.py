from __future__ import annotations

import posixpath

from graphkit.patterns import extract_artifacts, output_mount
from graphkit.state import Mount, State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError
from unipack.frameworks.base import DEFAULT_ARCHES, Framework
from unipack.frameworks.sources import app_source

TOOLCHAIN_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin:/rumprun/rumprun-solo5/bin"
WORKDIR = "/workdir"


class RumprunFramework(Framework):
    name = "rumprun"
    doc = "Rumprun on solo5; builds the kernel from an app repository when no kernel is given."
    default_rootfs_type = "raw"
    rootfs_types = frozenset({"initrd", "raw"})
    monitors = frozenset({"hvt", "spt"})
    architectures = DEFAULT_ARCHES
    builds_kernel = True

    def create_rootfs(self, ctx: BuildContext) -> State:
        rootfs_type = self.get_rootfs_type(ctx.rootfs.type)
        if rootfs_type == "initrd":
            return self._initrd_from_includes(ctx)
        return self._include_files(ctx, State.scratch())

    def update_rootfs(self, ctx: BuildContext, base: State) -> State:
        rootfs_type = self.get_rootfs_type(ctx.rootfs.type)
        if rootfs_type != "raw":
            raise CapabilityError(
                f"Can not update an existing {rootfs_type} rootfs for framework {self.label}"
            )
        return self._include_files(ctx, base)

    def bake_target(self) -> str:
        return "solo5_hvt" if self.platform.monitor == "hvt" else "solo5_spt"

    def build_kernel(self, ctx: BuildContext) -> State:
        """
        Compile the app with make in the rumprun toolchain image, then bake
        the first executable it produced into a solo5 kernel.
        """

        config = ctx.config
        app_dir = posixpath.join(WORKDIR, ctx.app.name)
        tuple_name = f"{self.target_arch(ctx)}-rumprun-netbsd"
        tools = State.image(config.rumprun_tool_image, custom_name="Internal:Build rumprun unikernel")

        make = (
            tools.dir(app_dir)
            .add_env("PATH", TOOLCHAIN_PATH)
            .add_env("RUMPRUN_TOOLCHAIN_TUPLE", tuple_name)
            .run(
                "make",
                mounts=(
                    Mount(dest=WORKDIR, source=app_source(ctx)),
                    Mount(dest=posixpath.join(app_dir, "bin"), source=State.scratch()),
                ),
            )
        )
        binaries = make.mount_output(posixpath.join(app_dir, "bin"))

        bake = (
            tools.dir(WORKDIR)
            .add_env("PATH", TOOLCHAIN_PATH)
            .run(
                (
                    "find", ".", "-type", "f", "-perm", "-111",
                    "-exec", "rumprun-bake", self.bake_target(), config.kernel_path, "{}", ";",
                    "-quit",
                ),
                mounts=(
                    Mount(dest=WORKDIR, source=binaries, readonly=True),
                    output_mount(config.boot_dir),
                ),
            )
        )
        return extract_artifacts(bake, config.boot_dir)
