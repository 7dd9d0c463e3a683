from __future__ import annotations

from graphkit.patterns import extract_artifacts, output_mount
from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import CapabilityError
from unipack.framework.graph import files_state
from unipack.frameworks.base import DEFAULT_ARCHES, Framework
from unipack.frameworks.sources import app_source

OPAM_HOME = "/home/opam"
OPAM_SWITCH = f"{OPAM_HOME}/.opam/5.3"
OPAM_UID = 1000
WORKDIR = f"{OPAM_HOME}/workdir"

OPAM_ENV: tuple[tuple[str, str], ...] = (
    (
        "CAML_LD_LIBRARY_PATH",
        f"{OPAM_SWITCH}/lib/stublibs:{OPAM_SWITCH}/lib/ocaml/stublibs:{OPAM_SWITCH}/lib/ocaml",
    ),
    ("OCAML_TOPLEVEL_PATH", f"{OPAM_SWITCH}/lib/toplevel"),
    ("OPAMYES", "1"),
    ("OPAMPRECISETRACKING", "1"),
    ("OPAMERRLOGLEN", "0"),
    ("OPAM_SWITCH_PREFIX", OPAM_SWITCH),
    ("OPAMCONFIRMLEVEL", "unsafe-yes"),
    ("PATH", f"{OPAM_SWITCH}/bin:/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"),
)

MIRAGE_EXTRA_REPOS = (
    "opam-overlays:https://github.com/dune-universe/opam-overlays.git"
    "#395cbc4acc1f4524853728c5885f32f1cfff281b,"
    "mirage-opam-overlays:https://github.com/dune-universe/mirage-opam-overlays.git"
    "#797cb363df3ff763c43c8fbec5cd44de2878757e"
)


class MirageFramework(Framework):
    name = "mirage"
    doc = "MirageOS unikernels built from source; rootfs must be supplied as a block or raw image."
    default_rootfs_type = "block"
    rootfs_types = frozenset({"block", "raw"})
    monitors = frozenset({"hvt", "spt", "qemu", "virtio"})
    architectures = DEFAULT_ARCHES
    builds_kernel = True

    def create_rootfs(self, ctx: BuildContext) -> State:
        raise CapabilityError("Can not create rootfs for Mirage")

    def update_rootfs(self, ctx: BuildContext, base: State) -> State:
        raise CapabilityError("Can not update rootfs for Mirage")

    def target_mode(self) -> str:
        # qemu runs the virtio target
        return "virtio" if self.platform.monitor == "qemu" else self.platform.monitor

    def build_kernel(self, ctx: BuildContext) -> State:
        config = ctx.config
        mode = self.target_mode()
        tools = State.image(config.mirage_tool_image, custom_name="Internal:Build Mirage unikernel")
        work = files_state([f"/:{WORKDIR}"], app_source(ctx), tools, owner=OPAM_UID)

        work = work.dir(WORKDIR).with_user("opam")
        for key, value in OPAM_ENV:
            work = work.add_env(key, value)
        work = work.add_env("MODE", mode)

        configured = work.run(f"mirage configure -t {mode}").root()
        prepared = configured.add_env("MIRAGE_EXTRA_REPOS", MIRAGE_EXTRA_REPOS)
        for step in ("make lock", "make depends", "make pull"):
            prepared = prepared.run(step).root()
        built = (
            prepared.add_env("DUNE_CACHE", "enabled")
            .add_env("DUNE_CACHE_TRANSPORT", "direct")
            .run("make build")
            .root()
        )

        collect = built.with_user("root").run(
            (
                "find", "dist", "-type", "f", "-perm", "-111",
                "-exec", "cp", "{}", config.kernel_path, ";",
                "-quit",
            ),
            mounts=(output_mount(config.boot_dir),),
        )
        return extract_artifacts(collect, config.boot_dir)
