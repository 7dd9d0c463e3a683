import pytest

from graphkit.state import State
from unipack.framework.config import PackerConfig
from unipack.framework.entries import Origin, PackEntry
from unipack.framework.errors import ErrorKind, InvariantError
from unipack.framework.planner import PackagingPlan, set_base_and_get_paths

CONFIG = PackerConfig()
KERNEL_PATH = CONFIG.kernel_path
ROOTFS_PATH = CONFIG.rootfs_path

LOCAL = State.local("context")
KERNEL_IMAGE = State.image("acme/kernel:1")
ROOTFS_IMAGE = State.image("acme/rootfs:1")
SYNTHESIZED = State.image("acme/synthesized")

KERNELS = {
    "local": PackEntry(origin=Origin.LOCAL, state=LOCAL, file_path="kernel"),
    "remote": PackEntry(origin=Origin.REMOTE, state=KERNEL_IMAGE, file_path="/k", source_ref="acme/kernel:1"),
}
ROOTFSES = {
    "empty": PackEntry.empty(),
    "local": PackEntry(origin=Origin.LOCAL, state=LOCAL, file_path="rootfs.img"),
    "scratch-file": PackEntry(origin=Origin.SCRATCH, state=SYNTHESIZED, file_path=ROOTFS_PATH),
    "scratch-raw": PackEntry(origin=Origin.SCRATCH, state=SYNTHESIZED, file_path=""),
    "remote-file": PackEntry(
        origin=Origin.REMOTE, state=ROOTFS_IMAGE, file_path="/rootfs.img", source_ref="acme/rootfs:1"
    ),
    "remote-whole": PackEntry(origin=Origin.REMOTE, state=ROOTFS_IMAGE, source_ref="acme/rootfs:1"),
}


# (kernel, rootfs) -> (base, copies as (source, src, dst), kernel path, rootfs path)
CASES = [
    ("local", "empty", State.scratch(), [(LOCAL, "kernel", KERNEL_PATH)], KERNEL_PATH, ""),
    (
        "local",
        "local",
        State.scratch(),
        [(LOCAL, "kernel", KERNEL_PATH), (LOCAL, "rootfs.img", ROOTFS_PATH)],
        KERNEL_PATH,
        ROOTFS_PATH,
    ),
    (
        "local",
        "scratch-file",
        State.scratch(),
        [(LOCAL, "kernel", KERNEL_PATH), (SYNTHESIZED, ROOTFS_PATH, ROOTFS_PATH)],
        KERNEL_PATH,
        ROOTFS_PATH,
    ),
    ("local", "scratch-raw", SYNTHESIZED, [(LOCAL, "kernel", KERNEL_PATH)], KERNEL_PATH, ""),
    (
        "local",
        "remote-file",
        State.scratch(),
        [(LOCAL, "kernel", KERNEL_PATH), (ROOTFS_IMAGE, "/rootfs.img", ROOTFS_PATH)],
        KERNEL_PATH,
        ROOTFS_PATH,
    ),
    ("local", "remote-whole", ROOTFS_IMAGE, [(LOCAL, "kernel", KERNEL_PATH)], KERNEL_PATH, ""),
    ("remote", "empty", KERNEL_IMAGE, [], "/k", ""),
    ("remote", "local", KERNEL_IMAGE, [(LOCAL, "rootfs.img", ROOTFS_PATH)], "/k", ROOTFS_PATH),
    ("remote", "scratch-file", KERNEL_IMAGE, [(SYNTHESIZED, ROOTFS_PATH, ROOTFS_PATH)], "/k", ROOTFS_PATH),
    ("remote", "scratch-raw", SYNTHESIZED, [(KERNEL_IMAGE, "/k", KERNEL_PATH)], KERNEL_PATH, ""),
    ("remote", "remote-file", KERNEL_IMAGE, [(ROOTFS_IMAGE, "/rootfs.img", ROOTFS_PATH)], "/k", ROOTFS_PATH),
    ("remote", "remote-whole", ROOTFS_IMAGE, [(KERNEL_IMAGE, "/k", KERNEL_PATH)], KERNEL_PATH, ""),
]


@pytest.mark.parametrize(
    ("kernel", "rootfs", "base", "copies", "kernel_path", "rootfs_path"),
    CASES,
    ids=[f"{k}-kernel/{r}-rootfs" for k, r, *_ in CASES],
)
def test_base_and_copies_for_every_origin_combination(kernel, rootfs, base, copies, kernel_path, rootfs_path):
    plan = PackagingPlan()
    paths = set_base_and_get_paths(plan, KERNELS[kernel], ROOTFSES[rootfs], CONFIG)

    assert paths == (kernel_path, rootfs_path)
    assert plan.base == base
    assert [(c.src_state, c.src_path, c.dst_path) for c in plan.copies] == copies
    assert len(plan.copies) <= 2


def test_base_ref_follows_the_chosen_base():
    plan = PackagingPlan()
    set_base_and_get_paths(plan, KERNELS["remote"], ROOTFSES["remote-whole"], CONFIG)
    assert plan.config.base_ref == "acme/rootfs:1"

    plan = PackagingPlan()
    set_base_and_get_paths(plan, KERNELS["remote"], ROOTFSES["remote-file"], CONFIG)
    assert plan.config.base_ref == "acme/kernel:1"

    plan = PackagingPlan()
    set_base_and_get_paths(plan, KERNELS["local"], ROOTFSES["empty"], CONFIG)
    assert plan.config.base_ref == "scratch"


def test_built_kernel_behaves_like_a_base_candidate():
    built = PackEntry(origin=Origin.SCRATCH, state=SYNTHESIZED, file_path=KERNEL_PATH)
    plan = PackagingPlan()
    assert set_base_and_get_paths(plan, built, ROOTFSES["empty"], CONFIG) == (KERNEL_PATH, "")
    assert plan.base == SYNTHESIZED
    assert plan.copies == []


def test_empty_kernel_is_an_invariant_error():
    with pytest.raises(InvariantError, match="Source of kernel State is empty") as excinfo:
        set_base_and_get_paths(PackagingPlan(), PackEntry.empty(), ROOTFSES["empty"], CONFIG)
    assert excinfo.value.kind is ErrorKind.INVARIANT


def test_canonical_paths_come_from_config():
    config = PackerConfig(kernel_path="/boot/vmlinuz", rootfs_path="/boot/initrd")
    plan = PackagingPlan()
    paths = set_base_and_get_paths(plan, KERNELS["local"], ROOTFSES["local"], config)
    assert paths == ("/boot/vmlinuz", "/boot/initrd")
