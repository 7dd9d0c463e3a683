from __future__ import annotations

from collections.abc import Sequence

from unipack.framework.errors import InvariantError
from unipack.framework.hops import Platform

UNIKERNEL_TYPE = "unikernelType"
HYPERVISOR = "hypervisor"
CMDLINE = "cmdline"
BINARY = "binary"
MOUNT_ROOTFS = "mountRootfs"
UNIKERNEL_VERSION = "unikernelVersion"
INITRD = "initrd"
BLOCK = "block"
BLOCK_MOUNT_POINT = "blkMntPoint"

ROOTFS_KEYS = (INITRD, BLOCK, BLOCK_MOUNT_POINT, MOUNT_ROOTFS)


def build_annotations(
    platform: Platform,
    cmd: Sequence[str],
    kernel_path: str,
    rootfs_path: str,
    rootfs_type: str,
    *,
    prefix: str,
) -> dict[str, str]:
    """
    Runtime annotations for the packed image, keyed under ``prefix``.

    ``rootfs_type`` is the effective type, or "" when there is no rootfs.
    Exactly one rootfs form is described: initrd path, block path with its
    mount point, or mountRootfs=true for raw. initrd and block without a path
    is an invariant error.
    """

    annotations = {
        prefix + UNIKERNEL_TYPE: platform.framework,
        prefix + HYPERVISOR: platform.monitor,
        prefix + CMDLINE: " ".join(cmd),
        prefix + BINARY: kernel_path,
        prefix + MOUNT_ROOTFS: "false",
    }
    if platform.version:
        annotations[prefix + UNIKERNEL_VERSION] = platform.version

    if rootfs_type == "":
        return annotations
    if rootfs_type not in ("raw", "initrd", "block"):
        raise InvariantError(f"Unexpected RootfsType value: {rootfs_type!r}")
    if rootfs_type == "raw":
        annotations[prefix + MOUNT_ROOTFS] = "true"
        return annotations
    if not rootfs_path:
        raise InvariantError(f"A {rootfs_type} rootfs needs a path inside the image")
    if rootfs_type == "initrd":
        annotations[prefix + INITRD] = rootfs_path
    else:
        annotations[prefix + BLOCK] = rootfs_path
        annotations[prefix + BLOCK_MOUNT_POINT] = "/"
    return annotations
