"""Pre-planning checks on a packaging request.

Every check raises ValidationError with a message meant for the end user.
"""

from __future__ import annotations

from packaging.version import InvalidVersion, Version

from unipack.framework.errors import ValidationError
from unipack.framework.hops import App, Hops, Kernel, Platform, Rootfs


def check_version(user_version: str, supported_version: str) -> None:
    if not user_version:
        raise ValidationError("The version field is necessary")
    try:
        supported = Version(supported_version)
    except InvalidVersion as exc:
        raise ValidationError(
            f"Internal error in current bunnyfile version {supported_version}: {exc}"
        ) from exc
    try:
        requested = Version(user_version)
    except InvalidVersion as exc:
        raise ValidationError(
            f"Could not parse version in user bunnyfile {user_version}: {exc}"
        ) from exc
    if supported < requested:
        raise ValidationError(
            f"Unsupported version {user_version}. Please use {supported_version} or earlier"
        )


def validate_platform(platform: Platform) -> None:
    if not platform.framework:
        raise ValidationError("The framework field of platforms is necessary")
    if not platform.monitor:
        raise ValidationError("The monitor field of platforms is necessary")


def validate_kernel(kernel: Kernel, app: App | None = None) -> None:
    """
    The kernel needs both ``from`` and ``path``, unless it is left out
    entirely and an ``app`` section asks for it to be built from source.
    """

    if not kernel.from_ and not kernel.path and app is not None and not app.is_empty:
        return
    if not kernel.from_:
        raise ValidationError("The from field of kernel is necessary")
    if not kernel.path:
        raise ValidationError("The path field of kernel is necessary")


def validate_app(app: App) -> None:
    if app.is_empty:
        return
    if not app.name and not app.is_local:
        raise ValidationError("The name field of app is necessary when from is a git remote")


def validate_rootfs(rootfs: Rootfs) -> None:
    if rootfs.is_scratch and rootfs.path:
        raise ValidationError("The from field of rootfs can not be empty or scratch, if path is set")
    if rootfs.path and rootfs.type == "raw":
        raise ValidationError("The path field in rootfs can not be combined with a raw rootfs")
    if rootfs.is_local and rootfs.type == "raw":
        raise ValidationError("If type of rootfs is raw, then from can not be local")
    if rootfs.is_local and not rootfs.path:
        raise ValidationError("The path field of rootfs is necessary when from is local")
    if rootfs.includes and not rootfs.is_scratch:
        raise ValidationError("Adding files to an existing rootfs is not yet supported")
    for entry in rootfs.includes:
        if not entry.split(":", 1)[0]:
            raise ValidationError(
                "Invalid syntax in rootfs's include. An entry can not have its first part empty"
            )


def validate_hops(hops: Hops, supported_version: str) -> None:
    check_version(hops.version, supported_version)
    validate_platform(hops.platform)
    validate_app(hops.app)
    validate_kernel(hops.kernel, hops.app)
    validate_rootfs(hops.rootfs)
