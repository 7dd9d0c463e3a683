"""Decode the declarative YAML packaging format."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import yaml

from unipack.framework.errors import ValidationError
from unipack.framework.hops import App, Hops, Kernel, Platform, Rootfs

logger = logging.getLogger(__name__)

TOP_LEVEL_KEYS = frozenset(
    {"version", "platforms", "rootfs", "kernel", "app", "cmd", "cmdline", "entrypoint", "envs"}
)
PLATFORM_KEYS = frozenset({"framework", "version", "monitor", "architecture", "arch"})
ROOTFS_KEYS = frozenset({"from", "path", "type", "include"})
KERNEL_KEYS = frozenset({"from", "path"})
APP_KEYS = frozenset({"from", "branch", "name"})


def _section(payload: Mapping[str, Any], key: str, allowed: frozenset[str]) -> dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"Invalid type for {key}: expected mapping")
    unknown = sorted(str(k) for k in value.keys() if k not in allowed)
    if unknown:
        raise ValidationError(f"Unknown keys under {key}: {', '.join(unknown)}")
    return dict(value)


def _scalar(section: Mapping[str, Any], key: str, path: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"Invalid type for {path}: expected string")
    return str(value).strip()


def _string_list(value: Any, path: str, *, split_string: bool = False) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        if split_string:
            return tuple(value.split())
        raise ValidationError(f"Invalid type for {path}: expected list of strings")
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"Invalid type for {path}: expected list of strings")
    items: list[str] = []
    for index, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValidationError(f"Invalid type for {path}[{index}]: expected string")
        items.append(str(item))
    return tuple(items)


def hops_from_dict(payload: Mapping[str, Any]) -> Hops:
    if not isinstance(payload, Mapping):
        raise ValidationError("Bunnyfile must contain a YAML mapping")
    unknown = sorted(str(k) for k in payload.keys() if k not in TOP_LEVEL_KEYS)
    if unknown:
        raise ValidationError(f"Unknown top-level keys: {', '.join(unknown)}")

    platforms = _section(payload, "platforms", PLATFORM_KEYS)
    rootfs = _section(payload, "rootfs", ROOTFS_KEYS)
    kernel = _section(payload, "kernel", KERNEL_KEYS)
    app = _section(payload, "app", APP_KEYS)

    arch = _scalar(platforms, "architecture", "platforms.architecture") or _scalar(
        platforms, "arch", "platforms.arch"
    )

    if "cmd" in payload:
        if "cmdline" in payload:
            logger.debug("Both cmd and cmdline are set; ignoring cmdline")
        cmd = _string_list(payload.get("cmd"), "cmd", split_string=True)
    else:
        cmd = _string_list(payload.get("cmdline"), "cmdline", split_string=True)

    try:
        return Hops(
            version=_scalar(payload, "version", "version"),
            platform=Platform(
                framework=_scalar(platforms, "framework", "platforms.framework"),
                monitor=_scalar(platforms, "monitor", "platforms.monitor"),
                version=_scalar(platforms, "version", "platforms.version"),
                arch=arch,
            ),
            rootfs=Rootfs(
                from_=_scalar(rootfs, "from", "rootfs.from") or "scratch",
                path=_scalar(rootfs, "path", "rootfs.path"),
                type=_scalar(rootfs, "type", "rootfs.type"),
                includes=_string_list(rootfs.get("include"), "rootfs.include"),
            ),
            kernel=Kernel(
                from_=_scalar(kernel, "from", "kernel.from"),
                path=_scalar(kernel, "path", "kernel.path"),
            ),
            app=App(
                from_=_scalar(app, "from", "app.from"),
                branch=_scalar(app, "branch", "app.branch"),
                name=_scalar(app, "name", "app.name"),
            ),
            cmd=cmd,
            entrypoint=_string_list(payload.get("entrypoint"), "entrypoint", split_string=True),
            envs=_string_list(payload.get("envs"), "envs"),
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc)) from exc


def parse_bunnyfile(text: str) -> Hops:
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid YAML in bunnyfile: {exc}") from exc
    if payload is None:
        payload = {}
    return hops_from_dict(payload)
