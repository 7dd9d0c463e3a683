"""OCI image config for the packed image.

Resolving a base image's config needs registry access, which lives outside
this package; callers pass a resolver. Everything else here is pure.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Protocol

from graphkit.state import Platform

from unipack.framework.config import PackerConfig
from unipack.framework.errors import MaterializationError
from unipack.framework.graph import is_builder_hub_ref, monitor_os
from unipack.framework.planner import PackagingPlan

logger = logging.getLogger(__name__)


class BaseConfigResolver(Protocol):
    def __call__(self, ref: str, platform: Platform) -> Mapping[str, Any]:
        ...


def base_config_platform(ref: str, monitor: str, config: PackerConfig, host_arch: str) -> Platform | None:
    """Platform to resolve ``ref``'s config for; None when there is no base image."""
    if not ref or ref == "scratch":
        return None
    if is_builder_hub_ref(ref, config):
        return Platform(os=monitor_os(monitor), architecture=host_arch)
    return Platform(os="linux", architecture=host_arch)


def resolve_base_config(
    plan: PackagingPlan,
    resolver: BaseConfigResolver,
    config: PackerConfig,
    host_arch: str,
) -> dict[str, Any]:
    ref = plan.config.base_ref
    platform = base_config_platform(ref, plan.config.monitor, config, host_arch)
    if platform is None:
        return {}
    try:
        resolved = resolver(ref, platform)
    except (OSError, ValueError) as exc:
        raise MaterializationError(f"Failed to get image config from {ref}: {exc}") from exc
    if not isinstance(resolved, Mapping):
        raise MaterializationError(f"Image config of {ref} must be a mapping")
    logger.debug("Resolved base config for %s (%s/%s)", ref, platform.os, platform.architecture)
    return dict(resolved)


def _merge_env(base_env: Any, extra: tuple[str, ...]) -> list[str]:
    merged: dict[str, str] = {}
    for entry in list(base_env or []) + list(extra):
        key, _, value = str(entry).partition("=")
        merged.pop(key, None)
        merged[key] = value
    return [f"{key}={value}" for key, value in merged.items()]


def apply_image_config(
    base_config: Mapping[str, Any] | None,
    plan: PackagingPlan,
    host_arch: str,
) -> dict[str, Any]:
    """
    Derive the final image config from the base image's config.

    The platform is reset to linux on the host architecture and the rootfs to
    an empty layer list. Cmd and Entrypoint come from the plan, Env is
    extended with the plan's variables, and the annotations are merged into
    the labels. Other base fields carry over.
    """

    result: dict[str, Any] = copy.deepcopy(dict(base_config or {}))
    for key in ("variant", "os.version", "os.features"):
        result.pop(key, None)
    result["architecture"] = host_arch
    result["os"] = "linux"
    result["rootfs"] = {"type": "layers", "diff_ids": []}

    image_config = dict(result.get("config") or {})
    image_config["Cmd"] = list(plan.config.cmd)
    image_config["Entrypoint"] = list(plan.config.entrypoint)
    env = _merge_env(image_config.get("Env"), plan.config.envs)
    if env:
        image_config["Env"] = env
    labels = dict(image_config.get("Labels") or {})
    labels.update(plan.annotations)
    image_config["Labels"] = labels
    result["config"] = image_config
    return result


def manifest_annotations(plan: PackagingPlan) -> dict[str, str]:
    return dict(sorted(plan.annotations.items()))
