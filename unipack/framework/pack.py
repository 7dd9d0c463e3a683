"""Plan a packaging request and materialize the plan as a graph definition."""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping

from graphkit.definition import Definition, marshal
from graphkit.patterns import copy_in
from graphkit.platforms import host_architecture, linux_platform, normalize_architecture
from graphkit.state import Mkfile, State

from unipack.framework.annotations import build_annotations
from unipack.framework.config import PackerConfig
from unipack.framework.context import BuildContext
from unipack.framework.entries import resolve_kernel, resolve_rootfs
from unipack.framework.errors import MaterializationError, PackError
from unipack.framework.hops import Hops
from unipack.framework.planner import ImageSettings, PackagingPlan, set_base_and_get_paths
from unipack.frameworks.registry import FrameworkRegistry, get_framework_registry

logger = logging.getLogger(__name__)


def resolve_host_arch(host_arch: str | None = None) -> str:
    try:
        if host_arch:
            return normalize_architecture(host_arch)
        return host_architecture()
    except ValueError as exc:
        raise MaterializationError(str(exc)) from exc


def to_pack(
    hops: Hops,
    config: PackerConfig,
    *,
    host_arch: str | None = None,
    registry: FrameworkRegistry | None = None,
) -> PackagingPlan:
    """
    Plan one validated request: resolve both entries, choose the base and
    copies, then derive the annotations.
    """

    arch = resolve_host_arch(host_arch)
    framework = (registry or get_framework_registry()).create(hops.platform)
    framework.check_platform(arch)
    ctx = BuildContext(config=config, host_arch=arch, rootfs=hops.rootfs, app=hops.app)
    logger.debug("Planning %s image for monitor %s", framework.label, hops.platform.monitor)

    try:
        kernel = resolve_kernel(framework, ctx, hops.kernel)
    except PackError as exc:
        raise exc.with_context("Error handling kernel entry") from exc

    try:
        rootfs = resolve_rootfs(framework, ctx)
    except PackError as exc:
        raise exc.with_context("Error handling rootfs entry") from exc

    plan = PackagingPlan(
        config=ImageSettings(
            monitor=hops.platform.monitor,
            entrypoint=hops.entrypoint,
            cmd=hops.cmd,
            envs=hops.envs,
        )
    )
    try:
        kernel_path, rootfs_path = set_base_and_get_paths(plan, kernel, rootfs, config)
    except PackError as exc:
        raise exc.with_context("Error choosing base state") from exc

    rootfs_type = "" if rootfs.is_empty else framework.get_rootfs_type(hops.rootfs.type)
    try:
        plan.annotations = build_annotations(
            hops.platform,
            hops.cmd,
            kernel_path,
            rootfs_path,
            rootfs_type,
            prefix=config.annotation_prefix,
        )
    except PackError as exc:
        raise exc.with_context("Error setting annotations") from exc
    return plan


def urunc_json(annotations: Mapping[str, str]) -> bytes:
    """Annotations with base64 values, as compact JSON with sorted keys."""
    encoded = {
        key: base64.b64encode(value.encode("utf-8")).decode("ascii")
        for key, value in annotations.items()
    }
    return json.dumps(encoded, sort_keys=True, separators=(",", ":")).encode("utf-8")


def plan_state(plan: PackagingPlan, config: PackerConfig) -> State:
    state = plan.base
    for item in plan.copies:
        state = copy_in(state, item.src_state, item.src_path, item.dst_path)
    return state.file(Mkfile(config.metadata_path, urunc_json(plan.annotations), 0o644))


def pack_definition(
    plan: PackagingPlan, config: PackerConfig, *, host_arch: str | None = None
) -> Definition:
    arch = resolve_host_arch(host_arch)
    definition = marshal(plan_state(plan, config), platform=linux_platform(arch))
    logger.debug("Marshalled %d ops for linux/%s", len(definition), arch)
    return definition
