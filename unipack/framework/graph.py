"""Packaging-specific graph helpers built on graphkit."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from graphkit.patterns import IncludeFormatError, archive_pipeline, copy_chain
from graphkit.state import Platform, State

from unipack.framework.config import PackerConfig
from unipack.framework.errors import ResolutionError

logger = logging.getLogger(__name__)

# Monitor names that differ from the platform OS name used on the builder hub.
MONITOR_OS_ALIASES: dict[str, str] = {"firecracker": "fc"}


def monitor_os(monitor: str) -> str:
    return MONITOR_OS_ALIASES.get(monitor, monitor)


def is_builder_hub_ref(ref: str, config: PackerConfig) -> bool:
    return ref.startswith(config.builder_hub)


def base_state(ref: str, monitor: str, config: PackerConfig, host_arch: str) -> State:
    """
    Resolve a symbolic base reference to a source node.

    ``scratch`` (or empty) is the empty state. Builder-hub images are pulled
    for the monitor's platform on the host architecture; anything else is a
    plain image reference.
    """

    if not ref or ref == "scratch":
        return State.scratch()
    if is_builder_hub_ref(ref, config):
        if not monitor:
            raise ResolutionError(f"A monitor is required to resolve builder hub image {ref}")
        platform = Platform(os=monitor_os(monitor), architecture=host_arch)
        logger.debug("Resolving %s for platform %s/%s", ref, platform.os, platform.architecture)
        return _image(ref, platform=platform)
    return _image(ref)


def _image(ref: str, *, platform: Platform | None = None) -> State:
    try:
        return State.image(ref, platform=platform)
    except ValueError as exc:
        raise ResolutionError(f"Invalid image reference {ref}: {exc}") from exc


def files_state(includes: Iterable[str], from_state: State, to_state: State, *, owner: int | None = None) -> State:
    try:
        return copy_chain(includes, from_state, to_state, owner=owner)
    except IncludeFormatError as exc:
        raise ResolutionError(str(exc)) from exc


def initrd_state(content: State, config: PackerConfig) -> State:
    return archive_pipeline(
        content,
        tool_image=config.archive_tool_image,
        output_path=config.rootfs_path,
    )
