"""Input decoders and format detection."""

from __future__ import annotations

import logging
from typing import Literal

from unipack.framework.config import PackerConfig
from unipack.framework.hops import Hops
from unipack.framework.pack import resolve_host_arch, to_pack
from unipack.framework.planner import PackagingPlan
from unipack.framework.validate import validate_hops
from unipack.parsing.bunnyfile import hops_from_dict, parse_bunnyfile
from unipack.parsing.containerfile import (
    Containerfile,
    containerfile_to_pack,
    parse_containerfile,
    tokenize,
)

logger = logging.getLogger(__name__)

InputFormat = Literal["bunnyfile", "containerfile"]


def detect_format(text: str) -> InputFormat:
    """
    A file is a Containerfile when its first non-empty line that is not a
    ``#`` comment starts with FROM; anything else is a bunnyfile.
    """

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        return "containerfile" if stripped.startswith("FROM") else "bunnyfile"
    return "bunnyfile"


def load_hops(text: str, config: PackerConfig) -> Hops:
    hops = parse_bunnyfile(text)
    validate_hops(hops, config.supported_version)
    return hops


def parse_file(
    data: str | bytes, config: PackerConfig, *, host_arch: str | None = None
) -> PackagingPlan:
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    input_format = detect_format(text)
    logger.debug("Detected %s input", input_format)
    if input_format == "containerfile":
        return containerfile_to_pack(parse_containerfile(text), config, resolve_host_arch(host_arch))
    return to_pack(load_hops(text, config), config, host_arch=host_arch)


__all__ = [
    "Containerfile",
    "InputFormat",
    "containerfile_to_pack",
    "detect_format",
    "hops_from_dict",
    "load_hops",
    "parse_bunnyfile",
    "parse_containerfile",
    "parse_file",
    "tokenize",
]
