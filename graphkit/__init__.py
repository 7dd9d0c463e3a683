"""Operation-graph primitives for filesystem assembly.

This package is independent of `unipack.*`. It knows how to describe source,
file and exec nodes and how to marshal them into a content-addressed op list;
what to build belongs to the consuming application.
"""

from graphkit.definition import Definition, marshal, op_digest
from graphkit.patterns import (
    IncludeFormatError,
    archive_pipeline,
    copy_chain,
    copy_in,
    extract_artifacts,
    output_mount,
    parse_include,
)
from graphkit.platforms import host_architecture, linux_platform, normalize_architecture
from graphkit.reference import normalize_image_reference
from graphkit.state import Copy, ExecState, Mkdir, Mkfile, Mount, Platform, State

__all__ = [
    "Copy",
    "Definition",
    "ExecState",
    "IncludeFormatError",
    "Mkdir",
    "Mkfile",
    "Mount",
    "Platform",
    "State",
    "archive_pipeline",
    "copy_chain",
    "copy_in",
    "extract_artifacts",
    "host_architecture",
    "linux_platform",
    "marshal",
    "normalize_architecture",
    "normalize_image_reference",
    "op_digest",
    "output_mount",
    "parse_include",
]
