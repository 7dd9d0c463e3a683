from __future__ import annotations

import re

DEFAULT_REGISTRY = "docker.io"
DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"

_NAME_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$")


def _looks_like_registry(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def split_image_reference(ref: str) -> tuple[str, str, str, str]:
    """
    Split an image reference into (registry, repository, tag, digest).

    Follows the docker normalization rules: a missing registry becomes
    docker.io, single-component docker.io names get the library/ namespace,
    and a reference with neither tag nor digest gets the latest tag.
    """

    if not isinstance(ref, str) or not ref.strip():
        raise ValueError("image reference must be a non-empty string")
    remainder = ref.strip()

    digest = ""
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not _DIGEST.match(digest):
            raise ValueError(f"Invalid digest in image reference: {ref}")

    tag = ""
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
        if not _TAG.match(tag):
            raise ValueError(f"Invalid tag in image reference: {ref}")

    parts = remainder.split("/")
    if len(parts) > 1 and _looks_like_registry(parts[0]):
        registry, path_parts = parts[0], parts[1:]
    else:
        registry, path_parts = DEFAULT_REGISTRY, parts

    if registry == DEFAULT_REGISTRY and len(path_parts) == 1:
        path_parts = [DEFAULT_NAMESPACE, *path_parts]

    for component in path_parts:
        if not _NAME_COMPONENT.match(component):
            raise ValueError(f"Invalid repository name in image reference: {ref}")

    if not tag and not digest:
        tag = DEFAULT_TAG
    return registry, "/".join(path_parts), tag, digest


def normalize_image_reference(ref: str) -> str:
    registry, repository, tag, digest = split_image_reference(ref)
    normalized = f"{registry}/{repository}"
    if tag:
        normalized += f":{tag}"
    if digest:
        normalized += f"@{digest}"
    return normalized
