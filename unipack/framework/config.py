from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, fields
from typing import Any, Mapping

from graphkit.reference import normalize_image_reference

from unipack.foundation.config_io import CONFIG_ENV_VAR, explicit_config_path, load_config

logger = logging.getLogger(__name__)


def parse_str(value: Any, path: str, *, allow_empty: bool = False) -> str:
    if value is None:
        raise ValueError(f"Invalid config value for {path}: None")
    if not isinstance(value, str):
        raise ValueError(f"Invalid config type for {path}: expected string")
    normalized = value.strip()
    if not normalized and not allow_empty:
        raise ValueError(f"Invalid config value for {path}: must be a non-empty string")
    return normalized


def parse_abs_path(value: Any, path: str) -> str:
    normalized = parse_str(value, path)
    if not normalized.startswith("/"):
        raise ValueError(f"Invalid config value for {path}: must be an absolute path")
    normalized = posixpath.normpath(normalized)
    if normalized == "/":
        raise ValueError(f"Invalid config value for {path}: must not be /")
    return normalized


def parse_image_ref(value: Any, path: str) -> str:
    normalized = parse_str(value, path)
    try:
        normalize_image_reference(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid config value for {path}: {exc}") from exc
    return normalized


@dataclass(frozen=True)
class PackerConfig:
    """Fixed paths, namespaces and tool images used while planning an image."""

    kernel_path: str = "/.boot/kernel"
    rootfs_path: str = "/.boot/rootfs"
    metadata_path: str = "/urunc.json"
    annotation_prefix: str = "com.urunc.unikernel."
    builder_hub: str = "unikraft.org"
    archive_tool_image: str = "harbor.nbfc.io/nubificus/bunny/libarchive:latest"
    rumprun_tool_image: str = "harbor.nbfc.io/nubificus/bunny/rumprun/tools:latest"
    mirage_tool_image: str = "harbor.nbfc.io/nubificus/bunny/mirage/tools:latest"
    build_context_name: str = "context"
    supported_version: str = "0.1"

    def __post_init__(self) -> None:
        for name in ("kernel_path", "rootfs_path", "metadata_path"):
            object.__setattr__(self, name, parse_abs_path(getattr(self, name), name))
        if posixpath.dirname(self.kernel_path) != posixpath.dirname(self.rootfs_path):
            raise ValueError(
                "kernel_path and rootfs_path must share a directory "
                f"(got {self.kernel_path}, {self.rootfs_path})"
            )
        if self.kernel_path == self.rootfs_path:
            raise ValueError("kernel_path and rootfs_path must differ")

        for name in ("archive_tool_image", "rumprun_tool_image", "mirage_tool_image"):
            object.__setattr__(self, name, parse_image_ref(getattr(self, name), name))

        for name in ("annotation_prefix", "builder_hub", "build_context_name", "supported_version"):
            object.__setattr__(self, name, parse_str(getattr(self, name), name))

    @property
    def boot_dir(self) -> str:
        return posixpath.dirname(self.kernel_path)

    def annotation(self, key: str) -> str:
        return f"{self.annotation_prefix}{key}"

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "PackerConfig":
        """
        Build a PackerConfig from the ``packer`` section of a loaded config.

        Unknown keys are rejected so typos do not silently fall back to
        defaults. A missing section yields the defaults.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Invalid config type for config: expected mapping")
        section = cfg.get("packer")
        if section is None:
            return cls()
        if not isinstance(section, Mapping):
            raise ValueError("Invalid config type for packer: expected mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in section.keys() if key not in known)
        if unknown:
            raise ValueError(f"Unknown config keys under packer: {', '.join(unknown)}")

        values: dict[str, str] = {}
        for key, value in section.items():
            # YAML reads `0.1` as a float
            if key == "supported_version" and isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)
            values[key] = parse_str(value, f"packer.{key}")
        return cls(**values)


def load_packer_config(
    config_path: str | None = None,
    *,
    env_var: str | None = CONFIG_ENV_VAR,
    start_dir: str | None = None,
) -> PackerConfig:
    """
    Load the packer settings.

    An explicit path (argument or env var) must exist. Without one, the repo's
    config/config.yaml is used when it can be found; otherwise the built-in
    defaults apply.
    """

    explicit = explicit_config_path(config_path, env_var)
    try:
        cfg, meta = load_config(config_path=config_path, env_var=env_var, start_dir=start_dir)
    except FileNotFoundError:
        if explicit:
            raise
        logger.debug("No repo config found; using built-in packer defaults")
        return PackerConfig()

    logger.debug("Loaded config (%s): %s", meta["mode"], ", ".join(meta["paths"]))
    return PackerConfig.from_dict(cfg)
