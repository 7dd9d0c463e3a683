from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "UNIPACK_CONFIG"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    markers = ("pyproject.toml", ".git")
    for candidate in (start_path, *start_path.parents):
        if (candidate / "pyproject.toml").is_file() or (candidate / ".git").exists():
            return str(candidate)

    raise FileNotFoundError(
        "Cannot locate repo root: searched from "
        f"{start_path} for {', '.join(markers)}"
    )


def load_yaml_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def deep_merge(base: Any, overlay: Any, *, path: str = "") -> Any:
    if overlay is None:
        return None
    if base is None:
        return overlay

    if isinstance(base, Mapping):
        if not isinstance(overlay, Mapping):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is mapping but overlay is {type(overlay).__name__}"
            )
        merged: dict[str, Any] = dict(base)
        for key, overlay_value in overlay.items():
            next_path = f"{path}.{key}" if path else str(key)
            merged[key] = (
                deep_merge(base[key], overlay_value, path=next_path) if key in base else overlay_value
            )
        return merged

    if isinstance(base, (list, tuple)):
        if not isinstance(overlay, (list, tuple)):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is list but overlay is {type(overlay).__name__}"
            )
        return list(overlay)

    if isinstance(overlay, (Mapping, list, tuple)):
        raise ValueError(
            f"Invalid config overlay merge at {path}: base is {type(base).__name__} but overlay is {type(overlay).__name__}"
        )
    return overlay


def explicit_config_path(config_path: str | None, env_var: str | None) -> str | None:
    """The single config file named by the caller or the env var, if any."""
    raw: str | None = None
    if config_path is not None:
        raw = str(config_path).strip() or None
    elif env_var:
        raw = os.environ.get(env_var, "").strip() or None
    if raw is None:
        return None
    return os.path.abspath(os.path.expandvars(os.path.expanduser(raw)))


def load_config(
    *,
    config_path: str | None = None,
    env_var: str | None = CONFIG_ENV_VAR,
    start_dir: str | None = None,
    config_rel_path: str = "config",
    config_name: str = "config.yaml",
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load configuration as ``(cfg, meta)``.

    An explicit path (argument, else env var) loads that one file with no
    overlay. Otherwise ``<repo>/config/config.yaml`` is loaded and
    ``config.local.yaml`` next to it, when present, is deep-merged on top.
    """

    explicit = explicit_config_path(config_path, env_var)
    if explicit:
        cfg = load_yaml_mapping(explicit)
        meta = {
            "mode": "explicit" if config_path is not None else "env",
            "paths": [explicit],
            "env_var": env_var,
            "repo_root": None,
        }
        return cfg, meta

    if os.path.isabs(config_rel_path):
        config_directory = config_rel_path
        repo_root = None
    else:
        repo_root = find_repo_root(start_dir)
        config_directory = os.path.join(repo_root, config_rel_path)

    base_config_path = os.path.join(config_directory, config_name)
    local_overlay_path = os.path.join(config_directory, "config.local.yaml")
    if not os.path.exists(base_config_path):
        raise FileNotFoundError(f"Missing base config file: {base_config_path}")

    cfg = load_yaml_mapping(base_config_path)
    loaded_paths = [os.path.abspath(base_config_path)]
    mode = "base"

    if os.path.exists(local_overlay_path):
        cfg = deep_merge(cfg, load_yaml_mapping(local_overlay_path))
        loaded_paths.append(os.path.abspath(local_overlay_path))
        mode = "base+local"

    meta = {"mode": mode, "paths": loaded_paths, "env_var": env_var, "repo_root": repo_root}
    return cfg, meta
