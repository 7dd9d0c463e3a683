from pathlib import Path

import pytest

from unipack.foundation.config_io import deep_merge, find_repo_root, load_config
from unipack.framework.config import PackerConfig, load_packer_config


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch):
    monkeypatch.delenv("UNIPACK_CONFIG", raising=False)


def _repo(tmp_path: Path, base: str, local: str | None = None) -> Path:
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n", encoding="utf-8")
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(base, encoding="utf-8")
    if local is not None:
        (config_dir / "config.local.yaml").write_text(local, encoding="utf-8")
    return tmp_path


def test_defaults():
    config = PackerConfig()
    assert config.kernel_path == "/.boot/kernel"
    assert config.rootfs_path == "/.boot/rootfs"
    assert config.boot_dir == "/.boot"
    assert config.annotation("binary") == "com.urunc.unikernel.binary"


def test_repo_config_matches_defaults():
    repo_root = Path(__file__).resolve().parents[1]
    assert load_packer_config(start_dir=str(repo_root)) == PackerConfig()


def test_from_dict_reads_packer_section():
    config = PackerConfig.from_dict({"packer": {"builder_hub": "hub.example.com", "supported_version": 0.2}})
    assert config.builder_hub == "hub.example.com"
    assert config.supported_version == "0.2"
    assert PackerConfig.from_dict({}) == PackerConfig()


@pytest.mark.parametrize(
    ("cfg", "message"),
    [
        ({"packer": {"kernal_path": "/k"}}, "Unknown config keys under packer: kernal_path"),
        ({"packer": []}, "Invalid config type for packer: expected mapping"),
        ({"packer": {"builder_hub": 3}}, "Invalid config type for packer.builder_hub: expected string"),
        ({"packer": {"kernel_path": "boot/kernel"}}, "must be an absolute path"),
        ({"packer": {"kernel_path": "/"}}, "must not be /"),
        ({"packer": {"rootfs_path": "/other/rootfs"}}, "must share a directory"),
        ({"packer": {"rootfs_path": "/.boot/kernel"}}, "must differ"),
        ({"packer": {"archive_tool_image": "Not A Ref"}}, "Invalid config value for archive_tool_image"),
    ],
)
def test_from_dict_rejects_bad_values(cfg, message):
    with pytest.raises(ValueError, match=message):
        PackerConfig.from_dict(cfg)


def test_base_and_local_overlay(tmp_path):
    repo = _repo(
        tmp_path,
        "packer:\n  builder_hub: base.example.com\n  metadata_path: /meta.json\n",
        "packer:\n  builder_hub: local.example.com\n",
    )
    cfg, meta = load_config(start_dir=str(repo))
    assert meta["mode"] == "base+local"
    assert cfg == {"packer": {"builder_hub": "local.example.com", "metadata_path": "/meta.json"}}

    config = load_packer_config(start_dir=str(repo))
    assert config.builder_hub == "local.example.com"
    assert config.metadata_path == "/meta.json"


def test_explicit_path_skips_overlay(tmp_path):
    repo = _repo(tmp_path, "packer:\n  builder_hub: base.example.com\n", "packer:\n  builder_hub: local.example.com\n")
    explicit = repo / "other.yaml"
    explicit.write_text("packer:\n  build_context_name: ctx\n", encoding="utf-8")

    cfg, meta = load_config(config_path=str(explicit), start_dir=str(repo))
    assert meta["mode"] == "explicit"
    assert cfg == {"packer": {"build_context_name": "ctx"}}


def test_env_var_path(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("packer:\n  builder_hub: env.example.com\n", encoding="utf-8")
    monkeypatch.setenv("UNIPACK_CONFIG", str(path))

    _, meta = load_config()
    assert meta["mode"] == "env"
    assert load_packer_config().builder_hub == "env.example.com"


def test_missing_explicit_config_is_an_error(tmp_path, monkeypatch):
    with pytest.raises(FileNotFoundError):
        load_packer_config(str(tmp_path / "missing.yaml"))

    monkeypatch.setenv("UNIPACK_CONFIG", str(tmp_path / "missing.yaml"))
    with pytest.raises(FileNotFoundError):
        load_packer_config(start_dir=str(tmp_path))


def test_without_repo_config_defaults_apply(tmp_path):
    (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")
    assert load_packer_config(start_dir=str(tmp_path)) == PackerConfig()


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("packer: [\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_packer_config(str(path))


def test_find_repo_root_walks_up(tmp_path):
    (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_repo_root(str(nested)) == str(tmp_path.resolve())


def test_deep_merge_rejects_shape_changes():
    assert deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 3}}) == {"a": {"b": 3, "c": 2}}
    assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}
    with pytest.raises(ValueError, match="Invalid config overlay merge at a"):
        deep_merge({"a": {"b": 1}}, {"a": 5})
