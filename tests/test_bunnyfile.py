import textwrap

import pytest

from unipack.framework.config import PackerConfig
from unipack.framework.errors import ValidationError
from unipack.parsing import load_hops
from unipack.parsing.bunnyfile import hops_from_dict, parse_bunnyfile

FULL = textwrap.dedent(
    """\
    #syntax=harbor.nbfc.io/nubificus/bunny:latest
    version: 0.1

    platforms:
      framework: unikraft
      version: v0.15.0
      monitor: qemu
      architecture: x86

    rootfs:
      from: scratch
      type: initrd
      include:
        - nginx.conf:/nginx/conf/nginx.conf
        - index.html

    kernel:
      from: local
      path: build/kernel

    cmd: ["-c", "/nginx/conf/nginx.conf"]
    entrypoint: /bin/sh -c
    envs:
      - A=1
      - B=two words
    """
)


def test_parse_full_bunnyfile():
    hops = parse_bunnyfile(FULL)
    assert hops.version == "0.1"
    assert hops.platform.framework == "unikraft"
    assert hops.platform.version == "v0.15.0"
    assert hops.platform.monitor == "qemu"
    assert hops.platform.arch == "x86"
    assert hops.rootfs.from_ == "scratch"
    assert hops.rootfs.type == "initrd"
    assert hops.rootfs.includes == ("nginx.conf:/nginx/conf/nginx.conf", "index.html")
    assert hops.kernel.from_ == "local"
    assert hops.kernel.path == "build/kernel"
    assert hops.cmd == ("-c", "/nginx/conf/nginx.conf")
    assert hops.entrypoint == ("/bin/sh", "-c")
    assert hops.envs == ("A=1", "B=two words")
    assert hops.app.is_empty


def test_rootfs_from_defaults_to_scratch():
    hops = hops_from_dict({"version": "0.1", "platforms": {"framework": "f", "monitor": "m"}})
    assert hops.rootfs.from_ == "scratch"


def test_cmd_list_wins_over_legacy_cmdline():
    hops = hops_from_dict({"version": "0.1", "cmd": ["a", "b"], "cmdline": "x y z"})
    assert hops.cmd == ("a", "b")


def test_legacy_cmdline_is_split_on_whitespace():
    hops = hops_from_dict({"version": "0.1", "cmdline": "nginx  -c /conf"})
    assert hops.cmd == ("nginx", "-c", "/conf")


def test_arch_alias():
    hops = hops_from_dict({"version": "0.1", "platforms": {"framework": "f", "monitor": "m", "arch": "arm64"}})
    assert hops.platform.arch == "arm64"


def test_app_section():
    hops = hops_from_dict(
        {
            "version": "0.1",
            "app": {"from": "https://github.com/acme/hello.git", "branch": "main", "name": "hello"},
        }
    )
    assert (hops.app.from_, hops.app.branch, hops.app.name) == (
        "https://github.com/acme/hello.git",
        "main",
        "hello",
    )


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"version": "0.1", "kernal": {}}, "Unknown top-level keys: kernal"),
        ({"version": "0.1", "rootfs": {"form": "x"}}, "Unknown keys under rootfs: form"),
        ({"version": "0.1", "rootfs": "scratch"}, "Invalid type for rootfs: expected mapping"),
        ({"version": "0.1", "rootfs": {"include": "a"}}, "Invalid type for rootfs.include"),
        ({"version": "0.1", "kernel": {"from": ["a"]}}, "Invalid type for kernel.from"),
        ({"version": "0.1", "envs": ["NOVALUE"]}, "expected KEY=VALUE"),
    ],
)
def test_malformed_input_is_a_validation_error(payload, message):
    with pytest.raises(ValidationError, match=message):
        hops_from_dict(payload)


def test_invalid_yaml():
    with pytest.raises(ValidationError, match="Invalid YAML in bunnyfile"):
        parse_bunnyfile("version: [0.1\n")


def test_non_mapping_document():
    with pytest.raises(ValidationError, match="must contain a YAML mapping"):
        parse_bunnyfile("- a\n- b\n")


def test_load_hops_validates():
    hops = load_hops(FULL, PackerConfig())
    assert hops.kernel.path == "build/kernel"

    with pytest.raises(ValidationError, match="Unsupported version 0.2"):
        load_hops(FULL.replace("version: 0.1", "version: 0.2"), PackerConfig())
    with pytest.raises(ValidationError, match="The path field of kernel is necessary"):
        load_hops(FULL.replace("  path: build/kernel\n", ""), PackerConfig())
