import textwrap

import pytest

from graphkit.state import Platform as GraphPlatform, State
from unipack.framework.config import PackerConfig
from unipack.framework.errors import ValidationError
from unipack.parsing import detect_format, parse_file
from unipack.parsing.containerfile import containerfile_to_pack, parse_containerfile, tokenize

CONTAINERFILE = textwrap.dedent(
    """\
    #syntax=harbor.nbfc.io/nubificus/bunny:latest
    FROM unikraft.org/nginx:1.15

    COPY --chown=0:0 nginx.conf /nginx/conf/nginx.conf
    LABEL com.urunc.unikernel.hypervisor="firecracker" \\
          com.urunc.unikernel.unikernelType=unikraft
    LABEL "com.urunc.unikernel.cmdline"="nginx -c /nginx/conf/nginx.conf"
    CMD ["nginx", "-c", "/nginx/conf/nginx.conf"]
    ENTRYPOINT /bin/sh -c
    ENV A=1 B="two words"
    """
)


def test_parse_containerfile():
    parsed = parse_containerfile(CONTAINERFILE)
    assert parsed.base == "unikraft.org/nginx:1.15"
    assert parsed.copies == (("nginx.conf", "/nginx/conf/nginx.conf"),)
    assert parsed.labels == {
        "com.urunc.unikernel.hypervisor": "firecracker",
        "com.urunc.unikernel.unikernelType": "unikraft",
        "com.urunc.unikernel.cmdline": "nginx -c /nginx/conf/nginx.conf",
    }
    assert parsed.cmd == ("nginx", "-c", "/nginx/conf/nginx.conf")
    assert parsed.entrypoint == ("/bin/sh", "-c")
    assert parsed.envs == ("A=1", "B=two words")


def test_containerfile_plan_uses_hypervisor_label_for_base():
    plan = containerfile_to_pack(parse_containerfile(CONTAINERFILE), PackerConfig(), "amd64")
    assert plan.base == State.image(
        "unikraft.org/nginx:1.15", platform=GraphPlatform(os="fc", architecture="amd64")
    )
    assert plan.config.base_ref == "unikraft.org/nginx:1.15"
    assert plan.config.monitor == "firecracker"
    assert [(c.src_state, c.src_path, c.dst_path) for c in plan.copies] == [
        (State.local("context"), "nginx.conf", "/nginx/conf/nginx.conf")
    ]
    assert plan.annotations["com.urunc.unikernel.unikernelType"] == "unikraft"


def test_from_scratch():
    plan = containerfile_to_pack(parse_containerfile("FROM scratch\nCOPY kernel /kernel\n"), PackerConfig(), "amd64")
    assert plan.base.is_scratch


def test_tokenize_tracks_start_lines_and_continuations():
    instructions = tokenize("# comment\n\nFROM a\nLABEL x=1 \\\n  # inner comment\n  y=2\n")
    assert [(i.keyword, i.args, i.line) for i in instructions] == [
        ("FROM", "a", 3),
        ("LABEL", "x=1 y=2", 4),
    ]


def test_copy_uses_only_the_first_source():
    parsed = parse_containerfile("FROM a\nCOPY one two /dest/\n")
    assert parsed.copies == (("one", "/dest/"),)


def test_copy_json_form():
    parsed = parse_containerfile('FROM a\nCOPY ["my file", "/dst"]\n')
    assert parsed.copies == (("my file", "/dst"),)


def test_legacy_env_and_label_forms():
    parsed = parse_containerfile("FROM a\nENV PATH /bin:/usr/bin\nLABEL key some value\n")
    assert parsed.envs == ("PATH=/bin:/usr/bin",)
    assert parsed.labels == {"key": "some value"}


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("FROM a\nFROM b\n", "Multi-stage builds are not supported"),
        ("FROM a\nRUN make\n", "Unsupported command: run"),
        ("FROM a\nWORKDIR /x\n", "Unsupported command: workdir"),
        ("FROM a\nFOO bar\n", "Line 2: unknown instruction: FOO"),
        ("FROM a\nCOPY onlyone\n", "COPY requires at least two arguments"),
        ("COPY a b\n", "A FROM instruction is required"),
        ("FROM a\nLABEL\n", "LABEL requires at least one argument"),
    ],
)
def test_rejected_containerfiles(text, message):
    with pytest.raises(ValidationError, match=message):
        parse_containerfile(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("#syntax=x\nFROM scratch\n", "containerfile"),
        ("\n\n   \nFROM scratch\n", "containerfile"),
        ("# FROM looks like a comment\nversion: 0.1\n", "bunnyfile"),
        ("#syntax=x\nversion: 0.1\n", "bunnyfile"),
        ("from scratch\nCOPY a b\n", "bunnyfile"),
        ("\n\n", "bunnyfile"),
    ],
)
def test_detect_format(text, expected):
    assert detect_format(text) == expected


def test_single_line_containerfile_is_accepted():
    assert detect_format("FROM scratch") == "containerfile"
    plan = parse_file("FROM scratch", PackerConfig(), host_arch="amd64")
    assert plan.base.is_scratch
    assert plan.copies == []


def test_empty_input_is_an_incomplete_bunnyfile():
    with pytest.raises(ValidationError, match="The version field is necessary"):
        parse_file("", PackerConfig(), host_arch="amd64")


@pytest.mark.parametrize(
    "line",
    ["COPY --from=builder /out/kernel /kernel", "COPY --from builder /out/kernel /kernel", "COPY --chown=0:0 --from=0 a b"],
)
def test_copy_from_another_stage_is_rejected(line):
    with pytest.raises(ValidationError, match="Line 2: COPY --from is not supported"):
        parse_containerfile(f"FROM scratch\n{line}\n")


def test_parse_file_dispatches_to_containerfile():
    plan = parse_file(CONTAINERFILE.encode("utf-8"), PackerConfig(), host_arch="amd64")
    assert plan.config.cmd == ("nginx", "-c", "/nginx/conf/nginx.conf")
