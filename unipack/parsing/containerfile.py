"""Decode the Containerfile subset: single-stage FROM, COPY, LABEL, CMD,
ENTRYPOINT and ENV. Every other instruction is rejected."""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import dataclass, field

from graphkit.state import State

from unipack.framework.config import PackerConfig
from unipack.framework.errors import ResolutionError, ValidationError
from unipack.framework.graph import base_state
from unipack.framework.planner import ImageSettings, PackagingPlan

logger = logging.getLogger(__name__)

SUPPORTED = frozenset({"FROM", "COPY", "LABEL", "CMD", "ENTRYPOINT", "ENV"})
KNOWN = SUPPORTED | frozenset(
    {
        "ADD",
        "ARG",
        "EXPOSE",
        "HEALTHCHECK",
        "MAINTAINER",
        "ONBUILD",
        "RUN",
        "SHELL",
        "STOPSIGNAL",
        "USER",
        "VOLUME",
        "WORKDIR",
    }
)


@dataclass(frozen=True)
class Instruction:
    keyword: str
    args: str
    line: int


@dataclass(frozen=True)
class Containerfile:
    base: str = ""
    copies: tuple[tuple[str, str], ...] = ()
    labels: dict[str, str] = field(default_factory=dict)
    cmd: tuple[str, ...] = ()
    entrypoint: tuple[str, ...] = ()
    envs: tuple[str, ...] = ()


def tokenize(text: str) -> list[Instruction]:
    """Split into instructions, joining ``\\`` continuations and dropping comments."""
    instructions: list[Instruction] = []
    pending: list[str] = []
    start = 0

    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not pending:
            start = number
        if stripped.endswith("\\"):
            pending.append(stripped[:-1].strip())
            continue
        pending.append(stripped)
        joined = " ".join(part for part in pending if part)
        pending = []
        keyword, _, args = joined.partition(" ")
        instructions.append(Instruction(keyword=keyword.upper(), args=args.strip(), line=start))

    if pending:
        joined = " ".join(part for part in pending if part)
        keyword, _, args = joined.partition(" ")
        instructions.append(Instruction(keyword=keyword.upper(), args=args.strip(), line=start))
    return instructions


def _split(args: str, line: int) -> list[str]:
    try:
        return shlex.split(args)
    except ValueError as exc:
        raise ValidationError(f"Line {line}: {exc}") from exc


def _exec_form(args: str, line: int) -> tuple[str, ...]:
    if args.startswith("["):
        try:
            parsed = json.loads(args)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list) and all(isinstance(item, str) for item in parsed):
            return tuple(parsed)
    return tuple(_split(args, line))


def _drop_flags(words: list[str]) -> list[str]:
    return [word for word in words if not word.startswith("--")]


def _pairs(args: str, line: int, keyword: str) -> list[tuple[str, str]]:
    """``k=v k2=v2`` pairs, or the legacy ``key value with spaces`` form."""
    words = _split(args, line)
    if not words:
        raise ValidationError(f"Line {line}: {keyword} requires at least one argument")
    if "=" not in words[0]:
        if len(words) < 2:
            raise ValidationError(f"Line {line}: {keyword} {words[0]} has no value")
        return [(words[0], " ".join(words[1:]))]
    pairs: list[tuple[str, str]] = []
    for word in words:
        key, sep, value = word.partition("=")
        if not sep or not key:
            raise ValidationError(f"Line {line}: invalid {keyword} entry {word!r}")
        pairs.append((key.strip('"'), value.strip('"')))
    return pairs


def parse_containerfile(text: str) -> Containerfile:
    base = ""
    seen_from = False
    copies: list[tuple[str, str]] = []
    labels: dict[str, str] = {}
    cmd: tuple[str, ...] = ()
    entrypoint: tuple[str, ...] = ()
    envs: list[str] = []

    for instruction in tokenize(text):
        keyword, args, line = instruction.keyword, instruction.args, instruction.line
        if keyword not in KNOWN:
            raise ValidationError(f"Line {line}: unknown instruction: {keyword}")
        if keyword not in SUPPORTED:
            raise ValidationError(f"Unsupported command: {keyword.lower()}")

        if keyword == "FROM":
            if seen_from:
                raise ValidationError("Multi-stage builds are not supported")
            words = _drop_flags(_split(args, line))
            if not words:
                raise ValidationError(f"Line {line}: FROM requires an image")
            base = words[0]
            seen_from = True
        elif keyword == "COPY":
            words = list(_exec_form(args, line)) if args.startswith("[") else _split(args, line)
            if any(word == "--from" or word.startswith("--from=") for word in words):
                raise ValidationError(f"Line {line}: COPY --from is not supported; files are copied from the build context")
            words = _drop_flags(words)
            if len(words) < 2:
                raise ValidationError(f"Line {line}: COPY requires at least two arguments")
            if len(words) > 2:
                logger.warning("Line %d: COPY uses only the first source (%s)", line, words[0])
            copies.append((words[0], words[-1]))
        elif keyword == "LABEL":
            for key, value in _pairs(args, line, keyword):
                labels[key] = value
        elif keyword == "CMD":
            cmd = _exec_form(args, line)
        elif keyword == "ENTRYPOINT":
            entrypoint = _exec_form(args, line)
        elif keyword == "ENV":
            envs.extend(f"{key}={value}" for key, value in _pairs(args, line, keyword))

    if not seen_from:
        raise ValidationError("A FROM instruction is required")
    return Containerfile(
        base=base,
        copies=tuple(copies),
        labels=labels,
        cmd=cmd,
        entrypoint=entrypoint,
        envs=tuple(envs),
    )


def containerfile_to_pack(parsed: Containerfile, config: PackerConfig, host_arch: str) -> PackagingPlan:
    """
    Plan a Containerfile: the FROM image is the base, every COPY reads from
    the build context, and the labels become the annotations as written.
    """

    monitor = parsed.labels.get(config.annotation("hypervisor"), "")
    plan = PackagingPlan(
        config=ImageSettings(
            monitor=monitor,
            entrypoint=parsed.entrypoint,
            cmd=parsed.cmd,
            envs=parsed.envs,
        ),
        annotations=dict(parsed.labels),
    )
    try:
        plan.set_base(base_state(parsed.base, monitor, config, host_arch), parsed.base)
    except ResolutionError as exc:
        raise exc.with_context("Error choosing base state") from exc

    local = State.local(config.build_context_name)
    for src, dst in parsed.copies:
        plan.add_copy(local, src, dst)
    return plan
