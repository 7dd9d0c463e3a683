from __future__ import annotations

import posixpath
import shlex
from dataclasses import dataclass, field, replace
from typing import Union

from graphkit.reference import normalize_image_reference


@dataclass(frozen=True)
class Platform:
    os: str
    architecture: str
    variant: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.os, str) or not self.os.strip():
            raise TypeError("Platform.os must be a non-empty string")
        if not isinstance(self.architecture, str) or not self.architecture.strip():
            raise TypeError("Platform.architecture must be a non-empty string")

    def to_dict(self) -> dict[str, str]:
        payload = {"os": self.os, "architecture": self.architecture}
        if self.variant:
            payload["variant"] = self.variant
        return payload


@dataclass(frozen=True)
class SourceOp:
    identifier: str
    attrs: tuple[tuple[str, str], ...] = ()
    platform: Platform | None = None
    custom_name: str = ""


@dataclass(frozen=True)
class Mkdir:
    path: str
    mode: int = 0o755
    make_parents: bool = False


@dataclass(frozen=True)
class Mkfile:
    path: str
    data: bytes
    mode: int = 0o644


@dataclass(frozen=True)
class Copy:
    source: "State"
    src: str
    dest: str
    create_dest_path: bool = True
    owner: int | None = None


FileAction = Union[Mkdir, Mkfile, Copy]


@dataclass(frozen=True)
class FileOp:
    base: "State"
    action: FileAction


@dataclass(frozen=True)
class Mount:
    dest: str
    source: "State"
    selector: str = ""
    readonly: bool = False


@dataclass(frozen=True)
class ExecOp:
    root: "State"
    args: tuple[str, ...]
    cwd: str = "/"
    env: tuple[str, ...] = ()
    user: str = ""
    mounts: tuple[Mount, ...] = ()
    custom_name: str = ""

    def writable_mounts(self) -> tuple[Mount, ...]:
        return tuple(m for m in self.mounts if not m.readonly)

    def output_index(self, dest: str) -> int:
        """Output 0 is the root filesystem; writable mounts follow in mount order."""
        dest = posixpath.normpath(dest)
        for index, mount in enumerate(self.writable_mounts(), start=1):
            if mount.dest == dest:
                return index
        raise ValueError(f"No writable mount at {dest} (exec: {' '.join(self.args)})")


Op = Union[SourceOp, FileOp, ExecOp]


def _join(workdir: str, path: str) -> str:
    if not path:
        return workdir
    return posixpath.normpath(posixpath.join(workdir, path))


@dataclass(frozen=True)
class State:
    """Immutable handle to one output of an operation graph node.

    ``op=None`` is the empty filesystem. Every combinator returns a new State;
    nothing is mutated, so identical call sequences build equal graphs.
    """

    op: Op | None = None
    output: int = 0
    workdir: str = "/"
    env: tuple[tuple[str, str], ...] = ()
    user: str = ""

    @classmethod
    def scratch(cls) -> "State":
        return cls()

    @classmethod
    def local(cls, name: str) -> "State":
        if not isinstance(name, str) or not name.strip():
            raise ValueError("local source name must be a non-empty string")
        return cls(op=SourceOp(identifier=f"local://{name.strip()}"))

    @classmethod
    def image(
        cls, ref: str, *, platform: Platform | None = None, custom_name: str = ""
    ) -> "State":
        normalized = normalize_image_reference(ref)
        return cls(
            op=SourceOp(
                identifier=f"docker-image://{normalized}",
                platform=platform,
                custom_name=custom_name,
            )
        )

    @classmethod
    def git(cls, remote: str, ref: str = "") -> "State":
        if not isinstance(remote, str) or not remote.strip():
            raise ValueError("git remote must be a non-empty string")
        remote = remote.strip()
        for scheme in ("https://", "http://", "git://"):
            if remote.startswith(scheme):
                remote = remote[len(scheme):]
                break
        remote = remote.removesuffix(".git")
        identifier = f"git://{remote}"
        if ref:
            identifier += f"#{ref}"
        return cls(op=SourceOp(identifier=identifier))

    @property
    def is_scratch(self) -> bool:
        return self.op is None

    def file(self, action: FileAction) -> "State":
        if isinstance(action, Mkdir):
            action = replace(action, path=_join(self.workdir, action.path))
        elif isinstance(action, Mkfile):
            action = replace(action, path=_join(self.workdir, action.path))
        elif isinstance(action, Copy):
            action = replace(action, dest=_join(self.workdir, action.dest))
        else:
            raise TypeError(f"Unsupported file action: {type(action).__name__}")
        return replace(self, op=FileOp(base=self, action=action), output=0)

    def dir(self, path: str) -> "State":
        return replace(self, workdir=_join(self.workdir, path))

    def add_env(self, key: str, value: str) -> "State":
        env = tuple((k, v) for k, v in self.env if k != key) + ((key, value),)
        return replace(self, env=env)

    def with_user(self, user: str) -> "State":
        return replace(self, user=user)

    def run(
        self,
        args: str | tuple[str, ...] | list[str],
        *,
        mounts: tuple[Mount, ...] | list[Mount] = (),
        custom_name: str = "",
    ) -> "ExecState":
        argv = tuple(shlex.split(args)) if isinstance(args, str) else tuple(args)
        if not argv:
            raise ValueError("exec requires at least one argument")

        normalized: dict[str, Mount] = {}
        for mount in mounts:
            dest = posixpath.normpath(mount.dest)
            if dest == "/":
                raise ValueError("exec mounts can not target /; use the root state")
            if dest in normalized:
                raise ValueError(f"Duplicate exec mount destination: {dest}")
            normalized[dest] = replace(mount, dest=dest)

        op = ExecOp(
            root=self,
            args=argv,
            cwd=self.workdir,
            env=tuple(f"{k}={v}" for k, v in self.env),
            user=self.user,
            mounts=tuple(normalized[d] for d in sorted(normalized)),
            custom_name=custom_name,
        )
        return ExecState(op=op, parent=self)


@dataclass(frozen=True)
class ExecState:
    op: ExecOp
    parent: State = field(repr=False)

    def root(self) -> State:
        return replace(self.parent, op=self.op, output=0)

    def mount_output(self, dest: str) -> State:
        return State(op=self.op, output=self.op.output_index(dest))
