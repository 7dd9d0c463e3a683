"""Serialize a State graph into a flat, content-addressed operation list.

Each op is rendered to a JSON-compatible dict and identified by the sha256 of
its canonical JSON encoding. Ops are emitted in dependency order (inputs
before consumers), deduplicated by digest, and followed by a terminal op that
points at the requested output. Equal graphs always marshal to equal
definitions.
"""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from typing import Any

from graphkit.state import Copy, ExecOp, FileOp, Mkdir, Mkfile, Op, Platform, SourceOp, State


@dataclass(frozen=True)
class Definition:
    ops: tuple[dict[str, Any], ...]
    digests: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.ops)

    @property
    def is_empty(self) -> bool:
        return not self.ops

    def by_digest(self) -> dict[str, dict[str, Any]]:
        return dict(zip(self.digests, self.ops))

    def terminal(self) -> dict[str, Any] | None:
        return self.ops[-1] if self.ops else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ops": [
                {"digest": digest, **op} for digest, op in zip(self.digests, self.ops)
            ]
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


def op_digest(payload: dict[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return "sha256:" + hashlib.sha256(encoded).hexdigest()


class _Marshaller:
    def __init__(self, default_platform: Platform | None) -> None:
        self._default_platform = default_platform
        self._digest_by_op: dict[int, str] = {}
        self._ops: list[dict[str, Any]] = []
        self._digests: list[str] = []
        self._seen: set[str] = set()

    def _platform_for(self, platform: Platform | None) -> dict[str, str] | None:
        chosen = platform or self._default_platform
        return chosen.to_dict() if chosen is not None else None

    def _input(self, state: State, inputs: list[dict[str, Any]]) -> int:
        """Register ``state`` as an input and return its index, or -1 for scratch."""
        if state.is_scratch:
            return -1
        ref = {"digest": self.visit(state.op), "index": state.output}
        if ref in inputs:
            return inputs.index(ref)
        inputs.append(ref)
        return len(inputs) - 1

    def _render(self, op: Op) -> dict[str, Any]:
        inputs: list[dict[str, Any]] = []

        if isinstance(op, SourceOp):
            body: dict[str, Any] = {
                "source": {"identifier": op.identifier, "attrs": dict(op.attrs)}
            }
            payload: dict[str, Any] = {"inputs": inputs, "op": body}
            platform = self._platform_for(op.platform)
            if platform is not None:
                payload["platform"] = platform
            if op.custom_name:
                payload["metadata"] = {"custom_name": op.custom_name}
            return payload

        if isinstance(op, FileOp):
            base_index = self._input(op.base, inputs)
            action = op.action
            if isinstance(action, Copy):
                source_index = self._input(action.source, inputs)
                rendered: dict[str, Any] = {
                    "copy": {
                        "src": action.src,
                        "dest": action.dest,
                        "createDestPath": action.create_dest_path,
                    },
                    "input": base_index,
                    "secondaryInput": source_index,
                }
                if action.owner is not None:
                    rendered["copy"]["owner"] = {"uid": action.owner, "gid": action.owner}
            elif isinstance(action, Mkdir):
                rendered = {
                    "mkdir": {
                        "path": action.path,
                        "mode": action.mode,
                        "makeParents": action.make_parents,
                    },
                    "input": base_index,
                    "secondaryInput": -1,
                }
            elif isinstance(action, Mkfile):
                rendered = {
                    "mkfile": {
                        "path": action.path,
                        "mode": action.mode,
                        "data": base64.b64encode(action.data).decode("ascii"),
                    },
                    "input": base_index,
                    "secondaryInput": -1,
                }
            else:  # pragma: no cover
                raise TypeError(f"Unsupported file action: {type(action).__name__}")
            return {"inputs": inputs, "op": {"file": {"actions": [rendered]}}}

        if isinstance(op, ExecOp):
            mounts = [
                {
                    "dest": "/",
                    "input": self._input(op.root, inputs),
                    "selector": "",
                    "readonly": False,
                    "output": 0,
                }
            ]
            next_output = 1
            for mount in op.mounts:
                output = -1
                if not mount.readonly:
                    output = next_output
                    next_output += 1
                mounts.append(
                    {
                        "dest": mount.dest,
                        "input": self._input(mount.source, inputs),
                        "selector": mount.selector,
                        "readonly": mount.readonly,
                        "output": output,
                    }
                )
            payload = {
                "inputs": inputs,
                "op": {
                    "exec": {
                        "meta": {
                            "args": list(op.args),
                            "env": list(op.env),
                            "cwd": op.cwd,
                            "user": op.user,
                        },
                        "mounts": mounts,
                    }
                },
            }
            platform = self._platform_for(None)
            if platform is not None:
                payload["platform"] = platform
            if op.custom_name:
                payload["metadata"] = {"custom_name": op.custom_name}
            return payload

        raise TypeError(f"Unsupported op type: {type(op).__name__}")

    def visit(self, op: Op) -> str:
        cached = self._digest_by_op.get(id(op))
        if cached is not None:
            return cached

        payload = self._render(op)
        digest = op_digest(payload)
        if digest not in self._seen:
            self._seen.add(digest)
            self._ops.append(payload)
            self._digests.append(digest)
        self._digest_by_op[id(op)] = digest
        return digest

    def finish(self, state: State) -> Definition:
        if state.is_scratch:
            return Definition(ops=(), digests=())
        terminal = {
            "inputs": [{"digest": self.visit(state.op), "index": state.output}],
            "op": {},
        }
        digest = op_digest(terminal)
        self._ops.append(terminal)
        self._digests.append(digest)
        return Definition(ops=tuple(self._ops), digests=tuple(self._digests))


def marshal(state: State, *, platform: Platform | None = None) -> Definition:
    """
    Marshal ``state`` and everything it depends on.

    ``platform`` is applied to source and exec ops that do not carry their
    own. The empty state marshals to an empty definition.
    """

    return _Marshaller(platform).finish(state)
