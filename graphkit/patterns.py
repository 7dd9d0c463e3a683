from __future__ import annotations

import posixpath
from collections.abc import Iterable

from graphkit.state import Copy, ExecState, Mkdir, Mount, State


class IncludeFormatError(ValueError):
    """An include entry is not of the form ``src`` or ``src:dst``."""


def parse_include(entry: str) -> tuple[str, str]:
    """
    Split an include entry into (src, dst).

    ``"a"`` and ``"a:"`` copy to the same path; ``"a:b"`` copies a to b.
    Entries with more than one separator or an empty source are rejected.
    """

    if not isinstance(entry, str):
        raise IncludeFormatError(f"Invalid format of the file list to copy: {entry!r}")
    parts = entry.split(":")
    if len(parts) > 2 or not parts[0]:
        raise IncludeFormatError(f"Invalid format of the file list to copy: {entry!r}")
    src = parts[0]
    dst = parts[1] if len(parts) == 2 and parts[1] else src
    return src, dst


def copy_in(
    base: State, source: State, src: str, dest: str, *, owner: int | None = None
) -> State:
    return base.file(Copy(source=source, src=src, dest=dest, create_dest_path=True, owner=owner))


def copy_chain(
    includes: Iterable[str],
    from_state: State,
    to_state: State,
    *,
    owner: int | None = None,
) -> State:
    """
    Copy every include entry from ``from_state`` into ``to_state``.

    Each copy takes the previous copy's output as its base, so the result is a
    strict left-to-right chain. Every entry is parsed before any node is built.
    """

    pairs = [parse_include(entry) for entry in includes]
    current = to_state
    for src, dst in pairs:
        current = copy_in(current, from_state, src, dst, owner=owner)
    return current


def extract_artifacts(exec_state: ExecState, out_dir: str) -> State:
    return exec_state.mount_output(out_dir)


def output_mount(out_dir: str) -> Mount:
    """A writable mount at ``out_dir`` backed by a fresh empty directory."""
    out_dir = posixpath.normpath(out_dir)
    source = State.scratch().file(Mkdir(out_dir, 0o755))
    return Mount(dest=out_dir, source=source, selector=out_dir)


def archive_pipeline(
    content: State,
    *,
    tool_image: str,
    output_path: str,
    workdir: str = "/workdir",
    custom_name: str = "Internal:Create initrd",
) -> State:
    """
    Pack the files of ``content`` into a single newc cpio archive.

    The sub-graph is always: tool image with /tmp created, one exec that runs
    bsdcpio over ``content`` mounted read-only at ``workdir``, and the output
    directory extracted into a fresh empty state. The archive lands at
    ``output_path`` inside the returned state.
    """

    out_dir = posixpath.dirname(posixpath.normpath(output_path)) or "/"
    if out_dir == "/":
        raise ValueError(f"archive output path must be inside a directory: {output_path}")

    tools = State.image(tool_image, custom_name=custom_name).file(Mkdir("/tmp", 0o755))
    command = f"find . -depth -print | tac | bsdcpio -o --format newc > {output_path}"
    cpio = tools.dir(workdir).run(
        ("sh", "-c", command),
        mounts=(
            Mount(dest=workdir, source=content, readonly=True),
            output_mount(out_dir),
        ),
        custom_name=custom_name,
    )
    return extract_artifacts(cpio, out_dir)
