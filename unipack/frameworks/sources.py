from __future__ import annotations

from graphkit.state import State

from unipack.framework.context import BuildContext
from unipack.framework.errors import ResolutionError


def app_source(ctx: BuildContext) -> State:
    """The app's source tree: the build context for ``local``, else a git checkout."""
    if ctx.app.is_empty:
        raise ResolutionError("An app section is required to build the kernel from source")
    if ctx.app.is_local:
        return ctx.local()
    try:
        return State.git(ctx.app.from_, ctx.app.branch)
    except ValueError as exc:
        raise ResolutionError(f"Invalid app source {ctx.app.from_}: {exc}") from exc
