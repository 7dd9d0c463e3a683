from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from graphkit.state import SourceOp, State

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unipack", add_help=True)
    parser.add_argument("--config", default=None, help="Config YAML (default: repo config/config.yaml)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="Show the packaging plan for a bunnyfile or Containerfile")
    plan.add_argument("file", help="Input file, or - for stdin")
    plan.add_argument("--arch", default=None, help="Host architecture (default: this machine)")

    graph = sub.add_parser("graph", help="Print the marshalled operation graph as JSON")
    graph.add_argument("file", help="Input file, or - for stdin")
    graph.add_argument("--arch", default=None, help="Host architecture (default: this machine)")

    sub.add_parser("list-frameworks", help="List frameworks and their capabilities")
    sub.add_parser("version", help="Show version information")
    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _state_label(state: State) -> str:
    if state.is_scratch:
        return "scratch"
    if isinstance(state.op, SourceOp):
        return state.op.identifier
    return f"{type(state.op).__name__}[{state.output}]"


def _plan_summary(plan: Any, host_arch: str) -> dict[str, Any]:
    from .framework.image_config import apply_image_config, manifest_annotations

    return {
        "base": _state_label(plan.base),
        "base_ref": plan.config.base_ref,
        "copies": [
            {"from": _state_label(c.src_state), "src": c.src_path, "dst": c.dst_path}
            for c in plan.copies
        ],
        "annotations": manifest_annotations(plan),
        "image_config": apply_image_config(None, plan, host_arch),
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    from .foundation.logging_utils import setup_logger
    from .framework.errors import PackError

    try:
        setup_logger(args.log_level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.command == "version":
        from . import __version__
        from .framework.config import PackerConfig

        print(f"unipack {__version__} (bunnyfile version {PackerConfig().supported_version})")
        return 0

    if args.command == "list-frameworks":
        from .frameworks.registry import get_framework_registry

        for row in get_framework_registry().describe():
            marker = " (fallback)" if row["fallback"] else ""
            print(f"{row['name']}{marker}: {row['doc']}")
            print(f"  rootfs: {', '.join(row['rootfs_types'])} (default {row['default_rootfs_type']})")
            print(f"  monitors: {', '.join(row['monitors']) if row['monitors'] else 'any'}")
        return 0

    if args.command in ("plan", "graph"):
        from .framework.config import load_packer_config
        from .framework.pack import pack_definition, resolve_host_arch
        from .parsing import parse_file

        try:
            config = load_packer_config(args.config)
            host_arch = resolve_host_arch(args.arch)
            plan = parse_file(_read_input(args.file), config, host_arch=host_arch)
            if args.command == "plan":
                print(json.dumps(_plan_summary(plan, host_arch), indent=2, sort_keys=True))
            else:
                print(pack_definition(plan, config, host_arch=host_arch).to_json())
        except PackError as exc:
            logger.debug("Packaging failed (%s)", exc.kind.value)
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        except (OSError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
