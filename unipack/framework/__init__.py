"""Packaging-plan compiler core.

Common entrypoints:

- `unipack.framework.pack`: `to_pack` plans a request, `pack_definition` marshals a plan
- `unipack.framework.planner`: base/copy policy and the plan types
- `unipack.framework.entries`: kernel and rootfs resolution

App-agnostic graph primitives live in `graphkit`.
"""
