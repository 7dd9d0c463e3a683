from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable

from unipack.framework.hops import Platform
from unipack.frameworks.base import Framework
from unipack.frameworks.generic import GenericFramework
from unipack.frameworks.mirage import MirageFramework
from unipack.frameworks.rumprun import RumprunFramework
from unipack.frameworks.unikraft import UnikraftFramework

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameworkRef:
    name: str
    factory: type[Framework]

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise TypeError("FrameworkRef.name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        if not (isinstance(self.factory, type) and issubclass(self.factory, Framework)):
            raise TypeError(f"FrameworkRef.factory must be a Framework subclass (name={self.name})")

    @classmethod
    def of(cls, factory: type[Framework]) -> "FrameworkRef":
        return cls(name=factory.name, factory=factory)


@dataclass(frozen=True)
class FrameworkRegistry:
    _by_name: dict[str, FrameworkRef]
    fallback: FrameworkRef

    @classmethod
    def from_refs(cls, refs: Iterable[FrameworkRef], *, fallback: FrameworkRef) -> "FrameworkRegistry":
        entries: dict[str, FrameworkRef] = {}
        for ref in refs:
            if ref.name in entries:
                raise ValueError(f"Duplicate framework name: {ref.name}")
            entries[ref.name] = ref
        return cls(_by_name=entries, fallback=fallback)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for ref in sorted(self._by_name.values(), key=lambda r: r.name):
            factory = ref.factory
            rows.append(
                {
                    "name": ref.name,
                    "doc": factory.doc,
                    "default_rootfs_type": factory.default_rootfs_type,
                    "rootfs_types": sorted(factory.rootfs_types),
                    "monitors": sorted(factory.monitors) if factory.monitors is not None else None,
                    "architectures": (
                        sorted(factory.architectures) if factory.architectures is not None else None
                    ),
                    "builds_kernel": factory.builds_kernel,
                    "fallback": ref.name == self.fallback.name,
                }
            )
        return tuple(rows)

    def get(self, name: str) -> FrameworkRef:
        """Exact-name lookup; unknown names resolve to the fallback."""
        key = (name or "").strip()
        ref = self._by_name.get(key)
        if ref is not None:
            return ref

        hint = ""
        suggestions = self.suggest(key)
        if suggestions:
            hint = f" (did you mean: {', '.join(suggestions)}?)"
        logger.info("Framework %r has no dedicated support; using %s%s", key, self.fallback.name, hint)
        return self.fallback

    def create(self, platform: Platform) -> Framework:
        return self.get(platform.framework).factory(platform)

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))


@lru_cache(maxsize=1)
def get_framework_registry() -> FrameworkRegistry:
    generic = FrameworkRef.of(GenericFramework)
    return FrameworkRegistry.from_refs(
        [
            generic,
            FrameworkRef.of(UnikraftFramework),
            FrameworkRef.of(RumprunFramework),
            FrameworkRef.of(MirageFramework),
        ],
        fallback=generic,
    )


def select_framework(platform: Platform) -> Framework:
    return get_framework_registry().create(platform)
