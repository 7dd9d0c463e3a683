"""Framework capability objects and the registry that selects them."""

from unipack.frameworks.base import Framework
from unipack.frameworks.registry import (
    FrameworkRef,
    FrameworkRegistry,
    get_framework_registry,
    select_framework,
)

__all__ = [
    "Framework",
    "FrameworkRef",
    "FrameworkRegistry",
    "get_framework_registry",
    "select_framework",
]
