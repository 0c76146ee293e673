"""Sanity checks on the structure of methods and modules."""

from __future__ import annotations

from typing import Any

MISSING_TERMINATOR = "Basic Block does not have terminator!"


def _verify_block(block: Any) -> list[str]:
    return [] if block.terminator() is not None else [MISSING_TERMINATOR]


def verify_method(method: Any) -> list[str]:
    """Return the problems found in ``method``; an empty list means none."""
    return [msg for block in method.basic_blocks for msg in _verify_block(block)]


def verify_module(module: Any) -> list[str]:
    """Return the problems found in every method of ``module``."""
    return [msg for method in module.methods for msg in verify_method(method)]