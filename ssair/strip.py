"""Removal of symbolic names from methods and modules."""

from __future__ import annotations

from typing import Any, Optional

from ssair.values import SymbolTable


def _strip_symbol_table(symtab: Optional[SymbolTable]) -> bool:
    """Clear the name of every value in ``symtab``; return whether any had one."""
    if symtab is None:
        return False
    named = [
        value
        for _, entries in list(symtab.planes())
        for _, value in list(entries)
    ]
    for value in named:
        value.set_name("")
    return bool(named)


def strip_symbols(method: Any) -> bool:
    """Remove every local name from ``method``."""
    return _strip_symbol_table(method.symbol_table)


def strip_all_symbols(module: Any) -> bool:
    """Remove every name from the methods of ``module`` and from the module."""
    removed = False
    for method in list(module.methods):
        if strip_symbols(method):
            removed = True
    if _strip_symbol_table(module.symbol_table):
        removed = True
    return removed