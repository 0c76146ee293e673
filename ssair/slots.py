"""Assignment of numbered slots to the values of a module and its methods."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Optional

from ssair.constants import ConstPoolType
from ssair.types import (
    FIRST_DERIVED_TY_ID,
    TYPE_TY,
    VOID_TY,
    ArrayType,
    MethodType,
    PointerType,
    StructType,
    Type,
    get_primitive_type,
)
from ssair.values import Value, ValueKind


def _component_types(ty: Type) -> Iterator[Type]:
    """Yield the types a derived type is built from."""
    if isinstance(ty, MethodType):
        yield ty.return_type
        yield from ty.param_types
    elif isinstance(ty, ArrayType):
        yield ty.element_type
    elif isinstance(ty, StructType):
        yield from ty.element_types
    elif isinstance(ty, PointerType):
        yield ty.value_type


class SlotCalculator:
    """Numbers values plane by plane, one plane per type.

    Values of a primitive type land in the plane whose index is the
    primitive id; values of a derived type land in the plane whose index
    is the slot of that type in the ``type`` plane.  ``owner`` may be a
    module, a method (whose module is processed and which is then
    incorporated) or ``None`` for a table holding only the primitive types.
    With ``ignore_named`` set, named values get no slot.
    """

    def __init__(self, owner: Any = None, ignore_named: bool = False) -> None:
        self.ignore_named = ignore_named
        self.module: Any = None
        self._table: list[list[Value]] = []
        self._node_map: dict[Value, int] = {}
        self._saved: Optional[tuple[list[int], dict[Value, int]]] = None

        for prim in range(FIRST_DERIVED_TY_ID):
            self._insert(get_primitive_type(prim))

        if owner is None:
            return
        if owner.kind is ValueKind.METHOD:
            module, method = owner.parent, owner
        elif owner.kind is ValueKind.MODULE:
            module, method = owner, None
        else:
            raise TypeError(f"cannot number the values of {owner!r}")

        self.module = module
        if module is None:
            return
        self._process_module(module)
        if method is not None:
            self.incorporate_method(method)

    @property
    def num_planes(self) -> int:
        return len(self._table)

    def plane(self, index: int) -> tuple[Value, ...]:
        """Return the values of plane ``index`` in slot order."""
        return tuple(self._table[index])

    def slot(self, value: Value) -> Optional[int]:
        """Return the slot of ``value`` within its plane, or ``None``."""
        return self._node_map.get(value)

    def module_level(self, index: int) -> int:
        """Return how many values plane ``index`` held before the method came."""
        if self._saved is None:
            raise RuntimeError("no method is incorporated")
        sizes = self._saved[0]
        return sizes[index] if index < len(sizes) else 0

    def incorporate_method(self, method: Any) -> None:
        """Add the values local to ``method`` to the table."""
        if self._saved is not None:
            raise RuntimeError("a method is already incorporated")
        self._saved = ([len(plane) for plane in self._table], dict(self._node_map))
        self._process_method(method)

    def purge_method(self) -> None:
        """Drop everything the incorporated method added."""
        if self._saved is None:
            raise RuntimeError("no method is incorporated")
        sizes, node_map = self._saved
        del self._table[len(sizes):]
        for plane, size in zip(self._table, sizes):
            del plane[size:]
        self._node_map = node_map
        self._saved = None

    def _process_module(self, module: Any) -> None:
        for constant in module.constant_pool.values():
            self._insert_constant(constant)
        for method in module.methods:
            self._insert(method)

    def _process_method(self, method: Any) -> None:
        for argument in method.arguments:
            self._insert(argument)
        for constant in method.constant_pool.values():
            self._insert_constant(constant)
        for block in method.basic_blocks:
            self._insert(block)
            for instruction in block.instructions:
                self._insert(instruction)

    def _insert_constant(self, constant: Value) -> None:
        if constant.type is TYPE_TY:
            for component in _component_types(constant.value):
                self._ensure_type(component)
        self._insert(constant)

    def _ensure_type(self, ty: Type) -> None:
        """Give a derived type a slot, after the types it is made of."""
        if not ty.is_derived or self.slot(ty) is not None:
            return
        for component in _component_types(ty):
            self._ensure_type(component)
        self._insert(ConstPoolType(ty))

    def _insert(self, value: Optional[Value]) -> None:
        if value is None:
            return
        ty = value.type
        if ty is VOID_TY or (self.ignore_named and value.has_name):
            return

        if ty.is_derived:
            index = self.slot(ty)
            if index is None:
                self._ensure_type(ty)
                index = self.slot(ty)
        else:
            index = int(ty.primitive_id)

        while len(self._table) <= index:
            self._table.append([])
        plane = self._table[index]
        self._node_map[value] = len(plane)

        if ty is TYPE_TY and value.kind is not ValueKind.TYPE:
            existing = self.slot(value.value)
            if existing is None:
                self._node_map[value.value] = len(plane)
            elif not value.has_name:
                self._node_map[value] = existing
                return
        plane.append(value)