"""Constant values, per-type constant pools and values that own them."""

from __future__ import annotations

import abc
from collections.abc import Iterator, Sequence
from typing import Any, Optional

from ssair.types import BOOL_TY, TYPE_TY, PrimitiveID, Type
from ssair.values import SymbolTable, User, Value, ValueHolder, ValueKind

_SIGNED_BITS = {
    PrimitiveID.SBYTE: 8,
    PrimitiveID.SHORT: 16,
    PrimitiveID.INT: 32,
    PrimitiveID.LONG: 64,
}

_UNSIGNED_BITS = {
    PrimitiveID.UBYTE: 8,
    PrimitiveID.USHORT: 16,
    PrimitiveID.UINT: 32,
    PrimitiveID.ULONG: 64,
}


class ConstPoolVal(User, abc.ABC):
    """A constant that lives in the constant pool of a method or module."""

    def __init__(
        self, ty: Type, name: str = "", operands: Sequence[Value] = ()
    ) -> None:
        super().__init__(ty, ValueKind.CONSTANT, name, operands)

    def set_name(self, name: str) -> None:
        """Rename the constant, keeping the owner's symbol table in step."""
        owner = self.parent
        if owner is not None and self.has_name:
            owner.symbol_table.remove(self)
        self.name = name
        if owner is not None and self.has_name:
            owner.symbol_table_sure().insert(self)

    @abc.abstractmethod
    def str_value(self) -> str:
        """Return the textual form of the constant's value."""

    @abc.abstractmethod
    def equals(self, other: ConstPoolVal) -> bool:
        """Return whether ``other``, of the same type, holds the same value."""

    @abc.abstractmethod
    def clone(self) -> ConstPoolVal:
        """Return an unnamed copy of this constant."""

    def drop_all_references(self) -> None:
        self._release_operands()

    def _check_same_type(self, other: ConstPoolVal) -> None:
        if other.type is not self.type:
            raise TypeError(
                f"cannot compare {self.type.name} constant with "
                f"{other.type.name} constant"
            )


class _ScalarConstant(ConstPoolVal):
    value: Any

    def equals(self, other: ConstPoolVal) -> bool:
        self._check_same_type(other)
        return other.value == self.value


class ConstPoolBool(_ScalarConstant):
    """A boolean constant."""

    def __init__(self, value: bool, name: str = "") -> None:
        super().__init__(BOOL_TY, name)
        self.value = bool(value)

    def str_value(self) -> str:
        return "true" if self.value else "false"

    def clone(self) -> ConstPoolBool:
        return ConstPoolBool(self.value)


class ConstPoolSInt(_ScalarConstant):
    """A constant of one of the signed integer types."""

    def __init__(self, ty: Type, value: int, name: str = "") -> None:
        if not self.is_value_valid_for_type(ty, value):
            raise ValueError(f"value {value} too large for type {ty.name}")
        super().__init__(ty, name)
        self.value = int(value)

    @staticmethod
    def is_value_valid_for_type(ty: Type, value: int) -> bool:
        bits = _SIGNED_BITS.get(ty.primitive_id)
        if bits is None:
            return False
        return -(1 << (bits - 1)) <= value < (1 << (bits - 1))

    def str_value(self) -> str:
        return str(self.value)

    def clone(self) -> ConstPoolSInt:
        return ConstPoolSInt(self.type, self.value)


class ConstPoolUInt(_ScalarConstant):
    """A constant of one of the unsigned integer types."""

    def __init__(self, ty: Type, value: int, name: str = "") -> None:
        if not self.is_value_valid_for_type(ty, value):
            raise ValueError(f"value {value} too large for type {ty.name}")
        super().__init__(ty, name)
        self.value = int(value)

    @staticmethod
    def is_value_valid_for_type(ty: Type, value: int) -> bool:
        bits = _UNSIGNED_BITS.get(ty.primitive_id)
        if bits is None:
            return False
        return 0 <= value < (1 << bits)

    def str_value(self) -> str:
        return str(self.value)

    def clone(self) -> ConstPoolUInt:
        return ConstPoolUInt(self.type, self.value)


class ConstPoolFP(_ScalarConstant):
    """A floating point constant; only ``double`` values are representable."""

    def __init__(self, ty: Type, value: float, name: str = "") -> None:
        if not self.is_value_valid_for_type(ty, value):
            raise ValueError(f"value {value} not valid for type {ty.name}")
        super().__init__(ty, name)
        self.value = float(value)

    @staticmethod
    def is_value_valid_for_type(ty: Type, value: float) -> bool:
        return ty.primitive_id == PrimitiveID.DOUBLE

    def str_value(self) -> str:
        return repr(self.value)

    def clone(self) -> ConstPoolFP:
        return ConstPoolFP(self.type, self.value)


class ConstPoolType(ConstPoolVal):
    """A constant whose value is a type."""

    def __init__(self, value: Type, name: str = "") -> None:
        super().__init__(TYPE_TY, name)
        self.value = value

    def str_value(self) -> str:
        return self.value.name

    def equals(self, other: ConstPoolVal) -> bool:
        self._check_same_type(other)
        return other.value is self.value

    def clone(self) -> ConstPoolType:
        return ConstPoolType(self.value)


class _AggregateConstant(ConstPoolVal):
    _open = ""
    _close = ""

    @property
    def values(self) -> list[ConstPoolVal]:
        return self.operands()

    def str_value(self) -> str:
        parts = ", ".join(f"{v.type.name} {v.str_value()}" for v in self.values)
        if parts:
            return f"{self._open} {parts} {self._close}"
        return f"{self._open} {self._close}"

    def equals(self, other: ConstPoolVal) -> bool:
        self._check_same_type(other)
        mine, theirs = self.values, other.values
        if len(mine) != len(theirs):
            return False
        return all(a.equals(b) for a, b in zip(mine, theirs))


class ConstPoolArray(_AggregateConstant):
    """A constant array whose elements are other constants."""

    _open = "["
    _close = "]"

    def __init__(self, ty: Type, values: Sequence[ConstPoolVal], name: str = "") -> None:
        for value in values:
            if value.type is not ty.element_type:
                raise TypeError(
                    f"array element of type {value.type.name} in {ty.name}"
                )
        super().__init__(ty, name, values)

    def clone(self) -> ConstPoolArray:
        return ConstPoolArray(self.type, self.values)


class ConstPoolStruct(_AggregateConstant):
    """A constant structure whose members are other constants."""

    _open = "{"
    _close = "}"

    def __init__(self, ty: Type, values: Sequence[ConstPoolVal], name: str = "") -> None:
        element_types = ty.element_types
        if len(values) > len(element_types):
            raise TypeError(f"too many members for {ty.name}")
        for value, expected in zip(values, element_types):
            if value.type is not expected:
                raise TypeError(
                    f"struct member of type {value.type.name} where "
                    f"{expected.name} is expected"
                )
        super().__init__(ty, name, values)

    def clone(self) -> ConstPoolStruct:
        return ConstPoolStruct(self.type, self.values)


def get_null_constant(ty: Type) -> Optional[ConstPoolVal]:
    """Return a new zero constant of ``ty``, or ``None`` for other types."""
    prim = ty.primitive_id
    if prim == PrimitiveID.BOOL:
        return ConstPoolBool(False)
    if prim in _SIGNED_BITS:
        return ConstPoolSInt(ty, 0)
    if prim in _UNSIGNED_BITS:
        return ConstPoolUInt(ty, 0)
    if prim in (PrimitiveID.FLOAT, PrimitiveID.DOUBLE):
        return ConstPoolFP(ty, 0.0)
    return None


class ConstantPool:
    """Constants grouped into one plane per type, in order of type ids."""

    def __init__(self, parent: Any = None) -> None:
        self.parent = parent
        self._planes: list[ValueHolder] = []

    def __iter__(self) -> Iterator[ValueHolder]:
        return iter(self._planes)

    def values(self) -> Iterator[ConstPoolVal]:
        """Yield every constant, plane by plane."""
        for plane in self._planes:
            yield from plane

    def _resize(self, size: int) -> None:
        while len(self._planes) < size:
            self._planes.append(ValueHolder(self.parent, self.parent))

    def plane(self, ty: Type) -> ValueHolder:
        """Return the plane for ``ty``, creating it if needed."""
        if ty.uid >= len(self._planes):
            self._resize(ty.uid + 1)
        return self._planes[ty.uid]

    def existing_plane(self, ty: Type) -> Optional[ValueHolder]:
        """Return the plane for ``ty`` if it has been created, else ``None``."""
        if ty.uid >= len(self._planes):
            return None
        return self._planes[ty.uid]

    def insert(self, value: ConstPoolVal) -> None:
        self.plane(value.type).append(value)

    def remove(self, value: ConstPoolVal) -> None:
        """Unlink ``value``; raise ``ValueError`` if it is not in the pool."""
        plane = self.existing_plane(value.type)
        if plane is None:
            raise ValueError("constant not in pool")
        plane.remove(value)

    def find(self, value: ConstPoolVal) -> Optional[ConstPoolVal]:
        """Return a pooled constant equal to ``value``, or ``None``."""
        plane = self.existing_plane(value.type)
        if plane is None:
            return None
        return next((c for c in plane if value.equals(c)), None)

    def find_type(self, ty: Type) -> Optional[ConstPoolType]:
        """Return the pooled type constant for ``ty``, or ``None``."""
        plane = self.existing_plane(TYPE_TY)
        if plane is None:
            return None
        return next((c for c in plane if c.value is ty), None)

    def set_parent(self, parent: Any) -> None:
        self.parent = parent
        for plane in self._planes:
            plane.set_parent(parent)

    def drop_all_references(self) -> None:
        for constant in self.values():
            constant.drop_all_references()

    def delete_all(self) -> None:
        """Remove every constant and every plane."""
        self.drop_all_references()
        for plane in self._planes:
            while len(plane):
                plane.pop()
            plane.set_parent(None)
        self._planes.clear()


class SymTabValue(Value):
    """A value that owns a constant pool and a lazily created symbol table."""

    def __init__(self, ty: Any, kind: ValueKind, name: str = "") -> None:
        super().__init__(ty, kind, name)
        self.symbol_table: Optional[SymbolTable] = None
        self.parent_symtab: Optional[SymbolTable] = None
        self.constant_pool = ConstantPool(self)

    def symbol_table_sure(self) -> SymbolTable:
        """Return the symbol table, creating it if there is none yet."""
        if self.symbol_table is None:
            self.symbol_table = SymbolTable(self.parent_symtab)
        return self.symbol_table

    def set_parent_symtab(self, symtab: Optional[SymbolTable]) -> None:
        self.parent_symtab = symtab
        if self.symbol_table is not None:
            self.symbol_table.set_parent_symtab(symtab)

    def has_symbol_table(self) -> bool:
        """Return whether a symbol table exists and holds at least one name."""
        return self.symbol_table is not None and len(self.symbol_table) > 0