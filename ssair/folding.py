"""Arithmetic and comparison on constants, chosen by type."""

from __future__ import annotations

import struct
from collections.abc import Callable
from typing import Optional

from ssair.constants import (
    ConstPoolBool,
    ConstPoolFP,
    ConstPoolSInt,
    ConstPoolUInt,
    ConstPoolVal,
)
from ssair.types import (
    DOUBLE_TY,
    FLOAT_TY,
    INT_TY,
    LONG_TY,
    SBYTE_TY,
    SHORT_TY,
    UBYTE_TY,
    UINT_TY,
    ULONG_TY,
    USHORT_TY,
    PrimitiveID,
    Type,
)


class ConstRules:
    """Operations on constants of one type; each returns ``None`` if unsupported."""

    def neg(self, value: ConstPoolVal) -> Optional[ConstPoolVal]:
        return None

    def not_(self, value: ConstPoolVal) -> Optional[ConstPoolVal]:
        return None

    def add(self, left: ConstPoolVal, right: ConstPoolVal) -> Optional[ConstPoolVal]:
        return None

    def sub(self, left: ConstPoolVal, right: ConstPoolVal) -> Optional[ConstPoolVal]:
        return None

    def less_than(
        self, left: ConstPoolVal, right: ConstPoolVal
    ) -> Optional[ConstPoolBool]:
        return None


class _BoolRules(ConstRules):
    def not_(self, value: ConstPoolVal) -> ConstPoolVal:
        return ConstPoolBool(not value.value)

    def or_(self, left: ConstPoolVal, right: ConstPoolVal) -> ConstPoolVal:
        return ConstPoolBool(left.value or right.value)

    def and_(self, left: ConstPoolVal, right: ConstPoolVal) -> ConstPoolVal:
        return ConstPoolBool(left.value and right.value)


def _int_converter(bits: int, signed: bool) -> Callable[[float], int]:
    mask = (1 << bits) - 1

    def convert(value):
        result = int(value) & mask
        if signed and result >> (bits - 1):
            result -= 1 << bits
        return result

    return convert


def _to_float32(value) -> float:
    return struct.unpack("<f", struct.pack("<f", float(value)))[0]


class _DirectRules(ConstRules):
    """Rules computed on the value as the machine type of ``ty`` holds it."""

    def __init__(self, const_class: type, ty: Type, convert: Callable) -> None:
        self.const_class = const_class
        self.ty = ty
        self.convert = convert

    def _make(self, result) -> ConstPoolVal:
        return self.const_class(self.ty, self.convert(result))

    def neg(self, value: ConstPoolVal) -> ConstPoolVal:
        return self._make(-self.convert(value.value))

    def not_(self, value: ConstPoolVal) -> ConstPoolVal:
        return self._make(int(not self.convert(value.value)))

    def add(self, left: ConstPoolVal, right: ConstPoolVal) -> ConstPoolVal:
        return self._make(self.convert(left.value) + self.convert(right.value))

    def sub(self, left: ConstPoolVal, right: ConstPoolVal) -> ConstPoolVal:
        return self._make(self.convert(left.value) - self.convert(right.value))

    def less_than(self, left: ConstPoolVal, right: ConstPoolVal) -> ConstPoolBool:
        return ConstPoolBool(self.convert(left.value) < self.convert(right.value))


_EMPTY_RULES = ConstRules()

_RULES: dict[PrimitiveID, ConstRules] = {
    PrimitiveID.BOOL: _BoolRules(),
    PrimitiveID.SBYTE: _DirectRules(ConstPoolSInt, SBYTE_TY, _int_converter(8, True)),
    PrimitiveID.UBYTE: _DirectRules(ConstPoolUInt, UBYTE_TY, _int_converter(8, False)),
    PrimitiveID.SHORT: _DirectRules(ConstPoolSInt, SHORT_TY, _int_converter(16, True)),
    PrimitiveID.USHORT: _DirectRules(
        ConstPoolUInt, USHORT_TY, _int_converter(16, False)
    ),
    PrimitiveID.INT: _DirectRules(ConstPoolSInt, INT_TY, _int_converter(32, True)),
    PrimitiveID.UINT: _DirectRules(ConstPoolUInt, UINT_TY, _int_converter(32, False)),
    PrimitiveID.LONG: _DirectRules(ConstPoolSInt, LONG_TY, _int_converter(64, True)),
    PrimitiveID.ULONG: _DirectRules(
        ConstPoolUInt, ULONG_TY, _int_converter(64, False)
    ),
    PrimitiveID.FLOAT: _DirectRules(ConstPoolFP, FLOAT_TY, _to_float32),
    PrimitiveID.DOUBLE: _DirectRules(ConstPoolFP, DOUBLE_TY, float),
}


def find_rules(ty: Type) -> ConstRules:
    """Return the rules for ``ty``, caching them on the type."""
    if ty.const_rules is not None:
        return ty.const_rules
    rules = _RULES.get(ty.primitive_id, _EMPTY_RULES)
    ty.const_rules = rules
    return rules