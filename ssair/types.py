"""The type system: primitive types and uniqued derived types."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from typing import Optional

from ssair.values import Value, ValueKind


class PrimitiveID(enum.IntEnum):
    """Identifiers of every kind of type."""

    VOID = 0
    BOOL = 1
    UBYTE = 2
    SBYTE = 3
    USHORT = 4
    SHORT = 5
    UINT = 6
    INT = 7
    ULONG = 8
    LONG = 9
    FLOAT = 10
    DOUBLE = 11
    TYPE = 12
    LABEL = 13
    LOCK = 14
    FILLER = 15
    METHOD = 16
    MODULE = 17
    ARRAY = 18
    POINTER = 19
    STRUCT = 20
    PACKED = 21


FIRST_DERIVED_TY_ID = PrimitiveID.METHOD

_uid_mappings: list[Type] = []
_type_type: Optional[Type] = None


class Type(Value):
    """A type; every type is itself a value of the type ``type``."""

    def __init__(self, name: str, prim_id: PrimitiveID) -> None:
        super().__init__(None, ValueKind.TYPE, name)
        self.type = _type_type if _type_type is not None else self
        self.primitive_id = PrimitiveID(prim_id)
        self.const_rules = None
        self.uid = len(_uid_mappings)
        _uid_mappings.append(self)

    @property
    def is_primitive(self) -> bool:
        return self.primitive_id < FIRST_DERIVED_TY_ID

    @property
    def is_derived(self) -> bool:
        return self.primitive_id >= FIRST_DERIVED_TY_ID

    @property
    def is_method_type(self) -> bool:
        return self.primitive_id == PrimitiveID.METHOD

    @property
    def is_label_type(self) -> bool:
        return self.primitive_id == PrimitiveID.LABEL

    @property
    def is_pointer_type(self) -> bool:
        return self.primitive_id == PrimitiveID.POINTER

    def is_signed(self) -> bool:
        return False

    def is_unsigned(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Type {self.name}>"


class _SignedIntType(Type):
    def __init__(self, name: str, prim_id: PrimitiveID, size: int) -> None:
        super().__init__(name, prim_id)
        self.size = size

    def is_signed(self) -> bool:
        return True


class _UnsignedIntType(Type):
    def __init__(self, name: str, prim_id: PrimitiveID, size: int) -> None:
        super().__init__(name, prim_id)
        self.size = size

    def is_unsigned(self) -> bool:
        return True


TYPE_TY = Type("type", PrimitiveID.TYPE)
_type_type = TYPE_TY

VOID_TY = Type("void", PrimitiveID.VOID)
BOOL_TY = Type("bool", PrimitiveID.BOOL)
SBYTE_TY = _SignedIntType("sbyte", PrimitiveID.SBYTE, 1)
UBYTE_TY = _UnsignedIntType("ubyte", PrimitiveID.UBYTE, 1)
SHORT_TY = _SignedIntType("short", PrimitiveID.SHORT, 2)
USHORT_TY = _UnsignedIntType("ushort", PrimitiveID.USHORT, 2)
INT_TY = _SignedIntType("int", PrimitiveID.INT, 4)
UINT_TY = _UnsignedIntType("uint", PrimitiveID.UINT, 4)
LONG_TY = _SignedIntType("long", PrimitiveID.LONG, 8)
ULONG_TY = _UnsignedIntType("ulong", PrimitiveID.ULONG, 8)
FLOAT_TY = Type("float", PrimitiveID.FLOAT)
DOUBLE_TY = Type("double", PrimitiveID.DOUBLE)
LABEL_TY = Type("label", PrimitiveID.LABEL)
LOCK_TY = Type("lock", PrimitiveID.LOCK)
FILLER_TY = Type("XXX FILLER XXX", PrimitiveID.FILLER)

_PRIMITIVES = {
    ty.primitive_id: ty
    for ty in (
        VOID_TY, BOOL_TY, UBYTE_TY, SBYTE_TY, USHORT_TY, SHORT_TY,
        UINT_TY, INT_TY, ULONG_TY, LONG_TY, FLOAT_TY, DOUBLE_TY,
        TYPE_TY, LABEL_TY, LOCK_TY, FILLER_TY,
    )
}


class MethodType(Type):
    """The signature of a method: a return type and parameter types."""

    def __init__(self, return_type: Type, params: Sequence[Type], name: str) -> None:
        super().__init__(name, PrimitiveID.METHOD)
        self.return_type = return_type
        self.param_types = tuple(params)


class ArrayType(Type):
    """An array of one element type; ``num_elements`` is -1 when unsized."""

    def __init__(self, element_type: Type, num_elements: int, name: str) -> None:
        super().__init__(name, PrimitiveID.ARRAY)
        self.element_type = element_type
        self.num_elements = num_elements

    @property
    def is_sized(self) -> bool:
        return self.num_elements >= 0


class StructType(Type):
    """A structure of a fixed sequence of element types."""

    def __init__(self, element_types: Sequence[Type], name: str) -> None:
        super().__init__(name, PrimitiveID.STRUCT)
        self.element_types = tuple(element_types)


class PointerType(Type):
    """A pointer to values of one type."""

    def __init__(self, value_type: Type) -> None:
        super().__init__(value_type.name + " *", PrimitiveID.POINTER)
        self.value_type = value_type


_method_types: dict[tuple, MethodType] = {}
_array_types: dict[tuple, ArrayType] = {}
_struct_types: dict[tuple, StructType] = {}
_pointer_types: dict[Type, PointerType] = {}


def get_primitive_type(prim_id: int) -> Optional[Type]:
    """Return the primitive type with ``prim_id``, or ``None`` if there is none."""
    try:
        key = PrimitiveID(prim_id)
    except ValueError:
        return None
    return _PRIMITIVES.get(key)


def get_unique_id_type(uid: int) -> Type:
    """Return the type that was given unique id ``uid``."""
    if not 0 <= uid < len(_uid_mappings):
        raise IndexError(f"type uid {uid} out of range")
    return _uid_mappings[uid]


def get_method_type(return_type: Type, params: Sequence[Type]) -> MethodType:
    key = (return_type, tuple(params))
    found = _method_types.get(key)
    if found is None:
        name = f"{return_type.name} ({', '.join(p.name for p in params)})"
        found = _method_types[key] = MethodType(return_type, params, name)
    return found


def get_array_type(element_type: Type, num_elements: int = -1) -> ArrayType:
    key = (element_type, num_elements)
    found = _array_types.get(key)
    if found is None:
        size = f"{num_elements} x " if num_elements != -1 else ""
        name = f"[{size}{element_type.name}]"
        found = _array_types[key] = ArrayType(element_type, num_elements, name)
    return found


def get_struct_type(element_types: Sequence[Type]) -> StructType:
    key = tuple(element_types)
    found = _struct_types.get(key)
    if found is None:
        name = "{ " + ", ".join(t.name for t in element_types) + " }"
        found = _struct_types[key] = StructType(element_types, name)
    return found


def get_pointer_type(value_type: Type) -> PointerType:
    found = _pointer_types.get(value_type)
    if found is None:
        found = _pointer_types[value_type] = PointerType(value_type)
    return found