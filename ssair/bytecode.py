"""Serialisation of a module to the binary bytecode format."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, BinaryIO, Optional

from ssair.constants import (
    ConstPoolArray,
    ConstPoolBool,
    ConstPoolSInt,
    ConstPoolStruct,
    ConstPoolType,
    ConstPoolUInt,
)
from ssair.slots import SlotCalculator
from ssair.types import (
    FIRST_DERIVED_TY_ID,
    VOID_TY,
    ArrayType,
    MethodType,
    PointerType,
    StructType,
    Type,
)
from ssair.values import Value, ValueKind

SIGNATURE = b"llvm"

_NO_OPERAND = (1 << 12) - 1


class BlockID(enum.IntEnum):
    """Identifiers of the blocks that make up a bytecode file."""

    MODULE = 0x01
    METHOD = 0x11
    CONSTANT_POOL = 0x12
    SYMBOL_TABLE = 0x13
    MODULE_GLOBAL_INFO = 0x14
    METHOD_INFO = 0x21
    BASIC_BLOCK = 0x31


class BytecodeWriter:
    """Encodes a whole module into bytes when constructed."""

    def __init__(self, module: Any) -> None:
        if module is None:
            raise ValueError("cannot write a null module")
        self._out = bytearray()
        self._table = SlotCalculator(module, False)

        self._out += SIGNATURE
        with self._block(BlockID.MODULE):
            self._vbr(FIRST_DERIVED_TY_ID)
            self._align32()
            self._write_module(module)
            if module.has_symbol_table():
                self._write_symbol_table(module.symbol_table)

    def getvalue(self) -> bytes:
        """Return the encoded module."""
        return bytes(self._out)

    # Primitive encoders

    def _u32(self, value: int) -> None:
        self._out += (value & 0xFFFFFFFF).to_bytes(4, "little")

    def _vbr(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"cannot encode negative value {value} as unsigned")
        while value >= 0x80:
            self._out.append((value & 0x7F) | 0x80)
            value >>= 7
        self._out.append(value)

    def _signed_vbr(self, value: int) -> None:
        if value < 0:
            self._vbr(((-value) << 1) | 1)
        else:
            self._vbr(value << 1)

    def _string(self, text: str) -> None:
        data = text.encode("utf-8")
        self._vbr(len(data))
        self._out += data

    def _align32(self) -> None:
        self._out += bytes(-len(self._out) % 4)

    @contextmanager
    def _block(self, block_id: BlockID) -> Iterator[None]:
        """Write a block header and patch in the block size afterwards."""
        self._u32(block_id)
        self._u32(0)
        start = len(self._out)
        yield
        size = len(self._out) - start
        self._out[start - 4:start] = size.to_bytes(4, "little")
        self._align32()

    def _slot(self, value: Value) -> int:
        slot = self._table.slot(value)
        if slot is None:
            raise ValueError(f"{value!r} is used but has no slot")
        return slot

    # Structure

    def _write_module(self, module: Any) -> None:
        self._write_const_pool(is_method=False)
        self._write_module_info(module)
        for method in module.methods:
            self._write_method(method)

    def _write_const_pool(self, is_method: bool) -> None:
        with self._block(BlockID.CONSTANT_POOL):
            for index in range(self._table.num_planes):
                plane = self._table.plane(index)
                if not plane:
                    continue
                start = self._table.module_level(index) if is_method else 0
                constants = [
                    value for value in plane[start:]
                    if value.kind is ValueKind.CONSTANT
                ]
                if not constants:
                    continue
                self._vbr(len(constants))
                self._vbr(self._slot(plane[0].type))
                for constant in constants:
                    self._write_constant(constant)

    def _write_module_info(self, module: Any) -> None:
        with self._block(BlockID.MODULE_GLOBAL_INFO):
            for method in module.methods:
                slot = self._slot(method.type)
                if slot < FIRST_DERIVED_TY_ID:
                    raise ValueError("method type is not a derived type")
                self._vbr(slot)
            self._vbr(self._slot(VOID_TY))
            self._align32()

    def _write_method(self, method: Any) -> None:
        with self._block(BlockID.METHOD):
            self._table.incorporate_method(method)
            try:
                self._write_const_pool(is_method=True)
                for block in method.basic_blocks:
                    with self._block(BlockID.BASIC_BLOCK):
                        for instruction in block.instructions:
                            self._write_instruction(instruction)
                if method.has_symbol_table():
                    self._write_symbol_table(method.symbol_table)
            finally:
                self._table.purge_method()

    def _write_symbol_table(self, symtab: Any) -> None:
        with self._block(BlockID.SYMBOL_TABLE):
            for ty, entries in symtab.planes():
                self._vbr(len(entries))
                self._vbr(self._slot(ty))
                for name, value in entries:
                    self._vbr(self._slot(value))
                    self._string(name)

    # Constants and types

    def _write_type(self, ty: Type) -> None:
        self._vbr(int(ty.primitive_id))
        if not ty.is_derived:
            return
        if isinstance(ty, MethodType):
            self._vbr(self._slot(ty.return_type))
            for param in ty.param_types:
                self._vbr(self._slot(param))
            self._vbr(int(VOID_TY.primitive_id))
        elif isinstance(ty, ArrayType):
            self._vbr(self._slot(ty.element_type))
            self._signed_vbr(ty.num_elements)
        elif isinstance(ty, StructType):
            for element in ty.element_types:
                self._vbr(self._slot(element))
            self._vbr(int(VOID_TY.primitive_id))
        elif isinstance(ty, PointerType):
            self._vbr(self._slot(ty.value_type))
        else:
            raise ValueError(f"don't know how to serialize type '{ty.name}'")

    def _write_constant(self, constant: Any) -> None:
        if isinstance(constant, ConstPoolBool):
            self._vbr(1 if constant.value else 0)
        elif isinstance(constant, ConstPoolUInt):
            self._vbr(constant.value)
        elif isinstance(constant, ConstPoolSInt):
            self._signed_vbr(constant.value)
        elif isinstance(constant, ConstPoolType):
            self._write_type(constant.value)
        elif isinstance(constant, ConstPoolArray):
            values = constant.values
            if constant.type.num_elements < 0:
                self._vbr(len(values))
            for value in values:
                self._vbr(self._slot(value))
        elif isinstance(constant, ConstPoolStruct):
            for value in constant.values:
                self._vbr(self._slot(value))
        else:
            raise ValueError(
                f"don't know how to serialize type '{constant.type.name}'"
            )

    # Instructions

    def _write_instruction(self, inst: Any) -> None:
        opcode = int(inst.opcode)
        if opcode >= 64:
            raise ValueError(f"opcode {opcode} too large to encode")

        operands = inst.operands()
        slots = [self._slot(operand) for operand in operands]
        max_slot = max(slots, default=0)
        ty = operands[0].type if operands else inst.type
        type_slot = self._slot(ty)
        count = len(slots)

        if count <= 1 and max_slot < _NO_OPERAND:
            first = slots[0] if slots else _NO_OPERAND
            self._u32((1 << 30) | (opcode << 24) | (type_slot << 12) | first)
        elif count == 2 and max_slot < (1 << 8):
            self._u32(
                (2 << 30) | (opcode << 24) | (type_slot << 16)
                | (slots[0] << 8) | slots[1]
            )
        elif count == 3 and max_slot < (1 << 6):
            self._u32(
                (3 << 30) | (opcode << 24) | (type_slot << 18)
                | (slots[0] << 12) | (slots[1] << 6) | slots[2]
            )
        else:
            self._vbr(opcode)
            self._vbr(type_slot)
            self._vbr(count)
            for slot in slots:
                self._vbr(slot)
            self._align32()


def write_bytecode(module: Any) -> bytes:
    """Return the bytecode encoding of ``module``."""
    return BytecodeWriter(module).getvalue()


def write_bytecode_to_file(module: Any, out: BinaryIO) -> None:
    """Write the bytecode encoding of ``module`` to the binary stream ``out``."""
    data: Optional[bytes] = write_bytecode(module)
    out.write(data)
    out.flush()