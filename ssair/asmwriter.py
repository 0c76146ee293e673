"""Rendering of modules, methods, blocks, instructions and constants as text."""

from __future__ import annotations

import io
from typing import Any, Optional, TextIO

from ssair.instructions import Opcode
from ssair.slots import SlotCalculator
from ssair.types import VOID_TY
from ssair.values import Value, ValueKind


class AssemblyWriter:
    """Writes the assembly form of program entities to a text stream."""

    def __init__(self, out: TextIO, table: SlotCalculator) -> None:
        self.out = out
        self.table = table

    def write(self, obj: Any) -> None:
        """Write a module, method, basic block, instruction or constant."""
        handlers = {
            ValueKind.MODULE: self._write_module,
            ValueKind.METHOD: self._write_method,
            ValueKind.BASIC_BLOCK: self._write_block,
            ValueKind.INSTRUCTION: self._write_instruction,
            ValueKind.CONSTANT: self._write_constant,
        }
        handler = handlers.get(getattr(obj, "kind", None))
        if handler is None:
            raise TypeError(f"cannot write {obj!r} as assembly")
        handler(obj)

    def _slot_text(self, value: Value) -> str:
        slot = self.table.slot(value)
        return str(slot) if slot is not None else "<badref>"

    def _write_module(self, module: Any) -> None:
        self._write_const_pool(module.constant_pool, is_method=False)
        for method in module.methods:
            self._write_method(method)

    def _write_const_pool(self, pool: Any, is_method: bool) -> None:
        if is_method:
            self.out.write(")\n")
        for constant in pool.values():
            self._write_constant(constant)
        self.out.write("begin" if is_method else "implementation\n")

    def _write_method(self, method: Any) -> None:
        self.out.write(f'\n{method.return_type.name} "{method.name}"(')
        self.table.incorporate_method(method)
        try:
            for index, argument in enumerate(method.arguments):
                self._write_argument(argument, first=index == 0)
            self._write_const_pool(method.constant_pool, is_method=True)
            for block in method.basic_blocks:
                self._write_block(block)
        finally:
            self.table.purge_method()
        self.out.write("end\n")

    def _write_argument(self, argument: Value, first: bool) -> None:
        if not first:
            self.out.write(", ")
        self.out.write(argument.type.name)
        if argument.has_name:
            self.out.write(f" %{argument.name}")
        elif self.table.slot(argument) is None:
            self.out.write("<badref>")

    def _write_constant(self, constant: Any) -> None:
        self.out.write("\t")
        if constant.has_name:
            self.out.write(f"%{constant.name} = ")
        self.out.write(constant.type.name)
        self._write_operand(constant, print_type=False, print_name=False)
        if not constant.has_name and constant.type is not VOID_TY:
            self.out.write(f"\t\t; <{constant.type.name}>:{self._slot_text(constant)}")
        self.out.write("\n")

    def _write_block(self, block: Any) -> None:
        if block.has_name:
            self.out.write(f"\n{block.name}:\n")
        else:
            self.out.write(f"\t\t\t\t; <label>:{self._slot_text(block)}\n")
        for instruction in block.instructions:
            self._write_instruction(instruction)

    def _write_instruction(self, inst: Any) -> None:
        out = self.out
        out.write("\t")
        if inst.has_name:
            out.write(f"%{inst.name} = ")
        out.write(inst.opcode_name)

        first: Optional[Value] = inst.operand(0)
        opcode = inst.opcode

        if opcode is Opcode.BR and inst.operand(1) is not None:
            self._write_operand(inst.operand(2), True)
            out.write(",")
            self._write_operand(first, True)
            out.write(",")
            self._write_operand(inst.operand(1), True)
        elif opcode is Opcode.SWITCH:
            self._write_operand(first, True)
            out.write(",")
            self._write_operand(inst.operand(1), True)
            out.write(" [")
            index = 2
            while (case := inst.operand(index)) is not None:
                out.write("\n\t\t")
                self._write_operand(case, True)
                out.write(",")
                self._write_operand(inst.operand(index + 1), True)
                index += 2
            out.write("\n\t]")
        elif opcode is Opcode.RET and first is None:
            out.write(" void")
        elif opcode is Opcode.CALL:
            self._write_operand(first, True)
            out.write("(")
            for index, param in enumerate(inst.operands()[1:]):
                if index:
                    out.write(",")
                self._write_operand(param, True)
            out.write(" )")
        elif opcode in (Opcode.MALLOC, Opcode.ALLOCA):
            out.write(f" {first.value.value_type.name}")
            size = inst.operand(1)
            if size is not None:
                out.write(",")
                self._write_operand(size, True)
        elif first is not None:
            operands = inst.operands()
            print_all = any(op.type is not first.type for op in operands[1:])
            if not print_all:
                out.write(f" {first.type.name}")
            for index, operand in enumerate(operands):
                if index:
                    out.write(",")
                self._write_operand(operand, print_all)

        if not inst.has_name and inst.type is not VOID_TY:
            out.write(f"\t\t; <{inst.type.name}>:{self._slot_text(inst)}")
            out.write(f"\t[#uses={len(inst.uses)}]")
        out.write("\n")

    def _write_operand(
        self, operand: Value, print_type: bool, print_name: bool = True
    ) -> None:
        if print_type:
            self.out.write(f" {operand.type.name}")
        if operand.has_name and print_name:
            self.out.write(f" %{operand.name}")
            return
        slot = self.table.slot(operand)
        if operand.kind is ValueKind.CONSTANT:
            self.out.write(f" {operand.str_value()}")
        elif slot is not None:
            self.out.write(f" %{slot}")
        elif print_name:
            self.out.write("<badref>")


def _table_for(obj: Any) -> SlotCalculator:
    kind = getattr(obj, "kind", None)
    if kind is ValueKind.MODULE:
        return SlotCalculator(obj, True)
    if kind in (ValueKind.METHOD, ValueKind.BASIC_BLOCK, ValueKind.CONSTANT):
        return SlotCalculator(obj.parent, True)
    if kind is ValueKind.INSTRUCTION:
        block = obj.parent
        return SlotCalculator(block.parent if block is not None else None, True)
    raise TypeError(f"cannot write {obj!r} as assembly")


def write_assembly(obj: Any, out: TextIO) -> None:
    """Write the assembly form of ``obj`` to the text stream ``out``."""
    table = _table_for(obj)
    AssemblyWriter(out, table).write(obj)


def to_assembly(obj: Any) -> str:
    """Return the assembly form of ``obj`` as a string."""
    buffer = io.StringIO()
    write_assembly(obj, buffer)
    return buffer.getvalue()