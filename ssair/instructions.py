"""Instructions: terminators, binary operators, phi nodes and calls."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from typing import Any, Optional

from ssair.types import BOOL_TY, LABEL_TY, VOID_TY, Type
from ssair.values import User, Value, ValueKind


class Opcode(enum.IntEnum):
    """Instruction opcodes, grouped into contiguous ranges."""

    RET = 1
    BR = 2
    SWITCH = 3
    NEG = 4
    NOT = 5
    ADD = 6
    SUB = 7
    MUL = 8
    DIV = 9
    REM = 10
    AND = 11
    OR = 12
    XOR = 13
    SETEQ = 14
    SETNE = 15
    SETLE = 16
    SETGE = 17
    SETLT = 18
    SETGT = 19
    MALLOC = 20
    FREE = 21
    ALLOCA = 22
    LOAD = 23
    STORE = 24
    GETFIELD = 25
    PUTFIELD = 26
    PHI = 27
    CALL = 28
    CAST = 29
    SHL = 30
    SHR = 31
    USER_OP1 = 32
    USER_OP2 = 33

    @property
    def is_terminator(self) -> bool:
        return Opcode.RET <= self <= Opcode.SWITCH

    @property
    def is_unary(self) -> bool:
        return Opcode.NEG <= self <= Opcode.NOT

    @property
    def is_binary(self) -> bool:
        return Opcode.ADD <= self <= Opcode.SETGT

    @property
    def is_set_condition(self) -> bool:
        return Opcode.SETEQ <= self <= Opcode.SETGT


_SIDE_EFFECT_OPCODES = frozenset({Opcode.CALL, Opcode.FREE, Opcode.STORE})


def _require_label(value: Value, what: str) -> None:
    if value.type is not LABEL_TY:
        raise TypeError(f"{what} must be a label, not {value.type.name}")


class Instruction(User):
    """A value computed by an operation inside a basic block."""

    def __init__(
        self,
        ty: Any,
        opcode: int,
        name: str = "",
        operands: Sequence[Optional[Value]] = (),
    ) -> None:
        super().__init__(ty, ValueKind.INSTRUCTION, name, operands)
        self.opcode = Opcode(opcode)

    @property
    def opcode_name(self) -> str:
        return self.opcode.name.lower()

    @property
    def is_terminator(self) -> bool:
        return self.opcode.is_terminator

    @property
    def is_binary_op(self) -> bool:
        return self.opcode.is_binary

    @property
    def is_unary_op(self) -> bool:
        return self.opcode.is_unary

    @property
    def has_side_effects(self) -> bool:
        return self.is_terminator or self.opcode in _SIDE_EFFECT_OPCODES

    def set_name(self, name: str) -> None:
        """Rename, keeping the enclosing method's symbol table in step."""
        block = self.parent
        method = block.parent if block is not None else None
        if method is not None and self.has_name:
            method.symbol_table.remove(self)
        self.name = name
        if method is not None and self.has_name:
            method.symbol_table_sure().insert(self)

    def drop_all_references(self) -> None:
        """Let go of every operand, leaving the slots empty."""
        count = len(self._operands)
        self._release_operands()
        self._operands.extend([None] * count)

    def clone(self) -> Instruction:
        """Return an unnamed, unattached copy using the same operands."""
        return Instruction(self.type, self.opcode, operands=self._operands)


class TerminatorInst(Instruction):
    """An instruction that ends a basic block and names its successors."""

    def __init__(
        self, opcode: int, operands: Sequence[Optional[Value]] = ()
    ) -> None:
        super().__init__(VOID_TY, opcode, "", operands)

    def successor(self, index: int) -> Optional[Value]:
        return None

    @property
    def successors(self) -> list[Value]:
        result = []
        index = 0
        while (block := self.successor(index)) is not None:
            result.append(block)
            index += 1
        return result


class BinaryOperator(Instruction):
    """An operator with two operands whose result has the operands' type."""

    def __init__(
        self, opcode: int, left: Value, right: Value, name: str = ""
    ) -> None:
        opcode = Opcode(opcode)
        if not opcode.is_binary:
            raise ValueError(f"{opcode.name} is not a binary operator")
        super().__init__(left.type, opcode, name, (left, right))

    def clone(self) -> BinaryOperator:
        return BinaryOperator(self.opcode, *self._operands)


class SetCondInst(BinaryOperator):
    """A comparison of two operands producing a ``bool``."""

    def __init__(
        self, opcode: int, left: Value, right: Value, name: str = ""
    ) -> None:
        opcode = Opcode(opcode)
        if not opcode.is_set_condition:
            raise ValueError(f"invalid opcode type to SetCondInst: {opcode.name}")
        super().__init__(opcode, left, right, name)
        self.type = BOOL_TY

    def clone(self) -> SetCondInst:
        return SetCondInst(self.opcode, *self._operands)


class PHINode(Instruction):
    """A merge of incoming values from predecessor blocks."""

    def __init__(self, ty: Type, name: str = "") -> None:
        super().__init__(ty, Opcode.PHI, name)

    @property
    def incoming_values(self) -> list[Value]:
        return self.operands()

    def add_incoming(self, value: Value) -> None:
        if value is None:
            raise ValueError("phi node must only reference non-null values")
        self._add_operand(value)

    def set_operand(self, index: int, value: Optional[Value]) -> None:
        if value is None:
            raise ValueError("phi node must only reference non-null values")
        super().set_operand(index, value)

    def drop_all_references(self) -> None:
        self._release_operands()

    def clone(self) -> PHINode:
        copy = PHINode(self.type)
        for value in self.incoming_values:
            copy.add_incoming(value)
        return copy


class BranchInst(TerminatorInst):
    """A conditional or unconditional branch.

    Operand slots are: true destination, false destination, condition.
    """

    def __init__(
        self,
        true_dest: Value,
        false_dest: Optional[Value] = None,
        condition: Optional[Value] = None,
    ) -> None:
        if true_dest is None:
            raise ValueError("true branch destination may not be null")
        _require_label(true_dest, "branch destination")
        if false_dest is not None:
            _require_label(false_dest, "branch destination")
        if condition is not None and condition.type is not BOOL_TY:
            raise TypeError("may only branch on boolean predicates")
        super().__init__(Opcode.BR, (true_dest, false_dest, condition))

    @property
    def is_unconditional(self) -> bool:
        return self.operand(1) is None

    @property
    def condition(self) -> Optional[Value]:
        return self.operand(2)

    def successor(self, index: int) -> Optional[Value]:
        if index in (0, 1):
            return self.operand(index)
        return None

    def set_operand(self, index: int, value: Optional[Value]) -> None:
        if index == 0:
            if value is None:
                raise ValueError("cannot clear the primary branch destination")
            _require_label(value, "branch destination")
        elif index == 1:
            if value is not None:
                _require_label(value, "branch destination")
        elif index == 2:
            if value is not None and value.type is not BOOL_TY:
                raise TypeError("condition must be a boolean expression")
        super().set_operand(index, value)

    def clone(self) -> BranchInst:
        return BranchInst(*self._operands)


class ReturnInst(TerminatorInst):
    """A return from the method, with or without a value."""

    def __init__(self, value: Optional[Value] = None) -> None:
        super().__init__(Opcode.RET, (value,))

    @property
    def return_value(self) -> Optional[Value]:
        return self.operand(0)

    def clone(self) -> ReturnInst:
        return ReturnInst(self.return_value)


class SwitchInst(TerminatorInst):
    """A multiway branch on a value.

    Operand slots are: the value, the default destination, then pairs of
    case constant and destination.
    """

    def __init__(self, value: Value, default_dest: Value) -> None:
        if value is None or default_dest is None:
            raise ValueError("switch needs a value and a default destination")
        _require_label(default_dest, "default destination")
        super().__init__(Opcode.SWITCH, (value, default_dest))

    @property
    def value(self) -> Optional[Value]:
        return self.operand(0)

    @property
    def default_dest(self) -> Optional[Value]:
        return self.operand(1)

    @property
    def destinations(self) -> list[tuple[Value, Value]]:
        return list(zip(self._operands[2::2], self._operands[3::2]))

    @property
    def num_operands(self) -> int:
        return len(self._operands)

    def add_destination(self, on_value: Value, dest: Value) -> None:
        _require_label(dest, "switch destination")
        self._add_operand(on_value)
        self._add_operand(dest)

    def successor(self, index: int) -> Optional[Value]:
        if index == 0:
            return self.default_dest
        destinations = self.destinations
        if index < 0 or index > len(destinations):
            return None
        return destinations[index - 1][1]

    def set_operand(self, index: int, value: Optional[Value]) -> None:
        if index == 1 or (index >= 3 and index % 2 == 1):
            if value is None:
                raise ValueError("switch destination may not be null")
            _require_label(value, "switch destination")
        super().set_operand(index, value)

    def drop_all_references(self) -> None:
        self._release_operands()
        self._operands.extend([None, None])

    def clone(self) -> SwitchInst:
        copy = SwitchInst(self.value, self.default_dest)
        for on_value, dest in self.destinations:
            copy.add_destination(on_value, dest)
        return copy


class CallInst(Instruction):
    """A call of a method; operand 0 is the method, the rest are arguments."""

    def __init__(
        self, method: Value, params: Sequence[Value], name: str = ""
    ) -> None:
        params = list(params)
        param_types = method.method_type.param_types
        if len(params) != len(param_types):
            raise TypeError(
                f"call passes {len(params)} arguments, "
                f"method takes {len(param_types)}"
            )
        for param, expected in zip(params, param_types):
            if param.type is not expected:
                raise TypeError(
                    f"argument of type {param.type.name} where "
                    f"{expected.name} is expected"
                )
        super().__init__(method.return_type, Opcode.CALL, name, (method, *params))

    @property
    def called_method(self) -> Optional[Value]:
        return self.operand(0)

    @property
    def params(self) -> list[Optional[Value]]:
        return self._operands[1:]

    def set_operand(self, index: int, value: Optional[Value]) -> None:
        if index == 0 and (value is None or value.kind is not ValueKind.METHOD):
            raise TypeError("the called value must be a method")
        super().set_operand(index, value)

    def drop_all_references(self) -> None:
        self._release_operands()
        self._operands.append(None)

    def clone(self) -> CallInst:
        return CallInst(self.called_method, self.params)


def get_binary_operator(op: int, left: Value, right: Value) -> Instruction:
    """Build the binary instruction for ``op``; raise ``ValueError`` if unknown."""
    try:
        opcode = Opcode(op)
    except ValueError:
        raise ValueError(f"don't know how to build binary operator {op}") from None
    if opcode in (Opcode.ADD, Opcode.SUB):
        return BinaryOperator(opcode, left, right)
    if opcode.is_set_condition:
        return SetCondInst(opcode, left, right)
    raise ValueError(f"don't know how to build binary operator {op}")


def get_unary_operator(op: int, source: Value) -> Instruction:
    """Build the unary instruction for ``op``; no unary operator is buildable."""
    raise ValueError(f"don't know how to build unary operator {op}")


def iter_terminators(users: Sequence[Value]) -> Iterator[TerminatorInst]:
    """Yield the terminator instructions among ``users``."""
    for user in users:
        if user.kind is ValueKind.INSTRUCTION and user.is_terminator:
            yield user