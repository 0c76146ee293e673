"""Constant folding, propagation and merging of identical constants."""

from __future__ import annotations

from typing import Any, Optional

from ssair.constants import ConstantPool, ConstPoolBool, ConstPoolVal
from ssair.folding import find_rules
from ssair.instructions import Instruction, Opcode
from ssair.values import Value, ValueKind


def merge_constant_pool_references(pool: ConstantPool) -> bool:
    """Fold identical constants of each plane into one.

    Every use of a duplicate is redirected to the later equal constant, which
    inherits the duplicate's name if it has none of its own.  Return whether
    anything was merged.
    """
    modified = False
    for plane in list(pool):
        members = list(plane)
        for position, constant in enumerate(members):
            for other in members[position + 1:]:
                if other.parent is None or not constant.equals(other):
                    continue
                modified = True
                constant.replace_all_uses_with(other)
                name = constant.name if constant.has_name else ""
                plane.remove(constant)
                if name and not other.has_name:
                    other.set_name(name)
                constant.drop_all_references()
                break
    return modified


def _negate(result: Optional[ConstPoolBool]) -> Optional[ConstPoolBool]:
    return None if result is None else ConstPoolBool(not result.value)


def _compare(
    opcode: Opcode, left: ConstPoolVal, right: ConstPoolVal
) -> Optional[ConstPoolBool]:
    rules = find_rules(left.type)
    if opcode is Opcode.SETLT:
        return rules.less_than(left, right)
    if opcode is Opcode.SETGT:
        return rules.less_than(right, left)
    if opcode is Opcode.SETLE:
        return _negate(rules.less_than(right, left))
    if opcode is Opcode.SETGE:
        return _negate(rules.less_than(left, right))
    below = rules.less_than(left, right)
    above = rules.less_than(right, left)
    if below is None or above is None:
        return None
    equal = not below.value and not above.value
    if opcode is Opcode.SETEQ:
        return ConstPoolBool(equal)
    return ConstPoolBool(not equal)


def _fold_binary(
    opcode: Opcode, left: ConstPoolVal, right: ConstPoolVal
) -> Optional[ConstPoolVal]:
    rules = find_rules(left.type)
    if opcode is Opcode.ADD:
        return rules.add(left, right)
    if opcode is Opcode.SUB:
        return rules.sub(left, right)
    if opcode.is_set_condition:
        return _compare(opcode, left, right)
    return None


def _fold_unary(opcode: Opcode, value: ConstPoolVal) -> Optional[ConstPoolVal]:
    rules = find_rules(value.type)
    if opcode is Opcode.NOT:
        return rules.not_(value)
    if opcode is Opcode.NEG:
        return rules.neg(value)
    return None


def _replace_with_constant(
    method: Any, inst: Instruction, constant: ConstPoolVal
) -> None:
    """Put ``constant`` in the pool and substitute it for ``inst``."""
    method.constant_pool.insert(constant)
    inst.replace_all_uses_with(constant)
    name = inst.name if inst.has_name else ""
    inst.parent.instructions.remove(inst)
    if name:
        constant.set_name(name)
    inst.drop_all_references()


def _is_constant(value: Optional[Value]) -> bool:
    return value is not None and value.kind is ValueKind.CONSTANT


def _fold_terminator(inst: Instruction) -> bool:
    if inst.opcode is not Opcode.BR or inst.is_unconditional:
        return False
    condition = inst.operand(2)
    if not _is_constant(condition):
        return False
    destination = inst.operand(0 if condition.value else 1)
    inst.set_operand(0, destination)
    inst.set_operand(1, None)
    inst.set_operand(2, None)
    return True


def _fold_phi(inst: Instruction) -> bool:
    first = inst.operand(0)
    if first is None:
        raise ValueError("phi node must have at least one operand")
    if inst.operand(1) is not None or first is inst:
        return False
    inst.replace_all_uses_with(first)
    name = inst.name if inst.has_name else ""
    inst.parent.instructions.remove(inst)
    if name:
        first.set_name(name)
    inst.drop_all_references()
    return True


def _fold_instruction(method: Any, inst: Instruction) -> bool:
    if inst.is_binary_op:
        left, right = inst.operand(0), inst.operand(1)
        if _is_constant(left) and _is_constant(right):
            result = _fold_binary(inst.opcode, left, right)
            if result is not None:
                _replace_with_constant(method, inst, result)
                return True
        return False
    if inst.is_unary_op:
        source = inst.operand(0)
        if _is_constant(source):
            result = _fold_unary(inst.opcode, source)
            if result is not None:
                _replace_with_constant(method, inst, result)
                return True
        return False
    if inst.is_terminator:
        return _fold_terminator(inst)
    if inst.opcode is Opcode.PHI:
        return _fold_phi(inst)
    return False


def _propagation_pass(method: Any) -> bool:
    changed = False
    for inst in method.instructions():
        if inst.parent is None:
            continue
        if _fold_instruction(method, inst):
            changed = True
    return changed


def propagate_constants(method: Any) -> bool:
    """Fold constant expressions in ``method`` until nothing changes.

    Identical constants are merged afterwards.  Return whether the method
    was modified.
    """
    modified = False
    while _propagation_pass(method):
        modified = True
    if merge_constant_pool_references(method.constant_pool):
        modified = True
    return modified