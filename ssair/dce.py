"""Dead code elimination and merging of straight-line basic blocks."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ssair.constants import get_null_constant
from ssair.instructions import Opcode
from ssair.values import Value, ValueHolder


def _remove_unused(
    holder: ValueHolder, removable: Callable[[Value], bool], keep_last: int
) -> bool:
    """Remove values without uses, sparing the last ``keep_last`` entries."""
    members = list(holder)
    if keep_last:
        members = members[:-keep_last]
    changed = False
    for value in members:
        if not value.uses and removable(value):
            holder.remove(value)
            value.drop_all_references()
            changed = True
    return changed


def remove_unused_constants(owner: Any) -> bool:
    """Delete the constants of ``owner``'s pool that nothing uses."""
    changed = False
    for plane in list(owner.constant_pool):
        if _remove_unused(plane, lambda value: True, 0):
            changed = True
    return changed


def _replace_uses_with_constant(inst: Any) -> None:
    """Make every user of ``inst`` use some constant of the same type."""
    pool = inst.parent.parent.constant_pool
    plane = pool.existing_plane(inst.type)
    constant = plane[0] if plane is not None and len(plane) else None
    if constant is None:
        constant = get_null_constant(inst.type)
        if constant is None:
            raise ValueError(f"no constant to stand for a {inst.type.name} value")
        pool.insert(constant)
    inst.replace_all_uses_with(constant)


def _remove_unreachable(method: Any, block: Any) -> None:
    while len(block.instructions):
        inst = block.instructions[0]
        if inst.uses:
            _replace_uses_with_constant(inst)
        block.instructions.remove(inst)
        inst.drop_all_references()
    method.basic_blocks.remove(block)
    block.drop_all_references()


def _merge_into_successor(method: Any, pred: Any, block: Any) -> None:
    pred.replace_all_uses_with(block)
    terminator = pred.instructions.pop()
    terminator.drop_all_references()
    while len(pred.instructions):
        block.instructions.prepend(pred.instructions.pop())
    name = pred.name if pred.has_name else ""
    method.basic_blocks.remove(pred)
    if name:
        block.set_name(name)
    pred.drop_all_references()


def _dce_pass(method: Any) -> bool:
    changed = False

    for block in list(method.basic_blocks):
        if _remove_unused(
            block.instructions, lambda inst: not inst.has_side_effects, 1
        ):
            changed = True

    for block in list(method.basic_blocks)[1:]:
        if block.parent is not method:
            continue
        if block.terminator() is None:
            raise ValueError("degenerate basic block encountered")
        if not block.predecessors() and not block.has_constant_pool_references():
            _remove_unreachable(method, block)
            changed = True

    for block in list(method.basic_blocks):
        if block.parent is not method:
            continue
        preds = block.predecessors()
        if len(preds) != 1 or block.has_constant_pool_references():
            continue
        pred = preds[0]
        if pred is block:
            continue
        term = pred.terminator()
        if term is None:
            continue
        if term.opcode is not Opcode.BR or not term.is_unconditional:
            continue
        _merge_into_successor(method, pred, block)
        changed = True

    if remove_unused_constants(method):
        changed = True
    return changed


def eliminate_dead_code(method: Any) -> bool:
    """Repeat dead code elimination on ``method`` until it stops changing."""
    changed = False
    while _dce_pass(method):
        changed = True
    return changed


def eliminate_dead_code_in_module(module: Any) -> bool:
    """Eliminate dead code in every method, then unused module constants."""
    changed = False
    for method in list(module.methods):
        if eliminate_dead_code(method):
            changed = True
    while remove_unused_constants(module):
        changed = True
    return changed