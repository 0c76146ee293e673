import pytest

from ssair.constants import ConstPoolBool, ConstPoolSInt
from ssair.instructions import (
    BinaryOperator,
    BranchInst,
    CallInst,
    Opcode,
    PHINode,
    ReturnInst,
    SetCondInst,
    SwitchInst,
    get_binary_operator,
    get_unary_operator,
)
from ssair.program import BasicBlock, Method
from ssair.types import BOOL_TY, INT_TY, LONG_TY, VOID_TY, get_method_type


def _int(value):
    return ConstPoolSInt(INT_TY, value)


def test_binary_operator_takes_operand_type_and_records_uses():
    a, b = _int(1), _int(2)
    add = get_binary_operator(Opcode.ADD, a, b)
    assert isinstance(add, BinaryOperator)
    assert add.type is INT_TY
    assert add.operands() == [a, b]
    assert a.uses == [add]
    assert add.is_binary_op and not add.is_terminator


def test_setcc_returns_bool():
    a, b = _int(1), _int(2)
    cmp = get_binary_operator(Opcode.SETLT, a, b)
    assert isinstance(cmp, SetCondInst)
    assert cmp.type is BOOL_TY
    assert cmp.opcode_name == "setlt"


def test_unknown_binary_operator_raises():
    with pytest.raises(ValueError):
        get_binary_operator(Opcode.MUL, _int(1), _int(2))


def test_unary_operator_is_never_buildable():
    with pytest.raises(ValueError):
        get_unary_operator(Opcode.NOT, _int(1))


def test_setcond_rejects_non_comparison():
    with pytest.raises(ValueError):
        SetCondInst(Opcode.ADD, _int(1), _int(2))


def test_unconditional_branch():
    bb = BasicBlock()
    br = BranchInst(bb)
    assert br.operands() == [bb]
    assert br.successor(0) is bb
    assert br.successor(1) is None
    assert br.is_unconditional
    assert br.successors == [bb]
    assert br.type is VOID_TY


def test_conditional_branch_requires_bool():
    with pytest.raises(TypeError):
        BranchInst(BasicBlock(), BasicBlock(), _int(1))


def test_branch_requires_true_destination():
    with pytest.raises(ValueError):
        BranchInst(None)


def test_branch_set_operand_checks_label():
    br = BranchInst(BasicBlock())
    with pytest.raises(TypeError):
        br.set_operand(1, _int(3))


def test_conditional_branch_successors_and_drop():
    t, f = BasicBlock(), BasicBlock()
    cond = ConstPoolBool(True)
    br = BranchInst(t, f, cond)
    assert br.successors == [t, f]
    assert br.condition is cond
    br.drop_all_references()
    assert t.uses == [] and f.uses == [] and cond.uses == []
    assert br.operands() == []


def test_phi_incoming_values():
    phi = PHINode(INT_TY)
    a, b = _int(1), _int(2)
    phi.add_incoming(a)
    phi.add_incoming(b)
    assert phi.incoming_values == [a, b]
    with pytest.raises(ValueError):
        phi.add_incoming(None)
    phi.drop_all_references()
    assert phi.incoming_values == []
    assert a.uses == []


def test_return_without_value():
    ret = ReturnInst()
    assert ret.operands() == []
    assert ret.is_terminator
    assert ret.return_value is None
    with pytest.raises(IndexError):
        ret.set_operand(1, _int(1))


def test_switch_layout():
    default, other = BasicBlock(), BasicBlock()
    value, case = _int(0), _int(1)
    sw = SwitchInst(value, default)
    sw.add_destination(case, other)
    assert sw.operand(2) is case
    assert sw.operand(3) is other
    assert sw.successor(0) is default
    assert sw.successor(1) is other
    assert sw.successor(2) is None
    assert sw.num_operands == 4
    assert sw.destinations == [(case, other)]


def test_switch_destination_must_be_label():
    sw = SwitchInst(_int(0), BasicBlock())
    with pytest.raises(TypeError):
        sw.add_destination(_int(1), _int(2))


def test_call_instruction():
    method = Method(get_method_type(LONG_TY, [INT_TY]))
    arg = _int(4)
    call = CallInst(method, [arg])
    assert call.type is LONG_TY
    assert call.operands() == [method, arg]
    assert call.called_method is method
    assert call.has_side_effects


def test_call_checks_arguments():
    method = Method(get_method_type(VOID_TY, [INT_TY]))
    with pytest.raises(TypeError):
        CallInst(method, [])
    with pytest.raises(TypeError):
        CallInst(method, [ConstPoolBool(False)])


def test_replace_all_uses_with_redirects_instruction_operand():
    a, b = _int(1), _int(2)
    add = get_binary_operator(Opcode.ADD, a, a)
    a.replace_all_uses_with(b)
    assert add.operands() == [b, b]
    assert a.uses == []
    assert len(b.uses) == 2


def test_clone_copies_operands():
    t, f = BasicBlock(), BasicBlock()
    br = BranchInst(t, f, ConstPoolBool(True))
    copy = br.clone()
    assert copy is not br
    assert copy.operands() == br.operands()
    assert t.uses == [br, copy]


def test_add_has_no_side_effects():
    add = get_binary_operator(Opcode.SUB, _int(1), _int(2))
    assert not add.has_side_effects


def test_instruction_set_name_updates_method_symbol_table():
    method = Method(get_method_type(VOID_TY, []))
    bb = BasicBlock("", method)
    add = BinaryOperator(Opcode.ADD, _int(1), _int(2), "x")
    bb.instructions.append(add)
    assert method.symbol_table.lookup(INT_TY, "x") is add
    add.set_name("y")
    assert method.symbol_table.lookup(INT_TY, "y") is add
    assert method.symbol_table.lookup(INT_TY, "x") is None