import pytest

from ssair.types import BOOL_TY, INT_TY, VOID_TY
from ssair.values import SymbolTable, User, Value, ValueHolder, ValueKind


class _Owner:
    def __init__(self):
        self.symbol_table = None

    def symbol_table_sure(self):
        if self.symbol_table is None:
            self.symbol_table = SymbolTable()
        return self.symbol_table


def _const(name=""):
    return Value(INT_TY, ValueKind.CONSTANT, name)


def _user(*operands):
    return User(VOID_TY, ValueKind.INSTRUCTION, "", operands)


def test_user_registers_uses():
    a, b = _const(), _const()
    u = _user(a, b)
    assert a.uses == [u]
    assert b.uses == [u]
    assert u.operands() == [a, b]


def test_kill_use_removes_one_use():
    a = _const()
    u = _user(a, a)
    a.kill_use(u)
    assert a.uses == [u]


def test_kill_use_none_is_ignored():
    a = _const()
    u = _user(a)
    a.kill_use(None)
    assert a.uses == [u]


def test_kill_use_unknown_raises():
    a = _const()
    with pytest.raises(ValueError):
        a.kill_use(_user())


def test_operand_out_of_range_is_none():
    a = _const()
    u = _user(a)
    assert u.operand(0) is a
    assert u.operand(5) is None


def test_set_operand_out_of_range_raises():
    u = _user(_const())
    with pytest.raises(IndexError):
        u.set_operand(3, _const())


def test_operands_stop_at_empty_slot():
    a, b = _const(), _const()
    u = _user(a, None, b)
    assert u.operands() == [a]
    assert u.operand(2) is b


def test_set_operand_moves_use():
    a, b = _const(), _const()
    u = _user(a)
    u.set_operand(0, b)
    assert a.uses == []
    assert b.uses == [u]
    assert u.operand(0) is b


def test_replace_all_uses_with():
    old, new = _const(), _const()
    u1 = _user(old, old)
    u2 = _user(old)
    old.replace_all_uses_with(new)
    assert old.uses == []
    assert u1.operands() == [new, new]
    assert u2.operands() == [new]
    assert len(new.uses) == 3


def test_replace_all_uses_with_none_raises():
    a = _const()
    _user(a)
    with pytest.raises(ValueError):
        a.replace_all_uses_with(None)


def test_replace_all_uses_with_self_raises():
    a = _const()
    _user(a)
    with pytest.raises(RuntimeError):
        a.replace_all_uses_with(a)


def test_replace_uses_of_with_same_value_keeps_operands():
    a = _const()
    u = _user(a)
    u.replace_uses_of_with(a, a)
    assert u.operands() == [a]
    assert a.uses == [u]


def test_names():
    v = _const()
    assert not v.has_name
    v.set_name("x")
    assert v.has_name
    assert v.name == "x"


def test_symbol_table_insert_lookup_remove():
    table = SymbolTable()
    v = _const("x")
    table.insert(v)
    assert table.lookup(INT_TY, "x") is v
    assert table.lookup(BOOL_TY, "x") is None
    table.remove(v)
    assert table.lookup(INT_TY, "x") is None
    assert len(table) == 0


def test_symbol_table_duplicate_name_raises():
    table = SymbolTable()
    table.insert(_const("x"))
    with pytest.raises(ValueError):
        table.insert(_const("x"))


def test_symbol_table_same_name_other_type():
    table = SymbolTable()
    a = _const("x")
    b = Value(BOOL_TY, ValueKind.CONSTANT, "x")
    table.insert(a)
    table.insert(b)
    assert table.lookup(BOOL_TY, "x") is b
    assert len(table) == 2


def test_symbol_table_unnamed_raises():
    with pytest.raises(ValueError):
        SymbolTable().insert(_const())


def test_symbol_table_remove_missing_raises():
    with pytest.raises(KeyError):
        SymbolTable().remove(_const("x"))


def test_symbol_table_parent_scope():
    outer = SymbolTable()
    inner = SymbolTable()
    v = _const("g")
    outer.insert(v)
    assert inner.lookup(INT_TY, "g") is None
    inner.set_parent_symtab(outer)
    assert inner.lookup(INT_TY, "g") is v
    with pytest.raises(ValueError):
        inner.insert(_const("g"))


def test_symbol_table_planes_sorted_and_nonempty():
    table = SymbolTable()
    b, a = _const("b"), _const("a")
    flag = Value(BOOL_TY, ValueKind.CONSTANT, "f")
    table.insert(b)
    table.insert(a)
    table.insert(flag)
    table.remove(flag)
    planes = list(table.planes())
    assert planes == [(INT_TY, [("a", a), ("b", b)])]


def test_holder_append_registers_name():
    owner, item_parent = _Owner(), object()
    holder = ValueHolder(item_parent, owner)
    v = _const("x")
    holder.append(v)
    assert v.parent is item_parent
    assert list(holder) == [v]
    assert owner.symbol_table.lookup(INT_TY, "x") is v


def test_holder_prepend_order():
    holder = ValueHolder(object())
    a, b = _const(), _const()
    holder.append(a)
    holder.prepend(b)
    assert list(holder) == [b, a]
    assert holder[0] is b
    assert len(holder) == 2


def test_holder_remove_unregisters():
    owner = _Owner()
    holder = ValueHolder(object(), owner)
    v = _const("x")
    holder.append(v)
    assert holder.remove(v) is v
    assert v.parent is None
    assert len(holder) == 0
    assert owner.symbol_table.lookup(INT_TY, "x") is None


def test_holder_remove_missing_raises():
    with pytest.raises(ValueError):
        ValueHolder(object()).remove(_const())


def test_holder_append_owned_value_raises():
    first, second = ValueHolder(object()), ValueHolder(object())
    v = _const()
    first.append(v)
    with pytest.raises(ValueError):
        second.append(v)


def test_holder_pop_last_by_default():
    holder = ValueHolder(object())
    a, b = _const(), _const()
    holder.append(a)
    holder.append(b)
    assert holder.pop() is b
    assert list(holder) == [a]
    assert b.parent is None


def test_holder_set_parent_moves_names():
    old, new = _Owner(), _Owner()
    holder = ValueHolder(object(), old)
    named, unnamed = _const("x"), _const()
    holder.append(named)
    holder.append(unnamed)
    holder.set_parent(new)
    assert old.symbol_table.lookup(INT_TY, "x") is None
    assert new.symbol_table.lookup(INT_TY, "x") is named
    assert len(new.symbol_table) == 1