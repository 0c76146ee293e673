"""Values, users of values, symbol tables and owned lists of values."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from itertools import takewhile
from typing import Any, Optional


class ValueKind(enum.Enum):
    """What sort of entity a value is."""

    TYPE = "type"
    CONSTANT = "constant"
    METHOD_ARGUMENT = "method_argument"
    INSTRUCTION = "instruction"
    BASIC_BLOCK = "basic_block"
    METHOD = "method"
    MODULE = "module"


class Value:
    """Anything that has a type, an optional name and a list of users."""

    def __init__(self, ty: Any, kind: ValueKind, name: str = "") -> None:
        self.type = ty
        self.kind = kind
        self.name = name
        self.parent: Any = None
        self.uses: list[User] = []

    @property
    def has_name(self) -> bool:
        return self.name != ""

    def set_name(self, name: str) -> None:
        """Rename the value; owners with symbol tables override this."""
        self.name = name

    def add_use(self, user: User) -> None:
        self.uses.append(user)

    def kill_use(self, user: Optional[User]) -> None:
        """Forget one use by ``user``; ``None`` is ignored."""
        if user is None:
            return
        for index, existing in enumerate(self.uses):
            if existing is user:
                del self.uses[index]
                return
        raise ValueError("use not in uses list")

    def replace_all_uses_with(self, other: Value) -> None:
        """Make every user of this value refer to ``other`` instead."""
        if other is None:
            raise ValueError("cannot replace uses with nothing")
        while self.uses:
            user = self.uses[0]
            count = len(self.uses)
            user.replace_uses_of_with(self, other)
            if len(self.uses) == count:
                raise RuntimeError("user did not drop its reference")

    def _attach(self, parent: Any) -> None:
        """Record the object that now owns this value."""
        self.parent = parent

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class User(Value):
    """A value that refers to other values through numbered operand slots."""

    def __init__(
        self,
        ty: Any,
        kind: ValueKind,
        name: str = "",
        operands: Sequence[Optional[Value]] = (),
    ) -> None:
        super().__init__(ty, kind, name)
        self._operands: list[Optional[Value]] = []
        for value in operands:
            self._add_operand(value)

    def operand(self, index: int) -> Optional[Value]:
        """Return the operand in slot ``index``, or ``None`` past the end."""
        if 0 <= index < len(self._operands):
            return self._operands[index]
        return None

    def operands(self) -> list[Value]:
        """Return the leading operands up to the first empty slot."""
        return list(takewhile(lambda value: value is not None, self._operands))

    def set_operand(self, index: int, value: Optional[Value]) -> None:
        """Store ``value`` in slot ``index``, keeping use lists in step."""
        if not 0 <= index < len(self._operands):
            raise IndexError(f"operand {index} out of range")
        old = self._operands[index]
        if old is not None:
            old.kill_use(self)
        self._operands[index] = value
        if value is not None:
            value.add_use(self)

    def replace_uses_of_with(self, old: Value, new: Value) -> None:
        """Point every operand that refers to ``old`` at ``new``."""
        if old is new:
            return
        for index, value in enumerate(self.operands()):
            if value is old:
                self.set_operand(index, new)

    def _add_operand(self, value: Optional[Value]) -> None:
        self._operands.append(value)
        if value is not None:
            value.add_use(self)

    def _release_operands(self) -> None:
        for value in self._operands:
            if value is not None:
                value.kill_use(self)
        self._operands.clear()


class SymbolTable:
    """Names of values, kept in one plane per type, with an outer scope."""

    def __init__(self, parent: Optional[SymbolTable] = None) -> None:
        self.parent_symtab = parent
        self._planes: dict[Any, dict[str, Value]] = {}

    def lookup(self, ty: Any, name: str) -> Optional[Value]:
        """Find ``name`` in the plane of ``ty`` here or in an outer scope."""
        plane = self._planes.get(ty)
        if plane is not None and name in plane:
            return plane[name]
        if self.parent_symtab is not None:
            return self.parent_symtab.lookup(ty, name)
        return None

    def insert(self, value: Value) -> None:
        if not value.has_name:
            raise ValueError("value must be named to go into a symbol table")
        if self.lookup(value.type, value.name) is not None:
            raise ValueError(f"name already in symbol table: '{value.name}'")
        self._planes.setdefault(value.type, {})[value.name] = value

    def remove(self, value: Value) -> None:
        if not value.has_name:
            raise ValueError("value has no name")
        plane = self._planes.get(value.type)
        if plane is None or value.name not in plane:
            raise KeyError(value.name)
        del plane[value.name]

    def set_parent_symtab(self, parent: Optional[SymbolTable]) -> None:
        self.parent_symtab = parent

    def planes(self) -> Iterator[tuple[Any, list[tuple[str, Value]]]]:
        """Yield each non-empty type plane with its entries sorted by name."""
        for ty, plane in list(self._planes.items()):
            if plane:
                yield ty, sorted(plane.items(), key=lambda item: item[0])

    def __len__(self) -> int:
        return sum(len(plane) for plane in self._planes.values())


class ValueHolder(Sequence):
    """An ordered list of values owned by ``item_parent``.

    Named members are registered in the symbol table of ``parent``,
    an object with a ``symbol_table`` attribute and a
    ``symbol_table_sure()`` method.
    """

    def __init__(self, item_parent: Any, parent: Any = None) -> None:
        self.item_parent = item_parent
        self.parent = parent
        self._items: list[Any] = []

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def _adopt(self, value: Value) -> None:
        if value.parent is not None:
            raise ValueError("value already has a parent")
        value._attach(self.item_parent)

    def _register(self, value: Value) -> None:
        if value.has_name and self.parent is not None:
            self.parent.symbol_table_sure().insert(value)

    def append(self, value: Value) -> None:
        self._adopt(value)
        self._items.append(value)
        self._register(value)

    def prepend(self, value: Value) -> None:
        self._adopt(value)
        self._items.insert(0, value)
        self._register(value)

    def pop(self, index: int = -1) -> Any:
        """Unlink and return the value at ``index``."""
        value = self._items.pop(index)
        value._attach(None)
        if value.has_name and self.parent is not None:
            self.parent.symbol_table.remove(value)
        return value

    def remove(self, value: Value) -> Any:
        for index, item in enumerate(self._items):
            if item is value:
                return self.pop(index)
        raise ValueError("value not in holder")

    def set_parent(self, parent: Any) -> None:
        """Move the names of all members to the symbol table of ``parent``."""
        if self.parent is not None:
            symtab = self.parent.symbol_table
            for item in self._items:
                if item.has_name:
                    symtab.remove(item)
        self.parent = parent
        if parent is not None:
            symtab = parent.symbol_table_sure()
            for item in self._items:
                if item.has_name:
                    symtab.insert(item)