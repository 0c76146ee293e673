"""Basic blocks, methods with their arguments, and modules."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Optional

from ssair.constants import SymTabValue
from ssair.instructions import BranchInst, Instruction, iter_terminators
from ssair.types import LABEL_TY, MethodType, Type
from ssair.values import Value, ValueHolder, ValueKind


class BasicBlock(Value):
    """A straight-line sequence of instructions ending in a terminator."""

    def __init__(self, name: str = "", parent: Optional[Method] = None) -> None:
        super().__init__(LABEL_TY, ValueKind.BASIC_BLOCK, name)
        self.instructions = ValueHolder(self)
        if parent is not None:
            parent.basic_blocks.append(self)

    def set_name(self, name: str) -> None:
        method = self.parent
        if method is not None and self.has_name:
            method.symbol_table.remove(self)
        self.name = name
        if method is not None and self.has_name:
            method.symbol_table_sure().insert(self)

    def _attach(self, parent: Optional[Method]) -> None:
        if self.parent is not None and self.has_name:
            self.parent.symbol_table.remove(self)
        self.parent = parent
        self.instructions.set_parent(parent)
        if parent is not None and self.has_name:
            parent.symbol_table_sure().insert(self)

    def terminator(self) -> Optional[Instruction]:
        """Return the final instruction if it is a terminator, else ``None``."""
        if not self.instructions:
            return None
        last = self.instructions[-1]
        return last if last.is_terminator else None

    def drop_all_references(self) -> None:
        for instruction in self.instructions:
            instruction.drop_all_references()

    def has_constant_pool_references(self) -> bool:
        """Return whether a constant (such as a jump table) refers to this block."""
        return any(user.kind is ValueKind.CONSTANT for user in self.uses)

    def predecessors(self) -> list[BasicBlock]:
        """Return the block of each terminator that uses this block, per use."""
        return [
            term.parent for term in iter_terminators(self.uses)
            if term.parent is not None
        ]

    def split(self, index: int) -> BasicBlock:
        """Move instructions from ``index`` on into a new block.

        The new block is appended to the method and this block gets an
        unconditional branch to it.
        """
        if self.terminator() is None:
            raise ValueError("cannot split a block without a terminator")
        count = len(self.instructions)
        if not -count <= index < count:
            raise IndexError(f"instruction index {index} out of range")
        target = self.instructions[index]
        new_block = BasicBlock("", self.parent)
        while True:
            instruction = self.instructions.pop()
            new_block.instructions.prepend(instruction)
            if instruction is target:
                break
        self.instructions.append(BranchInst(new_block))
        return new_block


class MethodArgument(Value):
    """A formal parameter of a method."""

    def __init__(self, ty: Type, name: str = "") -> None:
        super().__init__(ty, ValueKind.METHOD_ARGUMENT, name)

    def set_name(self, name: str) -> None:
        method = self.parent
        if method is not None and self.has_name:
            method.symbol_table.remove(self)
        self.name = name
        if method is not None and self.has_name:
            method.symbol_table_sure().insert(self)


class Method(SymTabValue):
    """A method: arguments, basic blocks, constants and local names."""

    def __init__(self, method_type: MethodType, name: str = "") -> None:
        if not method_type.is_method_type:
            raise TypeError("method signature must be of method type")
        super().__init__(method_type, ValueKind.METHOD, name)
        self.basic_blocks = ValueHolder(self)
        self.arguments = ValueHolder(self, self)

    @property
    def method_type(self) -> MethodType:
        return self.type

    @property
    def return_type(self) -> Type:
        return self.type.return_type

    def set_name(self, name: str) -> None:
        module = self.parent
        if module is not None and self.has_name:
            module.symbol_table.remove(self)
        self.name = name
        if module is not None and self.has_name:
            module.symbol_table_sure().insert(self)

    def set_parent(self, module: Optional[Module]) -> None:
        """Place the method in ``module`` and chain the symbol tables."""
        self.parent = module
        self.set_parent_symtab(
            module.symbol_table_sure() if module is not None else None
        )

    def _attach(self, parent: Optional[Module]) -> None:
        self.set_parent(parent)

    def drop_all_references(self) -> None:
        for block in self.basic_blocks:
            block.drop_all_references()

    def instructions(self) -> Iterator[Instruction]:
        """Yield every instruction of every block, in order."""
        for block in list(self.basic_blocks):
            yield from list(block.instructions)


class Module(SymTabValue):
    """A module: a list of methods plus module-level constants and names."""

    def __init__(self) -> None:
        super().__init__(None, ValueKind.MODULE, "")
        self.methods = ValueHolder(self, self)

    def drop_all_references(self) -> None:
        for method in self.methods:
            method.drop_all_references()