# ssair

`ssair` is a small intermediate representation for programs in static single
assignment form, with the tools that work on it: a printer for its textual
assembly, a writer for its compact bytecode form, a structural check, and a
few scalar optimisation passes. It has no dependencies outside the standard
library.

## Modules

| Module | Purpose |
| --- | --- |
| `ssair.types` | `PrimitiveID`, `Type`, the primitive type objects (`INT_TY`, `BOOL_TY`, `LABEL_TY`, ...) and uniqued derived types: `get_method_type`, `get_array_type`, `get_struct_type`, `get_pointer_type`. `get_primitive_type` and `get_unique_id_type` look types up by id. |
| `ssair.values` | `ValueKind`, `Value`, `User` (numbered operand slots with use lists kept in step), `SymbolTable` (one plane of names per type, chained to an outer scope) and `ValueHolder`, an owned list that registers named members in its parent's symbol table. |
| `ssair.constants` | Constant values (`ConstPoolBool`, `ConstPoolSInt`, `ConstPoolUInt`, `ConstPoolFP`, `ConstPoolType`, `ConstPoolArray`, `ConstPoolStruct`), the per-type `ConstantPool`, `SymTabValue` and `get_null_constant`. Integer constants are range-checked for their type and raise `ValueError` when out of range. |
| `ssair.folding` | `find_rules(ty)` returns the `ConstRules` for a type; its `neg`, `not_`, `add`, `sub` and `less_than` compute new constants with the wrap-around of the machine type, or return `None` where the type has no such operation. |
| `ssair.instructions` | `Opcode` and the instruction classes `Instruction`, `TerminatorInst`, `BinaryOperator`, `SetCondInst`, `PHINode`, `BranchInst`, `ReturnInst`, `SwitchInst` and `CallInst`, plus `get_binary_operator`. |
| `ssair.program` | `BasicBlock` (with `terminator()`, `predecessors()` and `split(index)`), `MethodArgument`, `Method` and `Module`. |
| `ssair.slots` | `SlotCalculator`, which numbers every value within its type plane and can take in and purge the values local to one method. |
| `ssair.asmwriter` | `AssemblyWriter`, `write_assembly(obj, out)` and `to_assembly(obj)` print a module, method, basic block, instruction or constant. |
| `ssair.verifier` | `verify_module(module)` and `verify_method(method)` return a list of problem messages; an empty list means none were found. The only check made is that every basic block ends in a terminator. |
| `ssair.bytecode` | `BlockID`, `BytecodeWriter`, `write_bytecode(module)` returning `bytes`, and `write_bytecode_to_file(module, out)` writing to a binary stream. |
| `ssair.constprop` | `propagate_constants(method)` folds constant arithmetic and comparisons, branches on constant conditions and single-input PHI nodes until nothing changes, then `merge_constant_pool_references` merges equal constants. |
| `ssair.dce` | `eliminate_dead_code(method)` removes unused side-effect-free instructions, blocks with no predecessors and unused constants, and merges a block into its only predecessor when that ends in an unconditional branch. `eliminate_dead_code_in_module(module)` does this for every method and then removes unused module constants. `remove_unused_constants(owner)` is the last step on its own. |
| `ssair.strip` | `strip_symbols(method)` and `strip_all_symbols(module)` clear every name. |

Every pass returns `True` when it changed something.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from ssair.asmwriter import to_assembly
from ssair.bytecode import write_bytecode
from ssair.constants import ConstPoolSInt
from ssair.constprop import propagate_constants
from ssair.dce import eliminate_dead_code
from ssair.instructions import BinaryOperator, Opcode, ReturnInst
from ssair.program import BasicBlock, Method, Module
from ssair.types import INT_TY, get_method_type
from ssair.verifier import verify_module

module = Module()
method = Method(get_method_type(INT_TY, []), "answer")
module.methods.append(method)

two = ConstPoolSInt(INT_TY, 2)
forty = ConstPoolSInt(INT_TY, 40)
method.constant_pool.insert(two)
method.constant_pool.insert(forty)

entry = BasicBlock("entry", method)
total = BinaryOperator(Opcode.ADD, two, forty, "total")
entry.instructions.append(total)
entry.instructions.append(ReturnInst(total))

assert verify_module(module) == []

propagate_constants(method)   # the add becomes the constant 42, named "total"
eliminate_dead_code(method)   # the now unused constants 2 and 40 go away

print(to_assembly(module))
data = write_bytecode(module)
assert data.startswith(b"llvm")
```

Derived types are uniqued, so asking for the same shape twice gives back the
same object:

```python
from ssair.types import INT_TY, get_array_type, get_pointer_type

assert get_pointer_type(INT_TY) is get_pointer_type(INT_TY)
assert get_pointer_type(INT_TY).name == "int *"
assert get_array_type(INT_TY, 4).name == "[4 x int]"
```

## What it does not do

- There is no reader: neither the assembly text nor the bytecode can be
  loaded back into a `Module`. Programs are built in Python with the classes
  above.
- There is no command-line program; the package is used as a library.
- Floating point constants cannot be written as bytecode; the writer raises
  `ValueError` for them. Only `double` constants can be created at all.
- `get_unary_operator` builds no operator and always raises `ValueError`;
  `get_binary_operator` builds only `add`, `sub` and the six comparisons.
- The verifier checks block terminators only, not types or SSA form.