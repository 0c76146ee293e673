import io

import pytest

from ssair.bytecode import (
    BlockID,
    BytecodeWriter,
    write_bytecode,
    write_bytecode_to_file,
)
from ssair.constants import ConstPoolFP, ConstPoolSInt
from ssair.instructions import BinaryOperator, Opcode, PHINode, ReturnInst
from ssair.program import BasicBlock, Method, Module
from ssair.slots import SlotCalculator
from ssair.types import (
    DOUBLE_TY,
    FIRST_DERIVED_TY_ID,
    INT_TY,
    TYPE_TY,
    VOID_TY,
    get_method_type,
)


def _u32(data, pos):
    return int.from_bytes(data[pos:pos + 4], "little")


def _blocks(data):
    result = []
    pos = 0
    while pos < len(data):
        block_id, size = _u32(data, pos), _u32(data, pos + 4)
        result.append((block_id, data[pos + 8:pos + 8 + size]))
        pos += 8 + size
        pos += -pos % 4
    return result


def _module_blocks(data):
    assert data[:4] == b"llvm"
    [(block_id, payload)] = _blocks(data[4:])
    assert block_id == BlockID.MODULE
    assert payload[0] == FIRST_DERIVED_TY_ID
    return _blocks(payload[4:])


def _void_module():
    module = Module()
    method_type = get_method_type(VOID_TY, [])
    method = Method(method_type, "main")
    module.methods.append(method)
    block = BasicBlock("", method)
    block.instructions.append(ReturnInst())
    return module, method_type


def _int_method(module):
    method = Method(get_method_type(INT_TY, []), "f")
    module.methods.append(method)
    c5 = ConstPoolSInt(INT_TY, 5)
    c7 = ConstPoolSInt(INT_TY, 7)
    method.constant_pool.insert(c5)
    method.constant_pool.insert(c7)
    block = BasicBlock("", method)
    return method, block, c5, c7


def test_empty_module_layout():
    data = write_bytecode(Module())
    assert _u32(data, 8) == len(data) - 12
    blocks = _module_blocks(data)
    assert blocks == [
        (BlockID.CONSTANT_POOL, b""),
        (BlockID.MODULE_GLOBAL_INFO, bytes(4)),
    ]


def test_output_is_word_aligned_and_repeatable():
    module, _ = _void_module()
    first = write_bytecode(module)
    assert len(first) % 4 == 0
    assert write_bytecode(module) == first


def test_void_method_module():
    module, method_type = _void_module()
    blocks = _module_blocks(write_bytecode(module))
    ids = [block_id for block_id, _ in blocks]
    assert ids == [
        BlockID.CONSTANT_POOL,
        BlockID.MODULE_GLOBAL_INFO,
        BlockID.METHOD,
        BlockID.SYMBOL_TABLE,
    ]
    type_slot = SlotCalculator(module).slot(method_type)
    assert blocks[0][1] == bytes([
        1,
        int(TYPE_TY.primitive_id),
        int(method_type.primitive_id),
        int(VOID_TY.primitive_id),
        0,
    ])
    assert blocks[1][1] == bytes([type_slot, 0, 0, 0])

    method_blocks = _blocks(blocks[2][1])
    assert method_blocks[0] == (BlockID.CONSTANT_POOL, b"")
    assert method_blocks[1] == (
        BlockID.BASIC_BLOCK,
        (0x41000FFF).to_bytes(4, "little"),
    )


def test_module_symbol_table_encoding():
    module, method_type = _void_module()
    blocks = _module_blocks(write_bytecode(module))
    block_id, payload = blocks[-1]
    assert block_id == BlockID.SYMBOL_TABLE
    type_slot = SlotCalculator(module).slot(method_type)
    assert payload == bytes([1, type_slot, 0, len("main")]) + b"main"


def test_binary_and_return_instruction_words():
    module = Module()
    method, block, c5, c7 = _int_method(module)
    add = BinaryOperator(Opcode.ADD, c5, c7)
    block.instructions.append(add)
    block.instructions.append(ReturnInst(add))

    blocks = _module_blocks(write_bytecode(module))
    method_blocks = _blocks(blocks[2][1])
    cp_id, cp_payload = method_blocks[0]
    assert cp_id == BlockID.CONSTANT_POOL
    assert cp_payload == bytes([2, int(INT_TY.primitive_id), 10, 14])

    bb_id, bb_payload = method_blocks[1]
    assert bb_id == BlockID.BASIC_BLOCK
    assert len(bb_payload) == 8
    add_word, ret_word = _u32(bb_payload, 0), _u32(bb_payload, 4)

    assert add_word >> 30 == 2
    assert (add_word >> 24) & 63 == Opcode.ADD
    assert (add_word >> 16) & 255 == int(INT_TY.primitive_id)
    assert (add_word >> 8) & 255 == 0
    assert add_word & 255 == 1

    assert ret_word >> 30 == 1
    assert (ret_word >> 24) & 63 == Opcode.RET
    assert (ret_word >> 12) & 4095 == int(INT_TY.primitive_id)
    assert ret_word & 4095 == 2


def test_many_operand_instruction_uses_long_form():
    module = Module()
    method, block, c5, c7 = _int_method(module)
    phi = PHINode(INT_TY)
    for value in (c5, c7, c5, c7):
        phi.add_incoming(value)
    block.instructions.append(phi)
    block.instructions.append(ReturnInst(phi))

    blocks = _module_blocks(write_bytecode(module))
    _, bb_payload = _blocks(blocks[2][1])[1]
    assert bb_payload[:8] == bytes([
        int(Opcode.PHI), int(INT_TY.primitive_id), 4, 0, 1, 0, 1, 0,
    ])
    ret_word = _u32(bb_payload, 8)
    assert (ret_word >> 24) & 63 == Opcode.RET
    assert ret_word & 4095 == 2


def test_negative_constant_sets_sign_bit():
    module = Module()
    module.constant_pool.insert(ConstPoolSInt(INT_TY, -3))
    blocks = _module_blocks(write_bytecode(module))
    payload = blocks[0][1]
    assert payload[:2] == bytes([1, int(INT_TY.primitive_id)])
    assert payload[2] & 1 == 1
    assert payload[2] >> 1 == 3


def test_floating_point_constant_cannot_be_written():
    module = Module()
    module.constant_pool.insert(ConstPoolFP(DOUBLE_TY, 1.5))
    with pytest.raises(ValueError):
        write_bytecode(module)


def test_null_module_is_rejected():
    with pytest.raises(ValueError):
        write_bytecode(None)


def test_writer_and_file_output_agree():
    module, _ = _void_module()
    expected = write_bytecode(module)
    assert BytecodeWriter(module).getvalue() == expected
    stream = io.BytesIO()
    write_bytecode_to_file(module, stream)
    assert stream.getvalue() == expected