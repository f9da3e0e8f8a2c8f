import pytest
import zstd
from executable import (
    Executable, Instruction, LAYOUTS, MAGIC, MNEMONICS, OperandShape, disassemble,
)

S = OperandShape


def test_reg2_imm8_bit_placement():
    assert Instruction(S.REG2_IMM8, 0x0, (1, 2), 10).encode() == 0xC0120A


@pytest.mark.parametrize('inst, word', [
    (Instruction(S.REG1_IMM16, 0x0, (0,), 0), 0x000000),
    (Instruction(S.REG1_IMM16, 0xB, (15,), 0xFFFF), 0xBFFFFF),
    (Instruction(S.REG2_IMM8, 0xF, (15, 15), 0xFF), 0xCFFFFF),
    (Instruction(S.IMM16, 0x0, (), 0), 0xD00000),
    (Instruction(S.IMM16, 0xF, (), 0xFFFF), 0xDFFFFF),
    (Instruction(S.REG3, 0x00, (1, 2, 3)), 0xE00123),
    (Instruction(S.REG3, 0xFF, (15, 15, 15)), 0xEFFFFF),
    (Instruction(S.REG1_IMM8, 0x00, (0,), 0), 0xF00000),
    (Instruction(S.REG1_IMM8, 0x7F, (15,), 0xFF), 0xF7FFFF),
    (Instruction(S.REG2, 0x000, (0, 0)), 0xF80000),
    (Instruction(S.REG2, 0x3FF, (15, 15)), 0xFBFFFF),
    (Instruction(S.IMM8, 0x000, (), 0), 0xFC0000),
    (Instruction(S.IMM8, 0x1FF, (), 0xFF), 0xFDFFFF),
    (Instruction(S.REG1, 0x000, (0,)), 0xFE0000),
    (Instruction(S.REG1, 0xFFF, (15,)), 0xFEFFFF),
    (Instruction(S.EMPTY, 0x0000), 0xFF0000),
    (Instruction(S.EMPTY, 0xFFFF), 0xFFFFFF),
])
def test_boundary_encodings_round_trip(inst, word):
    assert inst.encode() == word
    assert Instruction.decode(word) == inst


def test_field_positions():
    # opcode, reg and imm must land in distinct bit ranges
    assert Instruction(S.REG1_IMM8, 0x01, (2,), 3).encode() == 0xF01203
    assert Instruction(S.REG2, 0x101, (1, 2)).encode() == 0xF90112
    assert Instruction(S.IMM8, 0x101, (), 7).encode() == 0xFD0107
    assert Instruction(S.REG1, 0x010, (3,)).encode() == 0xFE0103


@pytest.mark.parametrize('inst', [
    Instruction(S.REG1_IMM16, 0xC, (0,), 0),
    Instruction(S.REG3, 0x100, (0, 0, 0)),
    Instruction(S.REG1_IMM8, 0x80, (0,), 0),
    Instruction(S.REG2, 0x400, (0, 0)),
    Instruction(S.IMM8, 0x200, (), 0),
    Instruction(S.REG1, 0x1000, (0,)),
    Instruction(S.EMPTY, 0x10000),
])
def test_opcode_out_of_range(inst):
    with pytest.raises(ValueError):
        inst.encode()


def test_operand_preconditions():
    with pytest.raises(ValueError):
        Instruction(S.REG3, 0, (1, 2, 16)).encode()
    with pytest.raises(ValueError):
        Instruction(S.REG2_IMM8, 0, (1, 2), 256).encode()
    with pytest.raises(ValueError):
        Instruction(S.REG2, 0, (1,)).encode()
    with pytest.raises(ValueError):
        Instruction(S.IMM16, 0).encode()
    with pytest.raises(ValueError):
        Instruction(S.EMPTY, 0, (), 1).encode()


def test_every_word_decodes():
    for word in (0x000000, 0xBFFFFF, 0xC00000, 0xF7FFFF, 0xF80000, 0xFDFFFF, 0xFFFFFF):
        assert Instruction.decode(word).encode() == word
    with pytest.raises(ValueError):
        Instruction.decode(1 << 24)


def test_layouts_cover_every_shape():
    assert set(LAYOUTS) == set(OperandShape)


def test_mnemonic_table_round_trips():
    for name, (shape, opcode) in MNEMONICS.items():
        inst = Instruction.decode(Instruction(shape, opcode, (0,) * LAYOUTS[shape].register_count,
                                              0 if LAYOUTS[shape].imm_bits else None).encode())
        assert inst.mnemonic == name


def test_mnemonic_table_is_read_only():
    with pytest.raises(TypeError):
        MNEMONICS['mov'] = (S.REG2, 0x002)


def test_str():
    assert str(Instruction(S.REG2_IMM8, 0x0, (1, 2), 10)) == "addi r1 r2 10"
    assert str(Instruction(S.EMPTY, 0xFFFF)) == "exit"
    assert str(Instruction(S.REG3, 0x05, (1, 2, 3))) == "REG3_0x5 r1 r2 r3"


def test_to_bytes_low_byte_first():
    assert Instruction(S.REG2_IMM8, 0x0, (1, 2), 10).to_bytes() == bytes([0x0A, 0x12, 0xC0])


def test_executable_round_trip():
    exe = Executable(words=[0xC0120A, 0xFFFFFF, 0x000003])
    assert Executable.decode(exe.encode()).words == exe.words


def test_executable_rejects_bad_data():
    with pytest.raises(ValueError):
        Executable.decode(zstd.compress(b'NOPE\x01\x00\x00\x00\x00\x00', 22))
    with pytest.raises(ValueError):
        Executable.decode(zstd.compress(MAGIC + b'\x01\x00\x02\x00\x00\x00\x0a\x12\xc0', 22))
    with pytest.raises(ValueError):
        Executable.decode(zstd.compress(b'PX', 22))
    with pytest.raises(ValueError):
        Executable(words=[1 << 24]).encode()


def test_disassemble():
    text = disassemble([0xC0120A, 0xFFFFFF])
    assert "; Code length: 2 words" in text
    assert "0x0000: C0120A  addi r1 r2 10" in text
    assert "0x0001: FFFFFF  exit" in text
