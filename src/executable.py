"""
Instruction encoding/decoding library for Px24 Arch.

Instruction Word Format (24-bit):
  A fixed prefix in the high bits selects the shape; shapes with longer
  prefixes give the opcode more room and the operands less.

  Shape      Prefix (bits)        Opcode     Operands (MSB -> LSB)
  REG1_IMM16 -                    23-20 <C   reg 19-16, imm 15-0
  REG2_IMM8  1100      (23-20)    19-16      reg 15-12, reg 11-8, imm 7-0
  IMM16      1101      (23-20)    19-16      imm 15-0
  REG3       1110      (23-20)    19-12      reg 11-8, reg 7-4, reg 3-0
  REG1_IMM8  11110     (23-19)    18-12      reg 11-8, imm 7-0
  REG2       111110    (23-18)    17-8       reg 7-4, reg 3-0
  IMM8       1111110   (23-17)    16-8       imm 7-0
  REG1       11111110  (23-16)    15-4       reg 3-0
  EMPTY      11111111  (23-16)    15-0       -

Executable Format (zstd compressed):
  Header: MAGIC (4) + VERSION (2) + WORD_COUNT (4)
  Body:   WORD_COUNT words, 3 bytes each, little endian
"""

from zstd import compress, decompress
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple
import struct

# Magic bytes for executable format
MAGIC = b'PX24'
VERSION = 1
HEADER = '<4sHI'
HEADER_SIZE = struct.calcsize(HEADER)

WORD_BITS = 24
WORD_MASK = (1 << WORD_BITS) - 1
REGISTER_COUNT = 16


class OperandShape(Enum):
    REG1_IMM16 = 'reg1_imm16'
    REG2_IMM8 = 'reg2_imm8'
    IMM16 = 'imm16'
    REG3 = 'reg3'
    REG1_IMM8 = 'reg1_imm8'
    REG2 = 'reg2'
    IMM8 = 'imm8'
    REG1 = 'reg1'
    EMPTY = 'empty'


@dataclass(frozen=True)
class Layout:
    """Bit layout of one shape, fields listed MSB first."""
    prefix: int
    prefix_bits: int
    opcode_bits: int
    fields: Tuple[Tuple[str, int], ...] = ()
    opcode_limit: Optional[int] = None

    @property
    def opcode_range(self) -> int:
        if self.opcode_limit is not None:
            return self.opcode_limit
        return 1 << self.opcode_bits

    @property
    def register_count(self) -> int:
        return sum(1 for kind, _ in self.fields if kind == 'reg')

    @property
    def imm_bits(self) -> int:
        """Width of the immediate field, 0 if the shape has none."""
        for kind, width in self.fields:
            if kind == 'imm':
                return width
        return 0

    def matches(self, word: int) -> bool:
        return word >> (WORD_BITS - self.prefix_bits) == self.prefix


REG = ('reg', 4)

LAYOUTS = MappingProxyType({
    OperandShape.REG1_IMM16: Layout(0, 0, 4, (REG, ('imm', 16)), opcode_limit=0xC),
    OperandShape.REG2_IMM8: Layout(0b1100, 4, 4, (REG, REG, ('imm', 8))),
    OperandShape.IMM16: Layout(0b1101, 4, 4, (('imm', 16),)),
    OperandShape.REG3: Layout(0b1110, 4, 8, (REG, REG, REG)),
    OperandShape.REG1_IMM8: Layout(0b11110, 5, 7, (REG, ('imm', 8))),
    OperandShape.REG2: Layout(0b111110, 6, 10, (REG, REG)),
    OperandShape.IMM8: Layout(0b1111110, 7, 9, (('imm', 8),)),
    OperandShape.REG1: Layout(0b11111110, 8, 12, (REG,)),
    OperandShape.EMPTY: Layout(0b11111111, 8, 16),
})

# Longest prefix first; REG1_IMM16 (no prefix) catches the rest
DECODE_ORDER = sorted(LAYOUTS, key=lambda shape: LAYOUTS[shape].prefix_bits, reverse=True)

for _shape in OperandShape:
    _layout = LAYOUTS[_shape]
    _total = _layout.prefix_bits + _layout.opcode_bits + sum(width for _, width in _layout.fields)
    if _total != WORD_BITS:
        raise AssertionError(f"Layout for {_shape.name} covers {_total} bits, not {WORD_BITS}")

# Mnemonic -> (shape, opcode)
MNEMONICS: Mapping[str, Tuple[OperandShape, int]] = MappingProxyType({
    # Arithmetic
    'add':   (OperandShape.REG3, 0x00),
    'sub':   (OperandShape.REG3, 0x01),
    'umul':  (OperandShape.REG3, 0x02),
    'imul':  (OperandShape.REG3, 0x03),
    'udiv':  (OperandShape.REG3, 0x04),
    'umod':  (OperandShape.REG3, 0x06),
    'addi':  (OperandShape.REG2_IMM8, 0x0),
    'subi':  (OperandShape.REG2_IMM8, 0x1),
    'shli':  (OperandShape.REG2_IMM8, 0x4),
    'shri':  (OperandShape.REG2_IMM8, 0x5),
    'not':   (OperandShape.REG2, 0x100),
    'neg':   (OperandShape.REG2, 0x101),
    # Memory
    'load':  (OperandShape.REG2, 0x000),
    'store': (OperandShape.REG2, 0x001),
    'loadi': (OperandShape.REG1_IMM16, 0x0),
    # Control
    'jez':   (OperandShape.REG2, 0x010),
    'jnz':   (OperandShape.REG2, 0x011),
    'jmp':   (OperandShape.REG1, 0x010),
    'jezi':  (OperandShape.REG1_IMM16, 0x2),
    'jnzi':  (OperandShape.REG1_IMM16, 0x3),
    'jmpi':  (OperandShape.IMM16, 0x0),
    'exit':  (OperandShape.EMPTY, 0xFFFF),
    # System
    'cid':   (OperandShape.REG1, 0x000),
})

for _name, (_shape, _opcode) in MNEMONICS.items():
    if not 0 <= _opcode < LAYOUTS[_shape].opcode_range:
        raise AssertionError(f"Opcode 0x{_opcode:X} of {_name} out of range for {_shape.name}")

MNEMONIC_NAMES = {v: k for k, v in MNEMONICS.items()}


@dataclass(frozen=True)
class Instruction:
    """Represents a single instruction."""
    shape: OperandShape
    opcode: int
    registers: Tuple[int, ...] = ()
    imm: Optional[int] = None

    @property
    def layout(self) -> Layout:
        return LAYOUTS[self.shape]

    @property
    def mnemonic(self) -> Optional[str]:
        return MNEMONIC_NAMES.get((self.shape, self.opcode))

    def encode(self) -> int:
        """Encode instruction to a 24-bit word."""
        layout = self.layout
        if not 0 <= self.opcode < layout.opcode_range:
            raise ValueError(f"Opcode 0x{self.opcode:X} out of range for {self.shape.name}")
        if len(self.registers) != layout.register_count:
            raise ValueError(f"{self.shape.name} takes {layout.register_count} registers, got {len(self.registers)}")
        if (self.imm is None) == (layout.imm_bits > 0):
            raise ValueError(f"Immediate does not match {self.shape.name}")

        word = (layout.prefix << layout.opcode_bits) | self.opcode
        registers = iter(self.registers)
        for kind, width in layout.fields:
            value = next(registers) if kind == 'reg' else self.imm
            if not 0 <= value < (1 << width):
                raise ValueError(f"{kind} value {value} does not fit in {width} bits")
            word = (word << width) | value
        return word

    @classmethod
    def decode(cls, word: int) -> 'Instruction':
        """Decode a 24-bit word to an instruction."""
        if not 0 <= word <= WORD_MASK:
            raise ValueError(f"Not a 24-bit word: {word}")

        shape = next(s for s in DECODE_ORDER if LAYOUTS[s].matches(word))
        layout = LAYOUTS[shape]

        values = []
        for _, width in reversed(layout.fields):
            values.append(word & ((1 << width) - 1))
            word >>= width
        values.reverse()
        opcode = word & ((1 << layout.opcode_bits) - 1)

        registers = tuple(v for (kind, _), v in zip(layout.fields, values) if kind == 'reg')
        imm = next((v for (kind, _), v in zip(layout.fields, values) if kind == 'imm'), None)
        return cls(shape, opcode, registers, imm)

    def to_bytes(self) -> bytes:
        """Encode to 3 bytes, low byte first."""
        return self.encode().to_bytes(3, 'little')

    def __str__(self) -> str:
        """Human-readable representation."""
        parts = [self.mnemonic or f"{self.shape.name}_0x{self.opcode:X}"]
        parts.extend(f"r{reg}" for reg in self.registers)
        if self.imm is not None:
            parts.append(str(self.imm))
        return " ".join(parts)


@dataclass
class Executable:
    """Represents an assembled program."""
    words: List[int] = field(default_factory=list)

    def encode(self) -> bytes:
        """Encode executable to bytes."""
        for word in self.words:
            if not 0 <= word <= WORD_MASK:
                raise ValueError(f"Not a 24-bit word: {word}")
        header = struct.pack(HEADER, MAGIC, VERSION, len(self.words))
        body = b''.join(word.to_bytes(3, 'little') for word in self.words)
        return compress(header + body, 22)

    @classmethod
    def decode(cls, data: bytes) -> 'Executable':
        """Decode bytes to executable."""
        data = decompress(data)

        if len(data) < HEADER_SIZE:
            raise ValueError("Data too short for executable header")

        magic, version, count = struct.unpack(HEADER, data[:HEADER_SIZE])

        if magic != MAGIC:
            raise ValueError(f"Invalid magic bytes: {magic}")
        if version > VERSION:
            raise ValueError(f"Unsupported version: {version}")

        body = data[HEADER_SIZE:]
        if len(body) != count * 3:
            raise ValueError(f"Expected {count * 3} bytes of code, got {len(body)}")

        exe = cls()
        exe.words = [int.from_bytes(body[i:i + 3], 'little') for i in range(0, len(body), 3)]
        return exe


def disassemble(words: List[int]) -> str:
    """Disassemble words to human-readable format."""
    lines = [
        f"; Code length: {len(words)} words",
        "",
    ]

    for i, word in enumerate(words):
        lines.append(f"0x{i:04X}: {word:06X}  {Instruction.decode(word)}")

    return '\n'.join(lines)
