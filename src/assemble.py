#!/usr/bin/env python3
"""
Px24 Arch

Usage: python assemble.py <infile> [outfile=<infile>.png]

Assembly language syntax:
    .label
    mnemonic operands

Instructions:
    Arithmetic: add, sub, umul, imul, udiv, umod   rd rs1 rs2
                addi, subi, shli, shri             rd rs imm8
                not, neg                           rd rs
    Memory:     load, store                        ra rb
                loadi                              rd imm16
    Control:    jez, jnz                           rc rt
                jmp                                rt
                jezi, jnzi                         rc imm16
                jmpi                               imm16
                exit
    System:     cid                                rd

Operands:
    r0-r15      Registers
    123         Immediate value (unsigned decimal)
    .label      Label reference (index of the instruction after the label)

Operands may be separated by spaces or commas.
"""

import sys
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
from errors import (
    AssemblerError, LineTooLong, MalformedRegister, RegisterOutOfRange,
    ImmediateOutOfRange, UndefinedLabel, UnexpectedEndOfLine,
    UnexpectedToken, UnknownMnemonic,
)
from executable import Executable, Instruction, LAYOUTS, MNEMONICS, REGISTER_COUNT
from lexer import Token, TokenKind, tokenize

MAX_LINE_LENGTH = 256

IDENTIFIER = (TokenKind.IDENTIFIER,)
IMMEDIATE = (TokenKind.NUMBER, TokenKind.PERIOD)
END_OF_LINE = (TokenKind.EMPTY,)


@dataclass(frozen=True)
class SourceLine:
    """An instruction line kept from the first pass."""
    line_num: int
    text: str
    tokens: Tuple[Token, ...]


class Assembler:
    """Px24 Assembler."""

    def __init__(self, strict: bool = False, max_line_length: int = MAX_LINE_LENGTH):
        self.strict = strict
        self.max_line_length = max_line_length
        self.labels: Dict[str, int] = {}
        self.lines: List[SourceLine] = []
        self.words: List[int] = []
        self.line_num = 0
        self.current_line = ""

    def take(self, tokens: Iterator[Token], expected: Tuple[TokenKind, ...]) -> Token:
        """Return the next token, failing at end of line."""
        token = next(tokens, None)
        if token is None:
            raise UnexpectedEndOfLine(expected, self.line_num, self.current_line)
        return token

    def expect(self, tokens: Iterator[Token], expected: Tuple[TokenKind, ...]) -> Token:
        """Return the next token, which must be one of `expected`."""
        token = self.take(tokens, expected)
        if token.kind not in expected:
            raise UnexpectedToken(expected, token, self.line_num, self.current_line)
        return token

    def expect_end(self, tokens: Iterator[Token]):
        token = next(tokens, None)
        if token is not None:
            raise UnexpectedToken(END_OF_LINE, token, self.line_num, self.current_line)

    def parse_register(self, tokens: Iterator[Token]) -> int:
        """Parse register name, return register number."""
        text = self.expect(tokens, IDENTIFIER).text

        if len(text) < 2:
            reason = "too short"
        elif text[0] != 'r':
            reason = "must start with 'r'"
        elif not text[1:].isdigit():
            reason = "index must be decimal digits"
        else:
            reason = None
        if reason:
            raise MalformedRegister(text, reason, self.line_num, self.current_line)

        reg = int(text[1:])
        if reg >= REGISTER_COUNT:
            raise RegisterOutOfRange(reg, self.line_num, self.current_line)
        return reg

    def parse_immediate(self, tokens: Iterator[Token]) -> int:
        """Parse immediate value or label reference."""
        token = self.expect(tokens, IMMEDIATE)

        if token.kind is TokenKind.NUMBER:
            return int(token.text)

        name = self.expect(tokens, IDENTIFIER).text
        if name not in self.labels:
            raise UndefinedLabel(name, self.line_num, self.current_line)
        return self.labels[name]

    def parse_operands(self, shape, tokens: Iterator[Token]) -> Tuple[Tuple[int, ...], Optional[int]]:
        """Parse the operands `shape` takes, return (registers, imm)."""
        registers = []
        imm = None
        for kind, width in LAYOUTS[shape].fields:
            if kind == 'reg':
                registers.append(self.parse_register(tokens))
            else:
                imm = self.parse_immediate(tokens)
                if imm >= 1 << width:
                    raise ImmediateOutOfRange(imm, width, self.line_num, self.current_line)
        self.expect_end(tokens)
        return tuple(registers), imm

    def assemble_line(self, source_line: SourceLine) -> int:
        """Assemble one instruction line to a word."""
        tokens = iter(source_line.tokens)
        mnemonic = self.expect(tokens, IDENTIFIER).text

        if mnemonic not in MNEMONICS:
            raise UnknownMnemonic(mnemonic, self.line_num, self.current_line)
        shape, opcode = MNEMONICS[mnemonic]

        registers, imm = self.parse_operands(shape, tokens)
        return Instruction(shape, opcode, registers, imm).encode()

    def scan_line(self, line: str):
        """First pass over a single line."""
        if len(line) > self.max_line_length:
            raise LineTooLong(len(line), self.max_line_length, self.line_num, line)

        tokens = tuple(tokenize(line, self.strict, self.line_num))
        if not tokens:
            return

        if tokens[0].kind is TokenKind.PERIOD:
            # Label on its own line - names the next instruction
            rest = iter(tokens[1:])
            name = self.expect(rest, IDENTIFIER).text
            self.expect_end(rest)
            self.labels[name] = len(self.lines)
        else:
            self.lines.append(SourceLine(self.line_num, line, tokens))

    def scan(self, source: Iterable[str]):
        """Record labels and instruction lines."""
        for i, line in enumerate(source, 1):
            self.line_num = i
            self.current_line = line.rstrip('\r\n')
            self.scan_line(self.current_line)

    def emit_all(self) -> List[int]:
        """Encode every recorded instruction line."""
        words = []
        for source_line in self.lines:
            self.line_num = source_line.line_num
            self.current_line = source_line.text
            try:
                words.append(self.assemble_line(source_line))
            except AssemblerError:
                raise
            except Exception as e:
                raise AssemblerError(str(e), self.line_num, self.current_line)
        return words

    def assemble(self, source: Union[str, Iterable[str]]) -> Executable:
        """Assemble source code into an executable."""
        self.labels = {}
        self.lines = []
        self.words = []

        if isinstance(source, str):
            source = source.split('\n')

        self.scan(source)
        self.words = self.emit_all()

        return Executable(words=list(self.words))


def assemble(source: Union[str, Iterable[str]], strict: bool = False) -> List[int]:
    """Assemble source code into a list of 24-bit words."""
    return Assembler(strict=strict).assemble(source).words


def main():
    import argparse
    from image import IMAGE_SIZE, save_image

    parser = argparse.ArgumentParser(description='Px24 Arch Assembler')
    parser.add_argument('infile', help='Input assembly file')
    parser.add_argument('outfile', nargs='?', default=None, help='Output image (.png) or binary (.bin) file')
    parser.add_argument('--format', '-f', choices=('png', 'bin'), default=None,
                        help='Output format (default: from outfile suffix)')
    parser.add_argument('--image-size', type=int, default=IMAGE_SIZE, help='Image width and height in pixels')
    parser.add_argument('--strict', action='store_true', help='Reject unrecognized characters')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--dump-labels', action='store_true', help='Print label instruction indices after assembly')

    args = parser.parse_args()

    # Read source file
    try:
        with open(args.infile, 'r') as f:
            source = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.infile}", file=sys.stderr)
        sys.exit(1)

    # Assemble
    assembler = Assembler(strict=args.strict)
    try:
        exe = assembler.assemble(source)
    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.verbose:
        print(f"Assembled {len(exe.words)} words")
        print(f"Labels: {assembler.labels}")

    if args.dump_labels:
        for name, index in sorted(assembler.labels.items(), key=lambda kv: kv[1]):
            print(f"{name}: 0x{index:04X}")

    if not args.outfile:
        args.outfile = args.infile.removesuffix('.asm') + '.png'

    fmt = args.format or ('bin' if args.outfile.endswith('.bin') else 'png')

    # Write output
    try:
        if fmt == 'bin':
            data = exe.encode()
            with open(args.outfile, 'wb') as f:
                f.write(data)
        else:
            save_image(exe.words, args.outfile, args.image_size)
        print(f"Output written to {args.outfile}")
    except Exception as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
