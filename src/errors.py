"""
Assembler errors for Px24 Arch.

Every error is fatal to the assembly run. Errors raised while a line is being
processed carry its 1-based line number and text.
"""

from typing import Iterable


def describe_kinds(kinds: Iterable) -> str:
    """Join token kinds as 'A', 'A or B' or 'A, B or C'."""
    names = [str(kind) for kind in kinds]
    if len(names) <= 1:
        return ''.join(names)
    return ', '.join(names[:-1]) + ' or ' + names[-1]


class AssemblerError(Exception):
    """Assembler error with line information."""
    def __init__(self, message: str, line_num: int = 0, line: str = ""):
        self.message = message
        self.line_num = line_num
        self.line = line
        if line_num:
            super().__init__(f"Line {line_num}: {message}\n  {line}")
        else:
            super().__init__(message)


class LexError(AssemblerError):
    """Character that starts no token (strict mode only)."""
    def __init__(self, char: str, column: int, line_num: int = 0, line: str = ""):
        self.char = char
        self.column = column
        super().__init__(f"Unrecognized character {char!r} at column {column}", line_num, line)


class UnexpectedToken(AssemblerError):
    def __init__(self, expected, got, line_num: int = 0, line: str = ""):
        self.expected = tuple(expected)
        self.got = got
        super().__init__(
            f"Unexpected token: expected {describe_kinds(self.expected)}, but got {got.kind} {got.text!r}",
            line_num, line)


class UnexpectedEndOfLine(AssemblerError):
    def __init__(self, expected, line_num: int = 0, line: str = ""):
        self.expected = tuple(expected)
        super().__init__(f"Unexpected end of line: expected {describe_kinds(self.expected)}", line_num, line)


class UnknownMnemonic(AssemblerError):
    def __init__(self, name: str, line_num: int = 0, line: str = ""):
        self.name = name
        super().__init__(f"Unknown instruction: {name}", line_num, line)


class MalformedRegister(AssemblerError):
    def __init__(self, text: str, reason: str, line_num: int = 0, line: str = ""):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid register {text!r}: {reason}", line_num, line)


class RegisterOutOfRange(AssemblerError):
    def __init__(self, value: int, line_num: int = 0, line: str = ""):
        self.value = value
        super().__init__(f"Register index out of range: expected 0 - 15, but got {value}", line_num, line)


class ImmediateOutOfRange(AssemblerError):
    def __init__(self, value: int, bits: int, line_num: int = 0, line: str = ""):
        self.value = value
        self.bits = bits
        super().__init__(
            f"Immediate {value} does not fit in {bits} bits (max {(1 << bits) - 1})", line_num, line)


class UndefinedLabel(AssemblerError):
    def __init__(self, name: str, line_num: int = 0, line: str = ""):
        self.name = name
        super().__init__(f"Undefined label: {name}", line_num, line)


class LineTooLong(AssemblerError):
    def __init__(self, length: int, limit: int, line_num: int = 0, line: str = ""):
        self.length = length
        self.limit = limit
        # Echoing a huge line back is not useful
        super().__init__(f"Line too long: {length} characters (max {limit})", line_num, line[:limit])
