"""
Coordinate conversion between SGF and KataGo notations.

Three notations are used for one board point:
- RAW:     two-letter SGF code, e.g. "pd" (column, row; "a" = 1)
- COMPACT: KataGo style, e.g. "Q16" (I is skipped, row counted like RAW)
- DISPLAY: Real goban labels, e.g. "Q4" (row counted from the bottom)

COMPACT and DISPLAY columns skip the letter 'I', so raw columns 'i'..'y'
shift by one letter. Boards up to 25x25 are supported.
"""

from typing import Tuple

MAX_BOARD_SIZE = 25

# Raw SGF letters usable on a 25x25 board
RAW_LETTERS = "abcdefghijklmnopqrstuvwxy"

# Column letters (I is skipped in Go)
COMPACT_COLUMNS = "ABCDEFGHJKLMNOPQRSTUVWXYZ"


class CoordinateError(ValueError):
    """Raised when a coordinate is outside the supported domain."""
    pass


def _check_size(size: int) -> None:
    if not 1 <= size <= MAX_BOARD_SIZE:
        raise CoordinateError(
            f"Board size must be 1-{MAX_BOARD_SIZE}, got {size}"
        )


def _raw_to_indices(raw: str) -> Tuple[int, int]:
    """'pd' -> (15, 4): zero-based column and one-based row."""
    if not isinstance(raw, str) or len(raw) != 2:
        raise CoordinateError(f"Invalid SGF coordinate: {raw!r}")

    col = RAW_LETTERS.find(raw[0])
    row = RAW_LETTERS.find(raw[1])
    if col < 0 or row < 0:
        raise CoordinateError(f"Invalid SGF coordinate: {raw!r}")

    return col, row + 1


def _split_label(label: str) -> Tuple[int, int]:
    """'Q16' -> (15, 16): zero-based column and the row number as written."""
    if not isinstance(label, str) or len(label) < 2:
        raise CoordinateError(f"Invalid coordinate: {label!r}")

    value = label.upper()
    col = COMPACT_COLUMNS.find(value[0])
    if col < 0:
        raise CoordinateError(f"Invalid column in coordinate: {label!r}")

    digits = value[1:]
    if not digits.isdigit():
        raise CoordinateError(f"Invalid row in coordinate: {label!r}")

    row = int(digits)
    if not 1 <= row <= MAX_BOARD_SIZE:
        raise CoordinateError(f"Row out of range in coordinate: {label!r}")

    return col, row


def to_compact(raw: str) -> str:
    """
    Convert a raw SGF coordinate to KataGo's compact form.

    Examples:
        'aa' -> 'A1'
        'ia' -> 'J1'
        'pd' -> 'Q4'
    """
    col, row = _raw_to_indices(raw)
    return f"{COMPACT_COLUMNS[col]}{row}"


def to_display(raw: str, size: int = 19) -> str:
    """
    Convert a raw SGF coordinate to the label printed on a real goban.

    Examples:
        'aa' -> 'A19'
        'bd' -> 'B16'
        ('aa', 9) -> 'A9'
    """
    _check_size(size)
    col, row = _raw_to_indices(raw)
    if row > size:
        raise CoordinateError(f"Coordinate {raw!r} is off a {size}x{size} board")

    return f"{COMPACT_COLUMNS[col]}{size + 1 - row}"


def from_compact(compact: str) -> str:
    """
    Convert a KataGo compact coordinate back to raw SGF.

    Examples:
        'A1' -> 'aa'
        'J1' -> 'ia'
    """
    col, row = _split_label(compact)
    return RAW_LETTERS[col] + RAW_LETTERS[row - 1]


def from_display(display: str, size: int = 19) -> str:
    """
    Convert a goban label back to raw SGF.

    Examples:
        'A19' -> 'aa'
        ('A9', 9) -> 'aa'
    """
    _check_size(size)
    col, row = _split_label(display)
    if row > size:
        raise CoordinateError(f"Coordinate {display!r} is off a {size}x{size} board")

    return RAW_LETTERS[col] + RAW_LETTERS[size - row]
