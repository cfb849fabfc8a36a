"""
SGF (Smart Game Format) record handling for analyze-sgf.

Parses records with sgfmill's grammar layer into root properties and the
main line, and edits serialized SGF text in place. Annotations are spliced
into the text instead of re-serializing the whole game tree, so untouched
nodes keep their exact formatting.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from sgfmill import sgf_grammar

from .coords import to_display


class SGFParseError(ValueError):
    """Raised when an SGF record cannot be tokenized."""

    def __init__(self, message: str, fragment: Optional[str] = None):
        super().__init__(message)
        self.fragment = fragment


# Length of the source excerpt quoted in parse errors
ERROR_FRAGMENT_LENGTH = 60

# Root properties which never take part in the canonical form
_MOVE_KEYS = ("B", "W")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Move:
    """A move of the main line with its raw SGF coordinate ('' = pass)."""
    color: str
    coord: str

    @property
    def node(self) -> str:
        """';B[pd]' form used in canonical sequences."""
        return f";{self.color}[{self.coord}]"


@dataclass(frozen=True)
class GameRecord:
    """
    Root properties and main line of a game record.

    Root values are kept raw (SGF escapes untouched). The move sequence
    follows the first child at every branch point.
    """
    root: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    moves: Tuple[Move, ...] = ()

    def root_value(self, key: str) -> Optional[str]:
        """First raw value of a root property, or None when missing."""
        values = self.root.get(key)
        if not values:
            return None
        return values[0]

    def root_text(self, key: str) -> Optional[str]:
        """First root value with SGF escapes resolved and whitespace trimmed."""
        value = self.root_value(key)
        if value is None:
            return None
        text = sgf_grammar.simpletext_value(value.encode("utf-8"))
        return text.decode("utf-8", errors="replace").strip()

    @property
    def board_size(self) -> int:
        value = self.root_value("SZ")
        if value is None:
            return 19
        try:
            return int(value.split(":")[0])
        except ValueError:
            raise SGFParseError(f"Bad SZ property: {value}")

    @property
    def sequence(self) -> str:
        """Main line as ';B[pd];W[dd];B[]...'."""
        return "".join(move.node for move in self.moves)

    @property
    def root_node(self) -> str:
        """Root node as ';FF[4]GM[1]...', moves excluded."""
        props = "".join(
            key + "".join(f"[{value.strip()}]" for value in values)
            for key, values in self.root.items()
            if key not in _MOVE_KEYS
        )
        return f";{props}"

    @property
    def tailless(self) -> str:
        """Canonical record: root properties plus the bare main line."""
        return f"({self.root_node}{self.sequence})"


# ============================================================================
# Parsing
# ============================================================================

def _ident(key) -> str:
    return key.decode("ascii") if isinstance(key, bytes) else key


def _decode(raw) -> str:
    return raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw


def _move_of(props: Dict[str, List[str]]) -> Optional[Move]:
    for color in _MOVE_KEYS:
        values = props.get(color)
        if values:
            return Move(color=color, coord=values[0].strip())
    return None


def _main_line(coarse_game) -> Iterable[Dict[str, List[str]]]:
    tree = coarse_game
    while tree is not None:
        for node in tree.sequence:
            yield {
                _ident(key): [_decode(value) for value in values]
                for key, values in node.items()
            }
        tree = tree.children[0] if tree.children else None


def parse_record(sgf_content: str, comment: bool = False) -> GameRecord:
    """
    Parse SGF text into a GameRecord.

    Args:
        sgf_content: SGF text
        comment: Keep the root comment (C) property

    Returns:
        GameRecord with root properties and the main line

    Raises:
        SGFParseError: If the tokenizer rejects the text
    """
    try:
        coarse_game = sgf_grammar.parse_sgf_game(sgf_content.encode("utf-8"))
    except ValueError as e:
        raise SGFParseError(
            f"Failed to parse SGF: {e}",
            fragment=sgf_content[:ERROR_FRAGMENT_LENGTH],
        ) from e

    nodes = list(_main_line(coarse_game))
    root = {
        key: tuple(values)
        for key, values in nodes[0].items()
        if comment or key != "C"
    }

    moves = []
    for props in nodes:
        move = _move_of(props)
        if move is not None:
            moves.append(move)

    return GameRecord(root=root, moves=tuple(moves))


def load_record(sgf_content: str) -> GameRecord:
    """
    Correct known SGF dialects, then parse.

    The error raised on failure quotes the original text, not the
    corrected one.
    """
    try:
        return parse_record(correct_sgf_dialects(sgf_content))
    except SGFParseError as e:
        fragment = sgf_content[:ERROR_FRAGMENT_LENGTH]
        raise SGFParseError(f"{e} (source: {fragment!r})", fragment=fragment) from e


def remove_tails(sgf_content: str, comment: bool = False) -> str:
    """
    Strip variations, node comments and line feeds from SGF.

    '(;FF[4]GM[1]C[test];B[aa]C[test](;B[bb])(;B[cc]))'
        -> '(;FF[4]GM[1];B[aa];B[bb])'
    """
    flat = sgf_content.replace("\r\n", "").replace("\n", "")
    return parse_record(flat, comment=comment).tailless


# ============================================================================
# Passing Moves
# ============================================================================

def is_pass_move(coord: str, size: int = 19) -> bool:
    """
    Check whether a raw move coordinate is a pass.

    'tt' means pass only on boards up to 19x19.
    """
    if coord == "":
        return True
    return size < 20 and coord == "tt"


def has_passing_moves(moves: Iterable[Move], size: int = 19) -> bool:
    return any(is_pass_move(move.coord, size) for move in moves)


# ============================================================================
# Text Splicing
# ============================================================================

# A ']' not escaped by a backslash
_CLOSING_BRACKET_RE = re.compile(r"[^\\]\]")


def add_property(seq: str, prop: str, index: int = 0) -> Optional[str]:
    """
    Insert a property after the first closing bracket at or after index.

    ('(;W[aa];B[bb];W[cc])', 'XX', 0) -> '(;W[aa]XX;B[bb];W[cc])'
    ('(;W[aa];B[bb];W[cc])', 'XX', 7) -> '(;W[aa];B[bb]XX;W[cc])'

    Returns:
        The new text, or None if no closing bracket is found
    """
    match = _CLOSING_BRACKET_RE.search(seq, max(0, index - 1))
    if match is None:
        return None

    end = match.end()
    return seq[:end] + prop + seq[end:]


def to_good_node(seq: str, index: int = 0) -> Optional[str]:
    return add_property(seq, "TE[1]", index)


def to_bad_node(seq: str, index: int = 0) -> Optional[str]:
    return add_property(seq, "BM[1]", index)


def to_bad_hot_spot(seq: str, index: int = 0) -> Optional[str]:
    return add_property(seq, "BM[1]HO[1]", index)


def escape_value(text: str) -> str:
    """Escape closing brackets for use inside a property value."""
    return text.replace("]", "\\]")


def add_comment(seq: str, comment: str, index: int = 0) -> Optional[str]:
    """('(;W[aa];B[bb])', 'hey[]') -> '(;W[aa]C[hey[\\]];B[bb])'"""
    return add_property(seq, f"C[{escape_value(comment)}]", index)


# ============================================================================
# Dialects
# ============================================================================

# Substitutions applied once each, except the player name fix.
_DIALECT_FIXES = [
    # Tygem puts the event into a root TE property
    (re.compile(r"\(;*TE\["), "(;GM[1]FF[4]EV[", 1),
    (re.compile(r"\bRD\["), "DT[", 1),
    (re.compile(r"\bK[OM]\[\]"), "", 1),
    (re.compile(r"\bKO\["), "KM[", 1),
    # e.g., '대주배 16강 .'
    (re.compile(r" \.\]"), "]", 1),
    # e.g., '김미리:김미리:4단'
    (re.compile(r"(P[BW]\[[^\]:]*):[^\]]*\]"), r"\1]", 0),
]


def correct_sgf_dialects(sgf_content: str) -> str:
    """
    Fix known vendor SGF defects for other SGF editors.

    Heuristic: text that merely looks like a defect is rewritten too.
    """
    for pattern, replacement, count in _DIALECT_FIXES:
        sgf_content = pattern.sub(replacement, sgf_content, count=count)
    return sgf_content


# ============================================================================
# Principal Variations
# ============================================================================

_PV_MOVE_RE = re.compile(r"[BW]\[[^\]]")


def seq_to_pv(seq: str, size: int = 19) -> str:
    """
    Format a sequence for viewers that autoplay variations.

    '(;W[po];B[hm];W[ae])' -> 'WQ5 H7 A15'
    ';W[po]' -> 'Q5'
    """
    player = seq[2] if seq.startswith("(") else seq[0]
    labels = []
    for node in seq.split(";"):
        if not _PV_MOVE_RE.match(node):
            continue
        coord = node[2:4]
        if is_pass_move(coord, size):
            continue
        labels.append(to_display(coord, size))

    pv = " ".join(labels)
    return player + pv if " " in pv else pv


# ============================================================================
# File I/O
# ============================================================================

def load_sgf_file(file_path: str) -> str:
    """
    Read an SGF file as text.

    Args:
        file_path: Path to the SGF file

    Returns:
        File content decoded as UTF-8 (undecodable bytes replaced)
    """
    with open(file_path, "rb") as f:
        return f.read().decode("utf-8", errors="replace")


def save_sgf_file(file_path: str, sgf_content: str) -> None:
    """
    Save an SGF string to a file.

    Args:
        file_path: Path to save the file
        sgf_content: SGF formatted string
    """
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(sgf_content)
