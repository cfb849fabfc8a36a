"""
Turn number mapping between SGF moves and KataGo turns.

Passing moves are not sent to KataGo, so KataGo's turnNumber counts
non-pass moves only. A TurnIndexMap converts between the two:
position p holds the real (pass-inclusive) move number reached after
the p-th non-pass move, and position 0 is the initial position.

    ;W[aa];B[];W[bb]  ->  (0, 1, 3)
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from .sgf_handler import Move, is_pass_move

TurnIndexMap = Tuple[int, ...]


def build_turn_map(moves: Sequence[Move], size: int = 19) -> TurnIndexMap:
    """Build the engine turn -> real move number map for a main line."""
    real_numbers = [0]
    for number, move in enumerate(moves, 1):
        if not is_pass_move(move.coord, size):
            real_numbers.append(number)
    return tuple(real_numbers)


def engine_count(turn_map: TurnIndexMap) -> int:
    """Number of positions KataGo knows about (1 + non-pass moves)."""
    return len(turn_map)


def real_index(turn_map: TurnIndexMap, turn: int) -> int:
    """KataGo turnNumber -> real move number."""
    return turn_map[turn]


def engine_turn(turn_map: TurnIndexMap, real: int) -> Optional[int]:
    """Real move number -> KataGo turnNumber, or None after a pass."""
    try:
        return turn_map.index(real)
    except ValueError:
        return None


def translate_analyze_turns(turns: Iterable[int], turn_map: TurnIndexMap) -> List[int]:
    """
    Convert real turn numbers to KataGo turn numbers.

    Turns reached by a pass have no KataGo counterpart and are dropped.
    """
    translated = []
    for turn in turns:
        engine = engine_turn(turn_map, turn)
        if engine is not None:
            translated.append(engine)
    return translated
