"""
KataGo analysis query construction.

Turns a parsed game record into the JSON query understood by the KataGo
Parallel Analysis Engine, and KataGo principal variations back into SGF.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sgfmill import sgf_properties

from .coords import CoordinateError, from_compact, to_compact
from .sgf_handler import GameRecord, Move, has_passing_moves, is_pass_move
from .turns import build_turn_map, translate_analyze_turns

logger = logging.getLogger(__name__)

# Engine options the query sets itself
_QUERY_KEYS = (
    "id", "komi", "initialPlayer", "initialStones", "moves",
    "analyzeTurns", "maxVisits", "boardXSize", "boardYSize",
)


@dataclass
class AnalysisQuery:
    """A KataGo analysis request for one game."""
    id: str
    moves: List[List[str]]
    analyze_turns: List[int]
    initial_stones: List[List[str]] = field(default_factory=list)
    komi: Optional[float] = None
    initial_player: Optional[str] = None
    board_size: Optional[int] = None
    max_visits: Optional[int] = None
    options: Dict[str, Any] = field(default_factory=dict)  # Passed through to KataGo

    def to_dict(self) -> Dict[str, Any]:
        """Convert to KataGo's JSON query format."""
        query = dict(self.options)
        query["id"] = self.id
        if self.komi is not None:
            query["komi"] = self.komi
        if self.initial_player is not None:
            query["initialPlayer"] = self.initial_player
        if self.board_size is not None:
            query["boardXSize"] = self.board_size
            query["boardYSize"] = self.board_size
        if self.max_visits is not None:
            query["maxVisits"] = self.max_visits
        query["initialStones"] = self.initial_stones
        query["moves"] = self.moves
        query["analyzeTurns"] = self.analyze_turns
        return query

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def _setup_points(record: GameRecord, key: str) -> List[str]:
    """Raw points of a setup property, compressed 'aa:bb' rectangles expanded."""
    values = record.root.get(key)
    if not values:
        return []

    size = record.board_size
    presenter = sgf_properties.Presenter(size, "UTF-8")
    try:
        points = presenter.interpret(key, [v.strip().encode("ascii") for v in values])
        raw = sgf_properties.serialise_point_list(points, presenter)
    except (ValueError, UnicodeEncodeError) as e:
        raise CoordinateError(f"Invalid {key} point list on {size}x{size}: {list(values)}") from e
    return [point.decode("ascii") for point in raw]


def initial_stones_from_root(record: GameRecord) -> List[List[str]]:
    """
    AB/AW setup stones, each list in SGF point order.

    AB[aa][bb]AW[ab] -> [["B", "A1"], ["B", "B2"], ["W", "A2"]]
    AB[aa:bb]        -> [["B", "A1"], ["B", "A2"], ["B", "B1"], ["B", "B2"]]
    """
    stones = []
    for key, color in (("AB", "B"), ("AW", "W")):
        for point in _setup_points(record, key):
            stones.append([color, to_compact(point)])
    return stones


def moves_from_record(moves: Sequence[Move], size: int = 19) -> List[List[str]]:
    """
    Main line -> KataGo moves, passes left out.

    ;W[po];B[hm];W[ae]  -> [["W", "Q15"], ["B", "H13"], ["W", "A5"]]
    ;W[po];B[hm];W[tt]  -> [["W", "Q15"], ["B", "H13"]]
    """
    return [
        [move.color, to_compact(move.coord)]
        for move in moves
        if not is_pass_move(move.coord, size)
    ]


def seq_from_move_info(player: str, pv: Sequence[str]) -> str:
    """
    KataGo principal variation -> SGF variation.

    ("W", ["A1", "B2", "C3"]) -> '(;W[aa];B[bb];W[cc])'
    """
    nodes = []
    for move in pv:
        coord = "" if move.lower() == "pass" else from_compact(move)
        nodes.append(f";{player}[{coord}]")
        player = "B" if player == "W" else "W"
    return f"({''.join(nodes)})"


def _parse_komi(record: GameRecord) -> Optional[float]:
    for key in ("KM", "KO"):
        value = record.root_value(key)
        if value is None or not value.strip():
            continue
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Ignoring bad komi {key}[{value}]")
    return None


def _query_options(options: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in options.items() if k not in _QUERY_KEYS}


def build_query(
    record: GameRecord,
    options: Optional[Dict[str, Any]] = None,
    query_id: str = "analyze-sgf-000",
    default_komi: Optional[float] = None,
) -> AnalysisQuery:
    """
    Build the KataGo query for a game record.

    Args:
        record: Parsed game record
        options: KataGo options; "komi" is the fallback komi, "analyzeTurns"
                 lists real (pass-inclusive) turn numbers, the rest is
                 passed through
        query_id: Query id echoed back in the responses
        default_komi: Komi used when neither the record nor options give one

    Returns:
        AnalysisQuery
    """
    options = options or {}
    size = record.board_size

    komi = _parse_komi(record)
    if komi is None:
        komi = options.get("komi", default_komi)

    initial_player = record.root_value("PL")
    if initial_player is not None:
        initial_player = initial_player.strip().upper()
        logger.debug(f"initialPlayer is set to {initial_player} from SGF")

    moves = moves_from_record(record.moves, size)

    turns = options.get("analyzeTurns")
    if turns is None:
        turns = list(range(len(moves) + 1))
    elif has_passing_moves(record.moves, size):
        turns = translate_analyze_turns(turns, build_turn_map(record.moves, size))
    else:
        turns = list(turns)

    return AnalysisQuery(
        id=query_id,
        moves=moves,
        analyze_turns=turns,
        initial_stones=initial_stones_from_root(record),
        komi=komi,
        initial_player=initial_player or None,
        board_size=size if record.root_value("SZ") is not None else None,
        max_visits=options.get("maxVisits"),
        options=_query_options(options),
    )


def build_revisit_query(
    record: GameRecord,
    options: Optional[Dict[str, Any]],
    query_id: str,
    turns: List[int],
    max_visits: int,
    default_komi: Optional[float] = None,
) -> AnalysisQuery:
    """
    Build the second-pass query for turns found by winrate_drop_turns.

    The turns are KataGo turn numbers already, so they are used as is.
    """
    options = dict(options or {})
    options.pop("analyzeTurns", None)

    query = build_query(record, options, query_id, default_komi=default_komi)
    query.analyze_turns = list(turns)
    query.max_visits = max_visits
    return query
