"""
Game report on players info, good moves, bad moves, and bad hot spots.

The report is built by a chain of pure stages:
    responses -> compute_move_drops -> classify -> format
Each stage returns a new immutable value.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import ReportConfig
from .responses import TurnResponse
from .sgf_handler import GameRecord
from .turns import build_turn_map, engine_count, real_index

PLAYERS = ("B", "W")
COLOR_NAMES = {"B": "Black", "W": "White"}
TOP_DROPS_COUNT = 10


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class MoveDrop:
    """Win rate and score change caused by one move."""
    index: int            # Real move index, 0-based (move number - 1)
    player: str           # 'B' or 'W'
    winrate_drop: float   # As decimal, e.g., 0.052
    score_drop: float     # In points
    before: Optional[TurnResponse] = field(default=None, compare=False, repr=False)
    after: Optional[TurnResponse] = field(default=None, compare=False, repr=False)

    @property
    def number(self) -> int:
        """Move number as shown to players."""
        return self.index + 1


@dataclass(frozen=True)
class Thresholds:
    """Win rate drop thresholds as decimals."""
    good: float
    bad: float
    hot_spot: float

    def __post_init__(self):
        for name in ("good", "bad", "hot_spot"):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise ValueError(f"Threshold '{name}' must be in (0, 1), got {value}")
        if not self.good < self.bad <= self.hot_spot:
            raise ValueError(
                f"Thresholds must satisfy good < bad <= hot_spot, "
                f"got {self.good}, {self.bad}, {self.hot_spot}"
            )

    @classmethod
    def from_config(cls, config: ReportConfig) -> 'Thresholds':
        """Create from percentages in the report config."""
        return cls(
            good=config.max_winrate_drop_for_good_move / 100,
            bad=config.min_winrate_drop_for_bad_move / 100,
            hot_spot=config.min_winrate_drop_for_bad_hot_spot / 100,
        )


@dataclass(frozen=True)
class Buckets:
    """One player's moves grouped by win rate drop. Buckets overlap."""
    player: str
    good: Tuple[MoveDrop, ...]
    acceptable: Tuple[MoveDrop, ...]
    bad: Tuple[MoveDrop, ...]
    hot_spot: Tuple[MoveDrop, ...]
    top_winrate_drops: Tuple[MoveDrop, ...]
    top_score_drops: Tuple[MoveDrop, ...]
    total: int


# ============================================================================
# Stages
# ============================================================================

def compute_move_drops(
    record: GameRecord,
    responses: Iterable[TurnResponse],
) -> Tuple[MoveDrop, ...]:
    """
    Compute the drop of every analyzed non-pass move.

    A move needs responses for the positions before and after it;
    moves missing either are left out.
    """
    turn_map = build_turn_map(record.moves, record.board_size)
    by_turn = {response.turn_number: response for response in responses}

    drops = []
    for turn in range(1, engine_count(turn_map)):
        before = by_turn.get(turn - 1)
        after = by_turn.get(turn)
        if before is None or after is None:
            continue

        index = real_index(turn_map, turn) - 1
        drops.append(MoveDrop(
            index=index,
            player=record.moves[index].color,
            winrate_drop=abs(after.winrate - before.winrate),
            score_drop=abs(after.score_lead - before.score_lead),
            before=before,
            after=after,
        ))

    return tuple(drops)


def classify(drops: Sequence[MoveDrop], player: str, thresholds: Thresholds) -> Buckets:
    """Group one player's moves by the thresholds."""
    moves = [d for d in drops if d.player == player]

    top_winrate = sorted(
        (d for d in moves if d.winrate_drop),
        key=lambda d: d.winrate_drop,
        reverse=True,
    )
    top_score = sorted(
        (d for d in moves if d.score_drop),
        key=lambda d: d.score_drop,
        reverse=True,
    )

    return Buckets(
        player=player,
        good=tuple(d for d in moves if d.winrate_drop < thresholds.good),
        acceptable=tuple(d for d in moves if d.winrate_drop < thresholds.bad),
        bad=tuple(d for d in moves if d.winrate_drop >= thresholds.bad),
        hot_spot=tuple(d for d in moves if d.winrate_drop >= thresholds.hot_spot),
        top_winrate_drops=tuple(top_winrate[:TOP_DROPS_COUNT]),
        top_score_drops=tuple(top_score[:TOP_DROPS_COUNT]),
        total=len(moves),
    )


# ============================================================================
# Formatting
# ============================================================================

def percents(f: float) -> str:
    return f"{f * 100:.2f}"


def _label(threshold: float) -> str:
    return f"{threshold * 100:g}"


def drop_list(
    text: str,
    moves: Sequence[MoveDrop],
    total: Optional[int] = None,
    list_moves: bool = False,
    is_score: bool = False,
) -> str:
    """
    Format one bucket as a line, or '' for an empty bucket.

    e.g.,
    * More than 5% win rate drops (5.56%, 5/90): #79 ⇣9.20%, #83 ⇣8.49%
    """
    if not moves:
        return ""

    line = f"* {text}"
    if total:
        line += f" ({percents(len(moves) / total)}%, {len(moves)}/{total})"
    if list_moves:
        if is_score:
            items = [f"#{m.number} ⇣{m.score_drop:.2f}" for m in moves]
        else:
            items = [f"#{m.number} ⇣{percents(m.winrate_drop)}%" for m in moves]
        line += ": " + ", ".join(items)
    return line + "\n"


def format_player_report(buckets: Buckets, thresholds: Thresholds) -> str:
    """
    e.g.,
    * Less than 2% win rate drops (83.33%, 75/90)
    * Less than 5% win rate drops (94.44%, 85/90)
    * More than 5% win rate drops (5.56%, 5/90): #79 ⇣9.20%, #83 ⇣8.49%, ...
    * More than 20% win rate drops (2.22%, 2/90): #89 ⇣25.12%, #93 ⇣26.86%
    * Top 10 win rate drops: #93 ⇣26.86%, #89 ⇣25.12%, ...
    * Top 10 score drops: #89 ⇣6.34, #93 ⇣4.61, #167 ⇣4.40, ...
    """
    total = buckets.total
    return (
        drop_list(f"Less than {_label(thresholds.good)}% win rate drops",
                  buckets.good, total)
        + drop_list(f"Less than {_label(thresholds.bad)}% win rate drops",
                    buckets.acceptable, total)
        + drop_list(f"More than {_label(thresholds.bad)}% win rate drops",
                    buckets.bad, total, list_moves=True)
        + drop_list(f"More than {_label(thresholds.hot_spot)}% win rate drops",
                    buckets.hot_spot, total, list_moves=True)
        + drop_list(f"Top {TOP_DROPS_COUNT} win rate drops",
                    buckets.top_winrate_drops, list_moves=True)
        + drop_list(f"Top {TOP_DROPS_COUNT} score drops",
                    buckets.top_score_drops, list_moves=True, is_score=True)
    )


def _player_title(name: Optional[str], color: str) -> str:
    return f"{name} ({color})" if name else color


def _game_info(record: GameRecord) -> str:
    event = record.root_text("EV") or record.root_text("GN")
    komi = record.root_text("KM")
    parts = [
        event,
        f"Komi {komi}" if komi else None,
        record.root_text("RE"),
        record.root_text("DT"),
    ]
    return ", ".join(p for p in parts if p)


def report_game(
    record: GameRecord,
    drops: Sequence[MoveDrop],
    thresholds: Thresholds,
    visits: Optional[int] = None,
) -> str:
    """Generate the game report."""
    sections: List[str] = []
    for player in PLAYERS:
        title = _player_title(record.root_text(f"P{player}"), COLOR_NAMES[player])
        body = format_player_report(classify(drops, player, thresholds), thresholds)
        sections.append(f"{title}\n{body}")

    footer = "Analyzed by KataGo Parallel Analysis Engine"
    footer += f" ({visits} max visits)." if visits else "."

    return (
        f"# Analyze-SGF Report\n\n{_game_info(record)}\n\n"
        + "\n".join(sections)
        + f"\n{footer}"
    )


def report_bads_left(drops: Sequence[MoveDrop], thresholds: Thresholds, index: int) -> str:
    """
    List the bad moves played after the move at index.

    e.g.,
    * Black bad moves: #117 ⇣14.99%, #127 ⇣11.81%, ...
    * Black bad hot spots: #129 ⇣30.29%
    """
    report = ""
    for player in PLAYERS:
        buckets = classify(drops, player, thresholds)
        color = COLOR_NAMES[player]
        report += drop_list(
            f"{color} bad moves",
            [m for m in buckets.bad if m.index > index],
            list_moves=True,
        )
        report += drop_list(
            f"{color} bad hot spots",
            [m for m in buckets.hot_spot if m.index > index],
            list_moves=True,
        )

    if report:
        return f"Bad moves left\n\n{report}"
    return ""
