"""
Writes KataGo verdicts back into a game record.

Starting from the tailless record, every analyzed move gets a comment and
a good (TE), bad (BM) or bad hot spot (BM + HO) mark, bad moves get
KataGo's best continuations as variations, and the game report becomes
the root comment.
"""

from typing import Dict, List, Optional, Sequence

from .config import ReportConfig
from .coords import from_compact
from .query import seq_from_move_info
from .report import MoveDrop, Thresholds, percents, report_bads_left
from .responses import MoveInfo
from .sgf_handler import (
    GameRecord,
    add_comment,
    escape_value,
    seq_to_pv,
    to_bad_hot_spot,
    to_bad_node,
    to_good_node,
)


def _mark(node: str, drop: MoveDrop, thresholds: Thresholds) -> str:
    if drop.winrate_drop >= thresholds.hot_spot:
        marked = to_bad_hot_spot(node)
    elif drop.winrate_drop >= thresholds.bad:
        marked = to_bad_node(node)
    elif drop.winrate_drop < thresholds.good:
        marked = to_good_node(node)
    else:
        marked = node
    return marked or node


def move_comment(drop: MoveDrop) -> str:
    """
    e.g.,
    * Win rate drop: ⇣9.20%
    * Score drop: ⇣3.51
    * Win rate: 41.30%
    * Score lead: -2.10
    """
    lines = [
        f"* Win rate drop: ⇣{percents(drop.winrate_drop)}%",
        f"* Score drop: ⇣{drop.score_drop:.2f}",
    ]
    if drop.after is not None:
        lines.append(f"* Win rate: {percents(drop.after.winrate)}%")
        lines.append(f"* Score lead: {drop.after.score_lead:.2f}")
    return "\n".join(lines) + "\n"


def variation_comment(info: MoveInfo, variation: str, size: int) -> str:
    return (
        f"* Win rate: {percents(info.winrate)}%\n"
        f"* Score lead: {info.score_lead:.2f}\n"
        f"* Visits: {info.visits}\n"
        f"* Sequence: {seq_to_pv(variation, size)}\n"
    )


def variations_for(
    drop: MoveDrop,
    played: str,
    size: int,
    max_variations: int,
) -> List[str]:
    """KataGo's candidates for the position before the move, as SGF variations."""
    if drop.before is None:
        return []

    variations = []
    for info in drop.before.ranked_moves():
        if len(variations) >= max_variations:
            break
        if not info.pv:
            continue
        if info.move.lower() != "pass" and from_compact(info.move) == played:
            continue

        variation = seq_from_move_info(drop.player, info.pv)
        commented = add_comment(variation, variation_comment(info, variation, size))
        variations.append(commented or variation)

    return variations


def annotate_sgf(
    record: GameRecord,
    drops: Sequence[MoveDrop],
    thresholds: Thresholds,
    config: Optional[ReportConfig] = None,
    report: str = "",
) -> str:
    """
    Build the annotated SGF.

    Args:
        record: Parsed game record
        drops: Output of compute_move_drops
        thresholds: Good/bad/hot spot thresholds
        config: Variation settings (defaults apply when None)
        report: Root comment, usually the game report

    Returns:
        SGF text with the main line and added variations
    """
    config = config or ReportConfig()
    variation_drop = config.min_winrate_drop_for_variations / 100
    size = record.board_size

    nodes = [move.node for move in record.moves]
    variations: Dict[int, List[str]] = {}

    for drop in drops:
        node = _mark(nodes[drop.index], drop, thresholds)

        comment = move_comment(drop)
        bads_left = ""
        if drop.winrate_drop >= thresholds.bad:
            bads_left = report_bads_left(drops, thresholds, drop.index)
        if bads_left:
            comment += "\n" + bads_left
        nodes[drop.index] = add_comment(node, comment) or node

        if drop.winrate_drop >= variation_drop:
            found = variations_for(
                drop,
                record.moves[drop.index].coord,
                size,
                config.max_variations_for_each_move,
            )
            if found:
                variations[drop.index] = found

    # Variations sit next to the move they replace
    tail = ""
    for index in reversed(range(len(nodes))):
        if index in variations:
            tail = f"({nodes[index]}{tail})" + "".join(variations[index])
        else:
            tail = nodes[index] + tail

    root = record.root_node
    if report:
        root = add_comment(root, report) or f"{root}C[{escape_value(report)}]"

    return f"({root}{tail})"
