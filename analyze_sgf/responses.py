"""
KataGo analysis engine responses.

Responses arrive as newline-delimited JSON, one record per analyzed turn,
in no guaranteed order. This module parses them, finds the turns worth a
deeper second look, and merges the second pass into the first.
"""

import json
import logging
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from .katago import KataGoResponseError

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================

class MoveInfo(BaseModel):
    """A candidate move with its principal variation."""
    move: str = Field(..., description="KataGo coordinate (e.g., 'Q16') or 'pass'")
    order: int = Field(0, description="Rank among candidates (0 = best)")
    visits: int = Field(0, ge=0)
    winrate: float = Field(..., description="Win rate as decimal (0.0-1.0)")
    score_lead: float = Field(0.0, alias="scoreLead")
    pv: List[str] = Field(default_factory=list, description="Principal variation")

    class Config:
        populate_by_name = True
        extra = "ignore"


class RootInfo(BaseModel):
    """Evaluation of the position itself."""
    winrate: float
    score_lead: float = Field(0.0, alias="scoreLead")
    visits: int = 0

    class Config:
        populate_by_name = True
        extra = "ignore"


class TurnResponse(BaseModel):
    """One KataGo response record for one turn."""
    id: str = ""
    turn_number: int = Field(..., alias="turnNumber")
    root_info: RootInfo = Field(..., alias="rootInfo")
    move_infos: List[MoveInfo] = Field(default_factory=list, alias="moveInfos")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def winrate(self) -> float:
        return self.root_info.winrate

    @property
    def score_lead(self) -> float:
        return self.root_info.score_lead

    def ranked_moves(self) -> List[MoveInfo]:
        """Candidates in KataGo's order."""
        return sorted(self.move_infos, key=lambda m: m.order)


# ============================================================================
# Parsing
# ============================================================================

def _lines(stream: str) -> List[str]:
    return [line for line in stream.split("\n") if line.strip()]


def _load(line: str) -> Optional[dict]:
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.warning(f"Invalid JSON response: {line[:100]}")
        return None
    return data if isinstance(data, dict) else None


def check_responses(stream: str) -> None:
    """
    Reject an empty response stream or one starting with an error object.

    Raises:
        KataGoResponseError: With the raw payload attached
    """
    lines = _lines(stream)
    if not lines:
        raise KataGoResponseError("KataGo returned no responses", payload=stream)

    first = _load(lines[0])
    if first is not None and "error" in first and "turnNumber" not in first:
        raise KataGoResponseError(f"KataGo error: {first['error']}", payload=stream)


def parse_responses(stream: str) -> List[TurnResponse]:
    """
    Parse a response stream in its original order.

    Messages without a turn number (warnings) and in-progress reports
    are skipped.
    """
    responses = []
    for line in _lines(stream):
        data = _load(line)
        if data is None:
            continue
        if "turnNumber" not in data or "rootInfo" not in data:
            logger.warning(f"Skipping KataGo message: {line[:100]}")
            continue
        if data.get("isDuringSearch"):
            continue
        responses.append(TurnResponse.model_validate(data))
    return responses


def turn_number_of(line: str) -> Optional[int]:
    data = _load(line)
    if data is None:
        return None
    return data.get("turnNumber")


# ============================================================================
# Revisit
# ============================================================================

def winrate_drop_turns(
    responses: Union[str, Iterable[TurnResponse]],
    winrate_drop: float,
) -> List[int]:
    """
    Find turns to analyze again with more visits.

    For adjacent turns (t - 1, t) where the win rate falls by more than
    winrate_drop, turn t - 1 is returned: the position before the drop
    is where a better continuation has to be found.

    Only falls in the perspective KataGo reports win rates from are
    flagged. A rise of any size is not, so with the default BLACK
    perspective a White mistake (Black's win rate jumping up) is never
    analyzed again.

    Args:
        responses: Response stream or parsed responses, in any order
        winrate_drop: Threshold as decimal (0.1 = 10%)

    Returns:
        Ascending, duplicate-free KataGo turn numbers (may be empty)
    """
    if isinstance(responses, str):
        responses = parse_responses(responses)

    turns: List[int] = []
    previous: Optional[TurnResponse] = None

    for current in sorted(responses, key=lambda r: r.turn_number):
        if (
            previous is not None
            and previous.turn_number == current.turn_number - 1
            and previous.winrate - current.winrate > winrate_drop
            and previous.turn_number not in turns
        ):
            turns.append(previous.turn_number)
        previous = current

    return turns


def merge_responses(original: str, revisited: str, turns: Iterable[int]) -> str:
    """
    Replace the responses of revisited turns.

    Lines of original for the given turns are dropped and revisited is
    appended as is. The result is not sorted by turn.
    """
    turns = set(turns)
    kept = [
        line for line in _lines(original)
        if turn_number_of(line) not in turns
    ]
    return "".join(line + "\n" for line in kept) + revisited


def split_responses_by_id(stream: str, ids: Iterable[str]) -> Dict[str, str]:
    """
    Split a batch response stream by query id.

    Returns:
        Dictionary of query id -> its response lines ('' if none arrived)
    """
    split = {query_id: "" for query_id in ids}

    for line in _lines(stream):
        data = _load(line)
        if data is None:
            continue
        query_id = data.get("id")
        if query_id in split:
            split[query_id] += line + "\n"
        else:
            logger.debug(f"Response for unknown query: {line[:100]}")

    return split
