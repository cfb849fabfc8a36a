"""
analyze-sgf - SGF game analysis with KataGo

Sends SGF games to the KataGo Parallel Analysis Engine, adds its verdicts
to the records, and reports good moves, bad moves, and bad hot spots.
"""

__version__ = "0.1.0"

from .analyzer import SGFAnalyzer, GameAnalysis
from .query import AnalysisQuery, build_query
from .report import MoveDrop, Thresholds, compute_move_drops, report_game
from .sgf_handler import GameRecord, SGFParseError, load_record, parse_record

__all__ = [
    "SGFAnalyzer",
    "GameAnalysis",
    "AnalysisQuery",
    "build_query",
    "MoveDrop",
    "Thresholds",
    "compute_move_drops",
    "report_game",
    "GameRecord",
    "SGFParseError",
    "load_record",
    "parse_record",
]
