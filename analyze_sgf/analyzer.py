"""
SGF Analyzer - Main pipeline of analyze-sgf.

Integrates:
- SGF parsing and KataGo query building
- KataGo Parallel Analysis Engine (one run per batch)
- Optional revisit pass with more visits for sharp win rate drops
- Report generation and annotated SGF output

Flow per batch:
1. Read every SGF and build one query per game
2. Send all queries to KataGo, split the responses by query id
3. Revisit: re-query turns before sharp win rate drops, merge
4. Per game: save the side-car JSON, write the annotated SGF, build the report

A failing game is logged and skipped; the rest of the batch goes on.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .annotate import annotate_sgf
from .config import AppConfig, load_config
from .katago import KataGoAnalysisEngine, KataGoResponseError
from .query import AnalysisQuery, build_query, build_revisit_query
from .report import MoveDrop, Thresholds, compute_move_drops, report_game
from .responses import (
    check_responses,
    merge_responses,
    parse_responses,
    split_responses_by_id,
    winrate_drop_turns,
)
from .sgf_handler import (
    GameRecord,
    load_record,
    load_sgf_file,
    save_sgf_file,
)

logger = logging.getLogger(__name__)

RESPONSES_SUFFIX = "-responses.json"

# Errors which abort one game only (SGFParseError, CoordinateError and
# pydantic's ValidationError are ValueErrors)
GAME_ERRORS = (ValueError, KataGoResponseError, OSError)


# ============================================================================
# Side-car File
# ============================================================================

def make_sidecar(sgf: str, responses: str) -> str:
    """Side-car format: tailless SGF on the first line, then KataGo responses."""
    first_line = sgf.replace("\r\n", "").replace("\n", "")
    return f"{first_line}\n{responses}"


def split_sidecar(content: str) -> Tuple[str, str]:
    """Side-car text -> (SGF, responses)."""
    index = content.find("\n")
    if index < 0:
        return content, ""
    return content[:index], content[index + 1:]


# ============================================================================
# Results
# ============================================================================

@dataclass
class GameAnalysis:
    """Everything produced for one game."""
    source_path: str
    output_path: str
    record: GameRecord
    responses: str
    drops: Tuple[MoveDrop, ...]
    report: str
    annotated: str


@dataclass
class _PendingGame:
    path: str
    record: GameRecord
    query: AnalysisQuery
    responses: str = ""


# ============================================================================
# Analyzer
# ============================================================================

class SGFAnalyzer:
    """
    Batch analyzer for SGF files.

    Usage:
        analyzer = SGFAnalyzer()
        for game in analyzer.analyze_files(["game1.sgf", "game2.sgf"]):
            print(game.report)

        # Re-use saved KataGo responses
        game = analyzer.analyze_sidecar("game1-responses.json")
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[AppConfig] = None,
        engine: Optional[KataGoAnalysisEngine] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            config_path: Path to the config file
            config: Pre-loaded AppConfig (overrides config_path)
            engine: KataGo engine (default: built from config.katago)
        """
        if config is not None:
            self.config = config
        else:
            self.config = load_config(config_path)

        self.thresholds = Thresholds.from_config(self.config.report)
        self.engine = engine or KataGoAnalysisEngine(self.config.katago)

    # ------------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------------

    def analyze_files(
        self,
        sgf_paths: Sequence[str],
        save_responses: bool = False,
    ) -> List[GameAnalysis]:
        """
        Analyze SGF files with KataGo.

        Args:
            sgf_paths: SGF files to analyze
            save_responses: Also write '<name>-responses.json' side-car files

        Returns:
            Results of the games that were analyzed successfully
        """
        games = self._prepare(sgf_paths)
        if not games:
            return []

        stream = self.engine.analyze([game.query.to_json() for game in games])
        split = split_responses_by_id(stream, [game.query.id for game in games])
        for game in games:
            game.responses = split[game.query.id]

        if self.config.revisit.enabled:
            self._revisit(games)

        results = []
        for game in games:
            try:
                if save_responses:
                    self._save_sidecar(game)
                results.append(self.finish(game.path, game.record, game.responses))
            except GAME_ERRORS as e:
                logger.error(f"{game.path}: {e}")
        return results

    def analyze_sidecar(self, sidecar_path: str) -> GameAnalysis:
        """Analyze a saved side-car file without running KataGo."""
        sgf, responses = split_sidecar(load_sgf_file(sidecar_path))
        return self.finish(sidecar_path, load_record(sgf), responses)

    def _prepare(self, sgf_paths: Sequence[str]) -> List[_PendingGame]:
        games = []
        for index, path in enumerate(sgf_paths):
            try:
                record = load_record(load_sgf_file(path))
                query = build_query(
                    record,
                    self.config.analysis.options,
                    query_id=f"analyze-sgf-{index:03d}",
                    default_komi=self.config.analysis.default_komi,
                )
            except GAME_ERRORS as e:
                logger.error(f"{path}: {e}")
                continue
            games.append(_PendingGame(path=path, record=record, query=query))
        return games

    def _revisit(self, games: List[_PendingGame]) -> None:
        """Analyze again, with more visits, the turns before sharp drops."""
        winrate_drop = self.config.revisit.winrate_drop / 100
        revisits: Dict[str, Tuple[_PendingGame, AnalysisQuery]] = {}

        for game in games:
            try:
                check_responses(game.responses)
            except KataGoResponseError:
                # Reported when the game is finished
                continue

            turns = winrate_drop_turns(game.responses, winrate_drop)
            if not turns:
                logger.info(f"{game.path}: no turns to revisit")
                continue

            query = build_revisit_query(
                game.record,
                self.config.analysis.options,
                game.query.id,
                turns,
                self.config.revisit.max_visits,
                default_komi=self.config.analysis.default_komi,
            )
            revisits[query.id] = (game, query)
            logger.info(f"{game.path}: revisiting turns {turns}")

        if not revisits:
            return

        stream = self.engine.analyze([query.to_json() for _, query in revisits.values()])
        split = split_responses_by_id(stream, list(revisits))

        for query_id, (game, query) in revisits.items():
            revisited = split[query_id]
            try:
                check_responses(revisited)
            except KataGoResponseError as e:
                logger.warning(f"{game.path}: revisit failed, keeping first pass: {e}")
                continue
            game.responses = merge_responses(game.responses, revisited, query.analyze_turns)

    # ------------------------------------------------------------------------
    # Per Game
    # ------------------------------------------------------------------------

    def output_path(self, source_path: str) -> str:
        """'game.sgf' -> 'game-analyzed.sgf'"""
        path = Path(source_path)
        name = path.name
        if name.endswith(RESPONSES_SUFFIX):
            name = name[:-len(RESPONSES_SUFFIX)]
        else:
            name = path.stem
        return str(path.with_name(f"{name}{self.config.report.file_suffix}.sgf"))

    def _save_sidecar(self, game: _PendingGame) -> None:
        path = Path(game.path)
        sidecar_path = path.with_name(f"{path.stem}{RESPONSES_SUFFIX}")
        save_sgf_file(str(sidecar_path), make_sidecar(game.record.tailless, game.responses))
        logger.info(f"{sidecar_path} generated.")

    def finish(self, source_path: str, record: GameRecord, responses: str) -> GameAnalysis:
        """
        Turn KataGo responses into the report and the annotated SGF.

        Raises:
            KataGoResponseError: If the responses are empty or an error
        """
        check_responses(responses)

        drops = compute_move_drops(record, parse_responses(responses))
        report = report_game(record, drops, self.thresholds, self.config.get_visits())
        annotated = annotate_sgf(record, drops, self.thresholds, self.config.report, report)

        output_path = self.output_path(source_path)
        save_sgf_file(output_path, annotated)
        logger.info(f"{output_path} generated.")

        return GameAnalysis(
            source_path=source_path,
            output_path=output_path,
            record=record,
            responses=responses,
            drops=drops,
            report=report,
            annotated=annotated,
        )

    def __repr__(self) -> str:
        return f"SGFAnalyzer(engine={self.engine!r})"
