"""
Unit tests for analyzer.py module.

The KataGo engine is replaced by a MagicMock that answers every query
with one response per analyzed turn.
"""

import json
import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analyze_sgf.analyzer import SGFAnalyzer, make_sidecar, split_sidecar
from analyze_sgf.config import AnalysisConfig, AppConfig, KataGoConfig, RevisitConfig
from analyze_sgf.responses import parse_responses


GAME = "(;PB[Lee]PW[Cho]KM[6.5]RE[W+R];B[pd];W[dd];B[pp];W[dp])"
WINRATES = [0.5, 0.515625, 0.375, 0.390625, 0.25]
REVISIT_VISITS = 3200
REVISIT_WINRATE = 0.45


def fake_analyze(queries, timeout=None):
    lines = []
    for text in queries:
        query = json.loads(text)
        for turn in query["analyzeTurns"]:
            winrate = WINRATES[turn]
            if query.get("maxVisits") == REVISIT_VISITS:
                winrate = REVISIT_WINRATE
            lines.append(json.dumps({
                "id": query["id"],
                "turnNumber": turn,
                "rootInfo": {"winrate": winrate, "scoreLead": 0.0},
                "moveInfos": [],
            }))
    return "\n".join(lines) + "\n"


def make_config(revisit=False):
    return AppConfig(
        katago=KataGoConfig("katago", "", ""),
        analysis=AnalysisConfig(options={"rules": "korean", "maxVisits": 400}),
        revisit=RevisitConfig(enabled=revisit, winrate_drop=10.0, max_visits=REVISIT_VISITS),
    )


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.analyze.side_effect = fake_analyze
    return engine


@pytest.fixture
def sgf_path(tmp_path):
    path = tmp_path / "game.sgf"
    path.write_text(GAME, encoding="utf-8")
    return path


class TestSidecar:
    """Tests for the side-car format helpers."""

    def test_make(self):
        assert make_sidecar("(;GM[1]\n;B[aa])", '{"id":"a"}\n') == '(;GM[1];B[aa])\n{"id":"a"}\n'

    def test_split(self):
        assert split_sidecar('(;B[aa])\n{"id":"a"}\n') == ("(;B[aa])", '{"id":"a"}\n')

    def test_split_without_responses(self):
        assert split_sidecar("(;B[aa])") == ("(;B[aa])", "")


class TestOutputPath:
    """Tests for SGFAnalyzer.output_path."""

    def test_sgf(self, engine):
        analyzer = SGFAnalyzer(config=make_config(), engine=engine)

        assert analyzer.output_path("games/game.sgf") == str(Path("games/game-analyzed.sgf"))

    def test_sidecar(self, engine):
        analyzer = SGFAnalyzer(config=make_config(), engine=engine)

        assert analyzer.output_path("games/game-responses.json") == str(Path("games/game-analyzed.sgf"))


class TestAnalyzeFiles:
    """Tests for SGFAnalyzer.analyze_files."""

    def test_single_game(self, engine, sgf_path):
        analyzer = SGFAnalyzer(config=make_config(), engine=engine)

        [game] = analyzer.analyze_files([str(sgf_path)])

        assert engine.analyze.call_count == 1
        assert game.output_path == str(sgf_path.with_name("game-analyzed.sgf"))
        assert Path(game.output_path).read_text(encoding="utf-8") == game.annotated
        assert game.report.startswith("# Analyze-SGF Report\n\nKomi 6.5, W+R\n")
        assert game.report.endswith("(400 max visits).")
        assert [d.number for d in game.drops] == [1, 2, 3, 4]

    def test_one_batch_for_all_games(self, engine, tmp_path):
        paths = []
        for name in ("a.sgf", "b.sgf"):
            path = tmp_path / name
            path.write_text(GAME, encoding="utf-8")
            paths.append(str(path))

        games = SGFAnalyzer(config=make_config(), engine=engine).analyze_files(paths)

        assert len(games) == 2
        assert engine.analyze.call_count == 1
        queries = [json.loads(q) for q in engine.analyze.call_args[0][0]]
        assert [q["id"] for q in queries] == ["analyze-sgf-000", "analyze-sgf-001"]

    def test_bad_game_skipped(self, engine, sgf_path, tmp_path):
        broken = tmp_path / "broken.sgf"
        broken.write_text("this is not sgf", encoding="utf-8")

        games = SGFAnalyzer(config=make_config(), engine=engine).analyze_files(
            [str(broken), str(sgf_path)]
        )

        assert [g.source_path for g in games] == [str(sgf_path)]

    def test_missing_file_skipped(self, engine, sgf_path, tmp_path):
        games = SGFAnalyzer(config=make_config(), engine=engine).analyze_files(
            [str(tmp_path / "missing.sgf"), str(sgf_path)]
        )

        assert len(games) == 1

    def test_nothing_to_analyze(self, engine, tmp_path):
        games = SGFAnalyzer(config=make_config(), engine=engine).analyze_files(
            [str(tmp_path / "missing.sgf")]
        )

        assert games == []
        engine.analyze.assert_not_called()

    def test_error_response(self, sgf_path):
        engine = MagicMock()
        engine.analyze.return_value = '{"id":"analyze-sgf-000","error":"Illegal move"}\n'

        games = SGFAnalyzer(config=make_config(), engine=engine).analyze_files([str(sgf_path)])

        assert games == []
        assert not sgf_path.with_name("game-analyzed.sgf").exists()

    def test_save_responses(self, engine, sgf_path):
        SGFAnalyzer(config=make_config(), engine=engine).analyze_files(
            [str(sgf_path)], save_responses=True
        )

        sidecar = sgf_path.with_name("game-responses.json")
        content = sidecar.read_text(encoding="utf-8")
        sgf, responses = split_sidecar(content)
        assert sgf == "(;PB[Lee]PW[Cho]KM[6.5]RE[W+R];B[pd];W[dd];B[pp];W[dp])"
        assert len(parse_responses(responses)) == 5


class TestRevisit:
    """Tests for the second, deeper pass."""

    def test_revisit(self, engine, sgf_path):
        analyzer = SGFAnalyzer(config=make_config(revisit=True), engine=engine)

        [game] = analyzer.analyze_files([str(sgf_path)])

        assert engine.analyze.call_count == 2
        [revisit_query] = [json.loads(q) for q in engine.analyze.call_args[0][0]]
        assert revisit_query["id"] == "analyze-sgf-000"
        assert revisit_query["analyzeTurns"] == [1, 3]
        assert revisit_query["maxVisits"] == REVISIT_VISITS

        winrates = {r.turn_number: r.winrate for r in parse_responses(game.responses)}
        assert winrates == {0: 0.5, 1: REVISIT_WINRATE, 2: 0.375, 3: REVISIT_WINRATE, 4: 0.25}
        assert game.report.endswith(f"({REVISIT_VISITS} max visits).")

    def test_nothing_to_revisit(self, sgf_path):
        engine = MagicMock()
        engine.analyze.return_value = "".join(
            json.dumps({"id": "analyze-sgf-000", "turnNumber": t, "rootInfo": {"winrate": 0.5}}) + "\n"
            for t in range(5)
        )

        [game] = SGFAnalyzer(config=make_config(revisit=True), engine=engine).analyze_files(
            [str(sgf_path)]
        )

        assert engine.analyze.call_count == 1
        assert all(d.winrate_drop == 0 for d in game.drops)

    def test_failed_revisit_keeps_first_pass(self, sgf_path):
        engine = MagicMock()
        first_pass = fake_analyze([json.dumps({
            "id": "analyze-sgf-000", "analyzeTurns": [0, 1, 2, 3, 4],
        })])
        engine.analyze.side_effect = [first_pass, '{"id":"analyze-sgf-000","error":"busy"}\n']

        [game] = SGFAnalyzer(config=make_config(revisit=True), engine=engine).analyze_files(
            [str(sgf_path)]
        )

        assert game.responses == first_pass


class TestAnalyzeSidecar:
    """Tests for SGFAnalyzer.analyze_sidecar."""

    def test_reanalyze(self, engine, sgf_path):
        analyzer = SGFAnalyzer(config=make_config(), engine=engine)
        [first] = analyzer.analyze_files([str(sgf_path)], save_responses=True)
        sgf_path.with_name("game-analyzed.sgf").unlink()

        game = analyzer.analyze_sidecar(str(sgf_path.with_name("game-responses.json")))

        assert engine.analyze.call_count == 1
        assert game.report == first.report
        assert game.annotated == first.annotated
        assert Path(game.output_path).exists()
