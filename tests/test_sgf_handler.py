"""
Unit tests for SGF handler module.

Tests:
- SGF parsing (root properties, main line, comments)
- Tailless canonical form
- Pass detection
- Property injection and comments
- Dialect correction
- Error handling for malformed SGF
"""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analyze_sgf.sgf_handler import (
    GameRecord,
    Move,
    SGFParseError,
    add_comment,
    add_property,
    correct_sgf_dialects,
    has_passing_moves,
    is_pass_move,
    load_record,
    load_sgf_file,
    parse_record,
    remove_tails,
    save_sgf_file,
    seq_to_pv,
    to_bad_hot_spot,
    to_bad_node,
    to_good_node,
)


# --- Parsing ---


class TestParseRecord:
    """Tests for parse_record function."""

    def test_parse_simple_sgf(self):
        """Test parsing a minimal SGF game."""
        record = parse_record("(;GM[1]FF[4]SZ[19]KM[7.5];B[pd];W[dd])")

        assert record.root["KM"] == ("7.5",)
        assert record.board_size == 19
        assert record.moves == (Move("B", "pd"), Move("W", "dd"))
        assert record.sequence == ";B[pd];W[dd]"

    def test_main_line_follows_first_child(self):
        """Only the first variation at each branch is kept."""
        record = parse_record("(;SZ[19];B[aa](;W[bb];B[cc])(;W[dd]))")

        assert record.sequence == ";B[aa];W[bb];B[cc]"

    def test_root_comment_dropped(self):
        record = parse_record("(;GM[1]C[hello];B[aa]C[nice])")

        assert "C" not in record.root
        assert record.sequence == ";B[aa]"

    def test_root_comment_kept_on_request(self):
        record = parse_record("(;GM[1]C[hello];B[aa])", comment=True)

        assert record.root["C"] == ("hello",)

    def test_multiple_values(self):
        record = parse_record("(;SZ[19]AB[aa][bb]AW[cc];W[dd])")

        assert record.root["AB"] == ("aa", "bb")
        assert record.root["AW"] == ("cc",)

    def test_pass_moves_kept(self):
        record = parse_record("(;SZ[19];B[pd];W[];B[tt])")

        assert record.moves == (Move("B", "pd"), Move("W", ""), Move("B", "tt"))
        assert record.sequence == ";B[pd];W[];B[tt]"

    def test_nodes_without_moves_skipped(self):
        record = parse_record("(;SZ[19];B[pd];C[just a comment];W[dd])")

        assert record.sequence == ";B[pd];W[dd]"

    def test_default_board_size(self):
        assert parse_record("(;GM[1];B[pd])").board_size == 19
        assert parse_record("(;SZ[9];B[ee])").board_size == 9

    def test_parse_empty_game(self):
        record = parse_record("(;GM[1]FF[4]SZ[19]KM[7.5])")

        assert record.moves == ()
        assert record.sequence == ""

    def test_parse_malformed_sgf(self):
        """Test malformed SGF raises SGFParseError."""
        with pytest.raises(SGFParseError):
            parse_record("not valid sgf")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_record("")


class TestRootAccessors:
    """Tests for GameRecord.root_value and root_text."""

    def test_root_value_missing(self):
        record = parse_record("(;GM[1];B[pd])")

        assert record.root_value("KM") is None

    def test_root_value_present(self):
        record = parse_record("(;KM[6.5];B[pd])")

        assert record.root_value("KM") == "6.5"

    def test_root_value_empty_tuple(self):
        record = GameRecord(root={"KM": ()})

        assert record.root_value("KM") is None

    def test_root_text_unescapes(self):
        record = parse_record("(;PB[Lee \\] Sedol];B[pd])")

        assert record.root_value("PB") == "Lee \\] Sedol"
        assert record.root_text("PB") == "Lee ] Sedol"

    def test_root_text_trims(self):
        record = parse_record("(;PW[  AlphaGo ];B[pd])")

        assert record.root_text("PW") == "AlphaGo"


class TestLoadRecord:
    """Tests for load_record (dialect correction + parsing)."""

    def test_corrects_dialects(self):
        record = load_record("(;KO[6.5]PB[Lee:Lee:9d];B[pd])")

        assert record.root_value("KM") == "6.5"
        assert record.root_value("PB") == "Lee"

    def test_error_quotes_original_text(self):
        with pytest.raises(SGFParseError) as excinfo:
            load_record("garbage RD[2021]")

        assert excinfo.value.fragment == "garbage RD[2021]"
        assert "RD[2021]" in str(excinfo.value)


# --- Canonical form ---


class TestRemoveTails:
    """Tests for remove_tails function."""

    def test_strips_tails_and_comments(self):
        sgf = "(;FF[4]GM[1]C[test];B[aa]C[test](;B[bb])(;B[cc]))"

        assert remove_tails(sgf) == "(;FF[4]GM[1];B[aa];B[bb])"

    def test_strips_line_feeds(self):
        sgf = "(;FF[4]\r\nGM[1]\n;B[aa]\n;W[bb])"

        assert remove_tails(sgf) == "(;FF[4]GM[1];B[aa];W[bb])"

    def test_trims_values(self):
        assert remove_tails("(;PB[ Lee ];B[aa])") == "(;PB[Lee];B[aa])"

    def test_keeps_root_comment_on_request(self):
        assert remove_tails("(;GM[1]C[hi];B[aa])", comment=True) == "(;GM[1]C[hi];B[aa])"

    def test_keeps_escapes(self):
        assert remove_tails("(;GN[a\\]b];B[aa])") == "(;GN[a\\]b];B[aa])"

    def test_idempotent(self):
        once = remove_tails("(;FF[4]C[x];B[aa](;W[bb])(;W[cc]))")

        assert remove_tails(once) == once


# --- Passing moves ---


class TestPassDetection:
    """Tests for is_pass_move and has_passing_moves."""

    def test_19x19(self):
        assert is_pass_move("", 19)
        assert is_pass_move("tt", 19)
        assert not is_pass_move("cc", 19)

    def test_small_board(self):
        assert is_pass_move("tt", 9)

    def test_large_board(self):
        """Only the empty form is a pass from 20x20 on."""
        assert is_pass_move("", 25)
        assert not is_pass_move("tt", 25)
        assert not is_pass_move("tt", 20)

    def test_has_passing_moves(self):
        assert has_passing_moves(parse_record("(;W[aa];B[];W[bb])").moves)
        assert has_passing_moves(parse_record("(;W[aa];B[tt];W[bb])").moves)
        assert not has_passing_moves(parse_record("(;W[aa];B[cc];W[bb])").moves)
        assert not has_passing_moves(parse_record("(;W[aa];B[tt];W[bb])").moves, 25)


# --- Text splicing ---


class TestAddProperty:
    """Tests for add_property and its wrappers."""

    def test_after_first_move(self):
        assert add_property("(;W[aa];B[bb];W[cc])", "XX", 0) == "(;W[aa]XX;B[bb];W[cc])"

    def test_from_index(self):
        assert add_property("(;W[aa];B[bb];W[cc])", "XX", 7) == "(;W[aa];B[bb]XX;W[cc])"

    def test_skips_escaped_bracket(self):
        assert add_property("(;C[a\\]b];B[aa])", "XX", 0) == "(;C[a\\]b]XX;B[aa])"

    def test_no_bracket(self):
        assert add_property("(;)", "XX", 0) is None
        assert add_property("(;W[aa])", "XX", 10) is None

    def test_good_node(self):
        assert to_good_node("(;W[aa];B[bb];W[cc])") == "(;W[aa]TE[1];B[bb];W[cc])"

    def test_bad_node(self):
        assert to_bad_node("(;W[aa];B[bb];W[cc])") == "(;W[aa]BM[1];B[bb];W[cc])"

    def test_bad_hot_spot(self):
        assert to_bad_hot_spot("(;W[aa];B[bb];W[cc])") == "(;W[aa]BM[1]HO[1];B[bb];W[cc])"

    def test_add_comment_escapes(self):
        assert add_comment("(;W[aa];B[bb])", "hey[]") == "(;W[aa]C[hey[\\]];B[bb])"

    def test_add_comment_at_index(self):
        assert add_comment("(;W[aa];B[bb])", "hi", 7) == "(;W[aa];B[bb]C[hi])"

    def test_untouched_text_preserved(self):
        sgf = "(;GM[1]\n  PB[x]\n;W[aa]\n;B[bb])"

        result = to_good_node(sgf, sgf.index(";W"))

        assert result == "(;GM[1]\n  PB[x]\n;W[aa]TE[1]\n;B[bb])"


# --- Dialects ---


class TestCorrectDialects:
    """Tests for correct_sgf_dialects function."""

    def test_tygem_sgf(self):
        sgf = "(;TE[대주배 16강 .]RD[2021-02-25]KO[6.5]PB[김미리:김미리:4단]PW[신진서])"

        assert correct_sgf_dialects(sgf) == (
            "(;GM[1]FF[4]EV[대주배 16강]DT[2021-02-25]KM[6.5]PB[김미리]PW[신진서])"
        )

    def test_empty_komi(self):
        assert correct_sgf_dialects("(;KM[]SZ[19])") == "(;SZ[19])"
        assert correct_sgf_dialects("(;KO[]SZ[19])") == "(;SZ[19])"

    def test_both_player_names(self):
        sgf = "(;PB[a:1]PW[b:2:3])"

        assert correct_sgf_dialects(sgf) == "(;PB[a]PW[b])"

    def test_correct_sgf_unchanged(self):
        sgf = "(;GM[1]FF[4]SZ[19]KM[6.5]PB[Lee]PW[Cho];B[pd])"

        assert correct_sgf_dialects(sgf) == sgf

    def test_idempotent(self):
        sgf = "(;TE[Cup .]RD[2021]KO[6.5]PB[a:b];B[pd])"
        once = correct_sgf_dialects(sgf)

        assert correct_sgf_dialects(once) == once


# --- PV ---


class TestSeqToPV:
    """Tests for seq_to_pv function."""

    def test_variation(self):
        assert seq_to_pv("(;W[po];B[hm];W[ae])") == "WQ5 H7 A15"

    def test_single_move(self):
        assert seq_to_pv(";W[po]") == "Q5"

    def test_passes_left_out(self):
        assert seq_to_pv("(;B[pd];W[];B[dd])") == "BQ16 D16"


# --- File I/O ---


class TestFiles:
    """Tests for load_sgf_file and save_sgf_file."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "game.sgf"
        save_sgf_file(str(path), "(;PB[신진서];B[pd])")

        assert load_sgf_file(str(path)) == "(;PB[신진서];B[pd])"

    def test_load_replaces_bad_bytes(self, tmp_path):
        path = tmp_path / "game.sgf"
        path.write_bytes(b"(;PB[\xff];B[pd])")

        assert load_sgf_file(str(path)) == "(;PB[�];B[pd])"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
