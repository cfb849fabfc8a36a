"""
Command-line interface for analyze-sgf.

Usage:
    # Analyze SGF files
    python -m analyze_sgf.cli game1.sgf game2.sgf

    # Override KataGo query options
    python -m analyze_sgf.cli -a '{maxVisits: 1600}' game.sgf

    # Save KataGo responses next to the SGF
    python -m analyze_sgf.cli -s game.sgf

    # Re-analyze saved responses (no KataGo needed)
    python -m analyze_sgf.cli -f game-responses.json
"""

import argparse
import dataclasses
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from .analyzer import SGFAnalyzer
from .config import AppConfig, load_config
from .katago import KataGoError


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="analyze-sgf",
        description="Analyze SGF game records with KataGo Parallel Analysis Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze games
  %(prog)s game1.sgf game2.sgf

  # More visits, Japanese rules
  %(prog)s -a '{maxVisits: 1600, rules: japanese}' game.sgf

  # Stricter bad move threshold
  %(prog)s -g '{min_winrate_drop_for_bad_move: 3}' game.sgf

  # Second pass with 3200 visits on turns before 10% drops
  %(prog)s --revisit game.sgf

  # Save responses, then re-analyze them later without KataGo
  %(prog)s -s game.sgf
  %(prog)s -f game-responses.json
        """
    )

    parser.add_argument(
        "sgf_paths",
        nargs="*",
        metavar="FILE",
        help="SGF files to analyze"
    )

    parser.add_argument(
        "--analysis", "-a",
        type=str,
        default=None,
        help="KataGo query options as a JSON/YAML mapping"
    )

    parser.add_argument(
        "--sgf", "-g",
        type=str,
        default=None,
        help="Report options as a JSON/YAML mapping"
    )

    parser.add_argument(
        "--katago", "-k",
        type=str,
        default=None,
        help="KataGo paths as a JSON/YAML mapping"
    )

    parser.add_argument(
        "--save", "-s",
        action="store_true",
        help="Save KataGo responses to '<name>-responses.json'"
    )

    parser.add_argument(
        "--file", "-f",
        type=str,
        default=None,
        help="Analyze a saved responses file instead of running KataGo"
    )

    parser.add_argument(
        "--revisit", "-r",
        action="store_true",
        help="Analyze turns before sharp win rate drops again with more visits"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to the config file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser.parse_args(args)


def parse_mapping(text: Optional[str], option: str) -> Dict[str, Any]:
    """Parse a relaxed JSON mapping such as '{maxVisits: 400}'."""
    if not text:
        return {}
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid {option} option: {e}")
    if not isinstance(value, dict):
        raise ValueError(f"Invalid {option} option, expected a mapping: {text}")
    return value


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Merge command line options into the loaded configuration."""
    try:
        report = dataclasses.replace(config.report, **parse_mapping(args.sgf, "--sgf"))
        katago = dataclasses.replace(config.katago, **parse_mapping(args.katago, "--katago"))
    except TypeError as e:
        raise ValueError(f"Unknown option: {e}")

    analysis = dataclasses.replace(
        config.analysis,
        options={**config.analysis.options, **parse_mapping(args.analysis, "--analysis")},
    )
    revisit = config.revisit
    if args.revisit:
        revisit = dataclasses.replace(revisit, enabled=True)

    return dataclasses.replace(
        config,
        analysis=analysis,
        report=report,
        katago=katago,
        revisit=revisit,
    )


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        stream=sys.stderr,
    )


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)
    setup_logging(parsed.verbose)

    if parsed.file and parsed.sgf_paths:
        print(f"Error: -f can't be used with SGF files: {parsed.sgf_paths}", file=sys.stderr)
        return 1
    if not parsed.file and not parsed.sgf_paths:
        print("Error: Please specify SGF files or -f option.", file=sys.stderr)
        print("Use --help for usage information.", file=sys.stderr)
        return 1

    # Load config
    try:
        config = apply_overrides(load_config(parsed.config), parsed)
        analyzer = SGFAnalyzer(config=config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Please create a config file or specify --config path.", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        if parsed.file:
            games = [analyzer.analyze_sidecar(parsed.file)]
        else:
            games = analyzer.analyze_files(parsed.sgf_paths, save_responses=parsed.save)
    except KataGoError as e:
        print(f"KataGo failed: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130

    for game in games:
        print(game.report)

    if parsed.sgf_paths and len(games) < len(parsed.sgf_paths):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
