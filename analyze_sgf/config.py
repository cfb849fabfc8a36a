"""
Configuration management for analyze-sgf.

Loads configuration from a YAML file and provides typed access.
Supports both Mac (Darwin) and Linux KataGo installs with automatic detection.
"""

import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


def get_platform() -> str:
    """
    Detect the current operating system.

    Returns:
        'mac' for macOS/Darwin, 'linux' for Linux
    """
    system = platform.system().lower()
    if system == 'darwin':
        return 'mac'
    elif system == 'linux':
        return 'linux'
    else:
        # Default to linux for other Unix-like systems
        return 'linux'


@dataclass
class KataGoConfig:
    """KataGo engine configuration."""
    katago_path: str
    model_path: str
    config_path: str
    arguments: List[str] = field(default_factory=list)


@dataclass
class AnalysisConfig:
    """KataGo query options (passed through to the engine)."""
    options: Dict[str, Any] = field(default_factory=lambda: {"rules": "korean", "maxVisits": 400})
    default_komi: Optional[float] = None

    @property
    def max_visits(self) -> Optional[int]:
        return self.options.get("maxVisits")


@dataclass
class RevisitConfig:
    """Second pass over turns whose win rate drops sharply."""
    enabled: bool = False
    winrate_drop: float = 10.0  # Percent
    max_visits: int = 1600


@dataclass
class ReportConfig:
    """Annotated SGF and report parameters (win rate drops in percent)."""
    file_suffix: str = "-analyzed"
    max_winrate_drop_for_good_move: float = 2.0
    min_winrate_drop_for_bad_move: float = 5.0
    min_winrate_drop_for_bad_hot_spot: float = 20.0
    min_winrate_drop_for_variations: float = 5.0
    max_variations_for_each_move: int = 10


@dataclass
class AppConfig:
    """Main application configuration."""
    katago: KataGoConfig
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    revisit: RevisitConfig = field(default_factory=RevisitConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    def get_visits(self) -> Optional[int]:
        """Highest visit count used for any turn."""
        visits = self.analysis.max_visits
        if self.revisit.enabled and (visits is None or self.revisit.max_visits > visits):
            return self.revisit.max_visits
        return visits


def config_search_paths() -> List[Path]:
    return [
        Path.cwd() / "config.yaml",
        Path.home() / ".analyze-sgf.yml",
        get_project_root() / "config.yaml",
    ]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' section must be a mapping")
    return section


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the config file. If None, searches in:
                     1. ./config.yaml
                     2. ~/.analyze-sgf.yml
                     3. Project root config.yaml

    Returns:
        AppConfig instance

    Raises:
        FileNotFoundError: If config file not found
        ValueError: If config file is invalid
    """
    if config_path is None:
        search_paths = config_search_paths()

        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break
        else:
            raise FileNotFoundError(
                f"Config file not found. Searched in: {[str(p) for p in search_paths]}"
            )

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Config file is empty: {config_path}")

    return config_from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """Build an AppConfig from parsed YAML data."""
    # Parse KataGo config (required)
    katago_data = _section(data, "katago")
    if not katago_data:
        raise ValueError("Missing 'katago' section in config")

    # Check for multi-platform config (has 'mac' or 'linux' subsections)
    if 'mac' in katago_data or 'linux' in katago_data:
        current_platform = get_platform()
        platform_data = katago_data.get(current_platform, {})
        if not platform_data:
            raise ValueError(f"No config found for platform '{current_platform}'")
    else:
        platform_data = katago_data

    katago_config = KataGoConfig(
        katago_path=resolve_path(platform_data.get("katago_path", "katago")),
        model_path=resolve_path(platform_data.get("model_path", "")),
        config_path=resolve_path(platform_data.get("config_path", "")),
        arguments=list(platform_data.get("arguments", [])),
    )

    analysis_data = dict(_section(data, "analysis"))
    default_komi = analysis_data.pop("default_komi", None)
    analysis_config = AnalysisConfig(
        options=analysis_data or AnalysisConfig().options,
        default_komi=default_komi,
    )

    revisit_data = _section(data, "revisit")
    revisit_config = RevisitConfig(
        enabled=bool(revisit_data.get("enabled", False)),
        winrate_drop=float(revisit_data.get("winrate_drop", 10.0)),
        max_visits=int(revisit_data.get("max_visits", 1600)),
    )

    report_data = _section(data, "report")
    defaults = ReportConfig()
    report_config = ReportConfig(
        file_suffix=report_data.get("file_suffix", defaults.file_suffix),
        max_winrate_drop_for_good_move=float(report_data.get(
            "max_winrate_drop_for_good_move", defaults.max_winrate_drop_for_good_move)),
        min_winrate_drop_for_bad_move=float(report_data.get(
            "min_winrate_drop_for_bad_move", defaults.min_winrate_drop_for_bad_move)),
        min_winrate_drop_for_bad_hot_spot=float(report_data.get(
            "min_winrate_drop_for_bad_hot_spot", defaults.min_winrate_drop_for_bad_hot_spot)),
        min_winrate_drop_for_variations=float(report_data.get(
            "min_winrate_drop_for_variations", defaults.min_winrate_drop_for_variations)),
        max_variations_for_each_move=int(report_data.get(
            "max_variations_for_each_move", defaults.max_variations_for_each_move)),
    )

    return AppConfig(
        katago=katago_config,
        analysis=analysis_config,
        revisit=revisit_config,
        report=report_config,
    )


def resolve_path(p: str) -> str:
    """Resolve a path relative to the project root ('~' expanded)."""
    if not p:
        return p
    path = Path(p).expanduser()
    if not path.is_absolute():
        if len(path.parts) == 1:
            # Bare names are looked up on PATH or in the working directory
            return p
        path = get_project_root() / path
    return str(path.resolve())


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent
