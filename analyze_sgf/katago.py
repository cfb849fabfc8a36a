"""
KataGo Parallel Analysis Engine communication module.

Runs `katago analysis` as a subprocess: all queries of a batch are written
to stdin at once, and the newline-delimited JSON responses are read from
stdout until the engine exits.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from .config import KataGoConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Exceptions
# ============================================================================

class KataGoError(Exception):
    """Base exception for KataGo errors."""
    pass


class KataGoStartupError(KataGoError):
    """Raised when KataGo fails to start."""
    pass


class KataGoProcessError(KataGoError):
    """Raised when the KataGo process fails."""
    pass


class KataGoResponseError(KataGoError):
    """Raised when KataGo answers with an error or nothing at all."""

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.payload = payload


# ============================================================================
# KataGo Analysis Engine Wrapper
# ============================================================================

class KataGoAnalysisEngine:
    """
    One-shot KataGo analysis engine runner.

    Usage:
        engine = KataGoAnalysisEngine(config.katago)
        responses = engine.analyze([query.to_json() for query in queries])
    """

    def __init__(self, config: KataGoConfig):
        """
        Initialize the engine wrapper.

        Args:
            config: KataGo configuration with paths to executable, model, and config
        """
        self.config = config

    def command(self) -> List[str]:
        """Build the analysis engine command line."""
        cmd = [
            str(Path(self.config.katago_path)),
            "analysis",
            "-model", str(Path(self.config.model_path)),
            "-config", str(Path(self.config.config_path)),
        ]
        cmd.extend(self.config.arguments)
        return cmd

    def analyze(self, queries: Sequence[str], timeout: Optional[float] = None) -> str:
        """
        Send JSON queries and collect every response.

        Args:
            queries: One JSON query per element
            timeout: Seconds to wait for KataGo (None = no limit)

        Returns:
            Raw response stream (newline-delimited JSON)

        Raises:
            KataGoStartupError: If KataGo cannot be started
            KataGoProcessError: If KataGo exits with an error
        """
        cmd = self.command()
        logger.info(f"Starting KataGo analysis engine: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
            )
        except FileNotFoundError:
            raise KataGoStartupError(
                f"KataGo executable not found: {self.config.katago_path}"
            )
        except PermissionError:
            raise KataGoStartupError(
                f"Permission denied executing: {self.config.katago_path}"
            )

        payload = "".join(query + "\n" for query in queries)
        try:
            stdout, stderr = process.communicate(payload, timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            raise KataGoProcessError(f"KataGo did not finish within {timeout} seconds")

        if process.returncode != 0:
            tail = "\n".join(stderr.strip().splitlines()[-5:])
            raise KataGoProcessError(
                f"KataGo exited with code {process.returncode}: {tail}"
            )

        logger.info(f"KataGo analysis engine finished ({len(queries)} queries)")
        return stdout

    def __repr__(self) -> str:
        return f"KataGoAnalysisEngine(path={self.config.katago_path})"
