"""Analyzer configuration."""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .exceptions import ConfigurationError
from .exclude import ExcludePatterns

logger = logging.getLogger(__name__)


def detect_goroot() -> Optional[str]:
    """Find the Go installation root.

    Searches in order:
    1. GOROOT environment variable
    2. `go env GOROOT`, if a go binary is on PATH

    Returns:
        GOROOT directory, or None if Go is not installed
    """
    env_root = os.getenv("GOROOT")
    if env_root:
        return env_root

    binary = shutil.which("go")
    if binary is None:
        logger.info("No go binary on PATH; standard library types are unavailable")
        return None

    try:
        result = subprocess.run(
            [binary, "env", "GOROOT"],
            capture_output=True,
            text=True,
            check=False,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Failed to run go env GOROOT: {e}")
        return None

    goroot = result.stdout.strip()
    if result.returncode != 0 or not goroot:
        logger.warning(f"go env GOROOT failed: {result.stderr.strip()}")
        return None
    return goroot


@dataclass
class AnalyzerConfig:
    """Settings for one analysis run."""

    exclude: ExcludePatterns = field(default_factory=ExcludePatterns)
    goroot: Optional[str] = None
    fix: bool = False
    max_concurrent: int = 4
    follow_gitignore: bool = True

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ConfigurationError(f"max_concurrent must be at least 1, got {self.max_concurrent}")

    @classmethod
    def from_env(cls, exclude: Optional[Iterable[str]] = None, **overrides) -> "AnalyzerConfig":
        """Build a configuration from environment variables.

        Args:
            exclude: Extra exclusion patterns, appended after NLAB_EXCLUDE
            **overrides: Field values that take precedence over the environment

        Raises:
            InvalidPatternError: If an exclusion pattern is not a valid regex
            ConfigurationError: If a numeric setting is malformed
        """
        env_patterns = [p.strip() for p in os.getenv("NLAB_EXCLUDE", "").split(",") if p.strip()]
        patterns = ExcludePatterns(env_patterns + list(exclude or []))

        try:
            max_concurrent = int(os.getenv("NLAB_MAX_CONCURRENT", "4"))
        except ValueError as e:
            raise ConfigurationError(f"NLAB_MAX_CONCURRENT must be an integer: {e}") from e

        settings = {
            "goroot": os.getenv("GOROOT") or None,
            "max_concurrent": max_concurrent,
            "follow_gitignore": os.getenv("NLAB_FOLLOW_GITIGNORE", "true").lower() == "true",
        }
        settings.update({key: value for key, value in overrides.items() if value is not None})
        return cls(exclude=patterns, **settings)
