"""
pymimp Configuration Module

Centralized configuration for rewiring predictions.

Configuration Priority (highest to lowest):
1. Explicit arguments of the prediction functions (predict_rewiring, ...)
2. Environment variables, which are applied on top of any value passed
   to the Config constructor
3. Constructor arguments and defaults

Environment Variables:
    PYMIMP_MODEL_DIR        - Directory holding kinase model bundles
                              (default: ~/.pymimp/models)
    PYMIMP_MODEL_DATA       - Default model data set (hconf, hconf-fam, lconf)
    PYMIMP_FLANK            - Residues on each side of a phosphosite
    PYMIMP_PROB_THRESH      - Probability threshold for gains and losses
    PYMIMP_LOG2_THRESH      - Minimum absolute log2 score ratio
    PYMIMP_POSTERIOR_THRESH - Foreground posterior threshold for site prediction
    PYMIMP_INCLUDE_CENTER   - Keep mutations of the central residue (1/true/yes)
    PYMIMP_CORES            - Number of worker processes
    PYMIMP_PROGRESS         - Show progress bars (1/true/yes)
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

# Singleton config instance
_config_instance: Optional["Config"] = None

DEFAULT_MODEL_DIR = Path.home() / ".pymimp" / "models"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class Config:
    """
    pymimp configuration container.

    Attributes:
        flank: Residues on each side of a phosphosite window
        pad_char: Character filling windows past sequence ends
        prob_thresh: Probability threshold for gains and losses, in [0.5, 1]
        log2_thresh: Minimum absolute log2 ratio of mutant to wild-type score
        posterior_thresh: Foreground posterior threshold for site prediction
        include_center: Keep mutations hitting the central residue
        cores: Number of worker processes for per-kinase scoring
        model_data: Default model data set id
        model_dir: Directory holding model bundles
        show_progress: Show progress bars while scoring
    """

    # Windows
    flank: int = 7
    pad_char: str = "-"

    # Thresholds
    prob_thresh: float = 0.5
    log2_thresh: float = 1.0
    posterior_thresh: float = 0.8
    include_center: bool = False

    # Resources
    cores: int = 1

    # Models
    model_data: str = "hconf"
    model_dir: Optional[Path] = None

    show_progress: bool = True

    # Internal state
    _initialized: bool = field(default=False, repr=False)

    def __post_init__(self):
        """Initialize configuration from environment."""
        if not self._initialized:
            self._load_from_environment()
            self.model_dir = Path(self.model_dir) if self.model_dir else DEFAULT_MODEL_DIR
            self._initialized = True

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""

        if os.environ.get("PYMIMP_MODEL_DIR"):
            self.model_dir = Path(os.environ["PYMIMP_MODEL_DIR"])
        if os.environ.get("PYMIMP_MODEL_DATA"):
            self.model_data = os.environ["PYMIMP_MODEL_DATA"]

        # Numeric settings; invalid values keep the default
        for env, attr, cast in (
            ("PYMIMP_FLANK", "flank", int),
            ("PYMIMP_CORES", "cores", int),
            ("PYMIMP_PROB_THRESH", "prob_thresh", float),
            ("PYMIMP_LOG2_THRESH", "log2_thresh", float),
            ("PYMIMP_POSTERIOR_THRESH", "posterior_thresh", float),
        ):
            if os.environ.get(env):
                try:
                    setattr(self, attr, cast(os.environ[env]))
                except ValueError:
                    logger.debug(f"Ignoring invalid {env}={os.environ[env]!r}")

        if os.environ.get("PYMIMP_INCLUDE_CENTER"):
            self.include_center = os.environ["PYMIMP_INCLUDE_CENTER"].lower() in _TRUE_VALUES
        if os.environ.get("PYMIMP_PROGRESS"):
            self.show_progress = os.environ["PYMIMP_PROGRESS"].lower() in _TRUE_VALUES

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if self.flank < 1:
            errors.append(f"Flank must be at least 1, got {self.flank}")
        if not 0.5 <= self.prob_thresh <= 1:
            errors.append(
                f"Probability threshold must be between 0.5 and 1, got {self.prob_thresh}"
            )
        if self.log2_thresh < 0:
            errors.append(f"Log2 threshold must be non-negative, got {self.log2_thresh}")
        if not 0 <= self.posterior_thresh <= 1:
            errors.append(
                f"Posterior threshold must be between 0 and 1, got {self.posterior_thresh}"
            )
        if self.cores < 1:
            errors.append(f"Cores must be at least 1, got {self.cores}")

        if not self.model_dir:
            errors.append("Model directory not configured. Set PYMIMP_MODEL_DIR.")
        elif not self.model_dir.exists():
            errors.append(f"Model directory not found: {self.model_dir}")

        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "flank": self.flank,
            "pad_char": self.pad_char,
            "prob_thresh": self.prob_thresh,
            "log2_thresh": self.log2_thresh,
            "posterior_thresh": self.posterior_thresh,
            "include_center": self.include_center,
            "cores": self.cores,
            "model_data": self.model_data,
            "model_dir": str(self.model_dir) if self.model_dir else None,
            "show_progress": self.show_progress,
        }

    def print_status(self) -> None:
        """Print configuration status to stdout."""
        print("pymimp Configuration Status")
        print("=" * 50)

        if self.model_dir is None:
            model_dir = "[ ] Not configured"
        elif self.model_dir.exists():
            model_dir = f"[✓] {self.model_dir}"
        else:
            model_dir = f"[✗] {self.model_dir} (NOT FOUND)"

        print(f"Model dir:   {model_dir}")
        print(f"Model data:  {self.model_data}")
        print(f"Flank:       {self.flank}")
        print(f"Thresholds:  prob={self.prob_thresh} log2={self.log2_thresh} "
              f"posterior={self.posterior_thresh}")
        print(f"Center:      {'included' if self.include_center else 'excluded'}")
        print(f"Cores:       {self.cores}")
        print("=" * 50)


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config: The singleton configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config() -> None:
    """Reset the global configuration instance (useful for testing)."""
    global _config_instance
    _config_instance = None
