"""
pymimp: Mutation IMpact on Phosphorylation

Predicts how point mutations rewire kinase-substrate phosphorylation by
comparing motif scores of wild-type and mutated phosphosite windows and
expressing the change as a probability of loss or gain.

If you use MIMP in your research, please cite:
Wagih O, Reimand J, Bader GD (2015). MIMP: predicting the impact of mutations
on kinase-substrate phosphorylation. Nat. Methods 12(6):531-3.
"""

__version__ = "1.2.0"

from pymimp.config import Config, get_config
from pymimp.errors import (
    InputValidationError,
    LengthMismatch,
    ModelDataError,
    PymimpError,
    UnknownModel,
)
from pymimp.logging import setup_logging, get_logger
from pymimp.rewiring import predict_kinase_phosphosites, predict_rewiring, results_to_frame

__all__ = [
    "Config",
    "get_config",
    "InputValidationError",
    "LengthMismatch",
    "ModelDataError",
    "PymimpError",
    "UnknownModel",
    "setup_logging",
    "get_logger",
    "predict_kinase_phosphosites",
    "predict_rewiring",
    "results_to_frame",
    "__version__",
]
