"""
Input validation for rewiring predictions.

Threshold checks raise before any scoring work. Data consistency checks
on mutations and phosphosites are non-fatal: they return warnings that the
caller logs, and the offending rows are filtered later in the pipeline.
"""

import math
import numbers
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from pymimp.errors import InputValidationError
from pymimp.rewiring.models import KinaseModel, Mutation, PhosphoSite
from pymimp.rewiring.pwm import PHOSPHO_RESIDUES


def check_thresholds(prob_thresh: float, log2_thresh: Optional[float] = None) -> None:
    """
    Ensure prediction thresholds are usable.

    Below 0.5 both a gain and a loss could pass the probability threshold
    for the same row.

    Raises:
        InputValidationError: If prob_thresh is outside [0.5, 1] or
            log2_thresh is negative
    """
    if (
        not isinstance(prob_thresh, numbers.Real)
        or isinstance(prob_thresh, bool)
        or math.isnan(prob_thresh)
        or not 0.5 <= prob_thresh <= 1
    ):
        raise InputValidationError(
            f'Probability threshold "prob_thresh" must be between 0.5 and 1, got {prob_thresh!r}'
        )
    if log2_thresh is not None and not (
        isinstance(log2_thresh, numbers.Real) and log2_thresh >= 0
    ):
        raise InputValidationError(
            f'Log2 threshold "log2_thresh" must be non-negative, got {log2_thresh!r}'
        )


def check_flank(flank: int) -> None:
    """Raise InputValidationError unless flank is a positive integer."""
    if not isinstance(flank, numbers.Integral) or isinstance(flank, bool) or flank < 1:
        raise InputValidationError(f"Flank must be a positive integer, got {flank!r}")


def check_pwm_widths(models: Iterable[KinaseModel], flank: int) -> None:
    """
    Ensure every model scores windows of 2 * flank + 1 residues.

    Raises:
        InputValidationError: Naming the flank and the offending models
    """
    width = 2 * flank + 1
    mismatched = [f"{m.name} ({m.pwm.width})" for m in models if m.pwm.width != width]
    if mismatched:
        raise InputValidationError(
            f"Flank {flank} gives windows of width {width}, but these PWMs differ: "
            + ", ".join(mismatched)
        )


def validate_mutation_mapping(
    mutations: Sequence[Mutation],
    sequences: Mapping[str, str],
) -> Tuple[bool, List[str], List[str]]:
    """
    Check that mutations map to their stated reference residue.

    Args:
        mutations: Mutations to check
        sequences: Full-length sequences keyed by gene

    Returns:
        Tuple of (is_valid, errors, warnings)
        - is_valid: True if every mutation maps to its reference residue
        - errors: Always empty; mismatches are not fatal
        - warnings: One message per mutation that does not map
    """
    errors: List[str] = []
    warnings: List[str] = []

    for mut in mutations:
        seq = sequences.get(mut.gene)
        if seq is None:
            warnings.append(f"{mut.gene} {mut.label}: no sequence available")
        elif mut.position > len(seq):
            warnings.append(
                f"{mut.gene} {mut.label}: position exceeds sequence length ({len(seq)})"
            )
        elif seq[mut.position - 1] != mut.ref_aa:
            warnings.append(
                f"{mut.gene} {mut.label}: reference residue is "
                f"'{seq[mut.position - 1]}' in sequence"
            )

    return len(warnings) == 0, errors, warnings


def validate_psites_sty(
    sites: Sequence[PhosphoSite],
    sequences: Mapping[str, str],
) -> Tuple[bool, List[str], List[str]]:
    """
    Check that phosphosites sit on S, T or Y residues.

    Returns:
        Tuple of (is_valid, errors, warnings), as validate_mutation_mapping
    """
    errors: List[str] = []
    warnings: List[str] = []

    for site in sites:
        seq = sequences.get(site.gene)
        if seq is None:
            warnings.append(f"{site.gene} {site.position}: no sequence available")
        elif site.position > len(seq):
            warnings.append(
                f"{site.gene} {site.position}: position exceeds sequence length ({len(seq)})"
            )
        elif seq[site.position - 1] not in PHOSPHO_RESIDUES:
            warnings.append(
                f"{site.gene} {site.position}: residue '{seq[site.position - 1]}' "
                "is not S, T or Y"
            )

    return len(warnings) == 0, errors, warnings
