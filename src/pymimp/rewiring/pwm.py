"""
Matrix similarity scoring of sequence windows against kinase PWMs.

The score follows the MATCH matrix similarity score (Kel et al., 2003):
each position is weighted by its information content and the weighted
match is rescaled between the worst and best achievable sequence, giving a
value in [0, 1]. Positions holding padding or unknown residues are left out
of all three sums.

Windows whose central residue is not S, T or Y get an undefined (NaN) score
unless centre scoring is explicitly requested.
"""

from typing import Dict, Iterable, Sequence, Union

import numpy as np

from ..errors import InputValidationError
from .models import PWM


AMINO_ACIDS = "ACDEFGHIKLMNPQRSTVWY"

PHOSPHO_RESIDUES = frozenset("STY")

# Standard amino acid background frequencies (from UniProt)
AA_BACKGROUND_FREQ = {
    "A": 0.0826, "R": 0.0553, "N": 0.0406, "D": 0.0546, "C": 0.0137,
    "Q": 0.0393, "E": 0.0674, "G": 0.0708, "H": 0.0227, "I": 0.0593,
    "L": 0.0966, "K": 0.0583, "M": 0.0242, "F": 0.0386, "P": 0.0470,
    "S": 0.0656, "T": 0.0534, "W": 0.0109, "Y": 0.0292, "V": 0.0687,
}

DEGENERATE_GROUPS = ("DE", "KR", "ILMV")


def background_vector(alphabet: str) -> np.ndarray:
    """Background frequency for each letter of a PWM alphabet."""
    uniform = 1.0 / len(alphabet)
    return np.array([AA_BACKGROUND_FREQ.get(aa, uniform) for aa in alphabet])


def information_content(pwm: PWM) -> np.ndarray:
    """Relative entropy of each PWM position against the background, in bits."""
    bg = background_vector(pwm.alphabet)
    freqs = pwm.matrix
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = freqs * np.log2(freqs / bg)
    # 0 * log(0) contributes nothing
    terms[freqs <= 0] = 0.0
    return terms.sum(axis=1)


def degenerate_pwm(pwm: PWM, groups: Iterable[str] = DEGENERATE_GROUPS) -> PWM:
    """Collapse groups of similar residues in a PWM.

    Every member of a group receives the group's summed frequency, after
    which each position is renormalised to sum to 1.

    Example:
        >>> degenerate_pwm(pwm, groups=["DE", "KR"])
    """
    matrix = pwm.matrix.copy()
    for group in groups:
        cols = [pwm.alphabet.index(aa) for aa in group if aa in pwm.alphabet]
        if len(cols) < 2:
            continue
        summed = matrix[:, cols].sum(axis=1)
        matrix[:, cols] = summed[:, None]

    totals = matrix.sum(axis=1, keepdims=True)
    totals[totals == 0] = 1.0
    return PWM(alphabet=pwm.alphabet, matrix=matrix / totals)


def encode_windows(windows: Sequence[str], pwm: PWM) -> np.ndarray:
    """Encode windows as alphabet indices, -1 for padding/unknown residues."""
    lookup: Dict[str, int] = {aa: i for i, aa in enumerate(pwm.alphabet)}
    encoded = np.full((len(windows), pwm.width), -1, dtype=int)

    for row, window in enumerate(windows):
        if len(window) != pwm.width:
            raise InputValidationError(
                f"Window '{window}' has length {len(window)}, PWM width is {pwm.width}"
            )
        encoded[row] = [lookup.get(aa, -1) for aa in window.upper()]

    return encoded


def mss(
    windows: Union[str, Sequence[str]],
    pwm: PWM,
    include_center: bool = False,
) -> Union[float, np.ndarray]:
    """Matrix similarity score of one or more windows.

    Args:
        windows: A window or a sequence of windows, each as wide as the PWM
        pwm: Kinase position weight matrix
        include_center: Score windows regardless of their central residue

    Returns:
        A float for a single window, otherwise an array of scores. NaN marks
        an undefined score.
    """
    single = isinstance(windows, str)
    if single:
        windows = [windows]
    windows = list(windows)

    if not windows:
        return np.empty(0)

    encoded = encode_windows(windows, pwm)
    known = encoded >= 0
    safe = np.where(known, encoded, 0)

    weighted = pwm.matrix * information_content(pwm)[:, None]
    cols = np.arange(pwm.width)

    current = np.where(known, weighted[cols, safe], 0.0).sum(axis=1)
    best = np.where(known, weighted.max(axis=1), 0.0).sum(axis=1)
    worst = np.where(known, weighted.min(axis=1), 0.0).sum(axis=1)
    span = best - worst

    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(span > 0, (current - worst) / span, np.nan)

    if not include_center:
        centers = np.array([w[pwm.center].upper() in PHOSPHO_RESIDUES for w in windows])
        scores = np.where(centers, scores, np.nan)

    if single:
        return float(scores[0])
    return scores

