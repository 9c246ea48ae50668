"""
Data models for kinase rewiring prediction.

Each pipeline stage has its own record type:

    Mutation + PhosphoSite -> CandidateRewiringEvent -> ScoredEvent

Records are frozen; a later stage is built from the earlier one rather than
by mutating it. Kinase models hold numpy arrays and are shared read-only
between scoring tasks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np


class Effect(Enum):
    """Direction of a predicted rewiring event."""
    GAIN = "gain"
    LOSS = "loss"


@dataclass(frozen=True)
class Mutation:
    """A single amino acid substitution.

    Attributes:
        gene: Gene or protein identifier
        position: 1-based residue position
        ref_aa: Reference amino acid (one-letter code)
        alt_aa: Alternative amino acid (one-letter code)
    """
    gene: str
    position: int
    ref_aa: str
    alt_aa: str

    @property
    def label(self) -> str:
        """Mutation in X123Y notation."""
        return f"{self.ref_aa}{self.position}{self.alt_aa}"


@dataclass(frozen=True)
class PhosphoSite:
    """A phosphorylation site.

    Attributes:
        gene: Gene or protein identifier
        position: 1-based position of the phosphorylated residue
        sequence_window: Pre-extracted flanking window, used when no
            full-length sequence is available
        symbol: Optional gene symbol shown next to accession-style ids
    """
    gene: str
    position: int
    sequence_window: Optional[str] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class CandidateRewiringEvent:
    """A mutation falling inside the flanking window of a phosphosite.

    Attributes:
        gene: Gene label reported in results
        mutation: The overlapping mutation
        site_position: Position of the phosphosite
        mutation_offset: mutation.position - site_position (0 = central residue)
        wt_window: Wild-type flanking window
        mt_window: wt_window with the alternative residue substituted
    """
    gene: str
    mutation: Mutation
    site_position: int
    mutation_offset: int
    wt_window: str
    mt_window: str


@dataclass(frozen=True)
class MappingResult:
    """Output of mapping mutations onto phosphosite windows.

    Attributes:
        candidates: One entry per overlapping (mutation, site) pair
        n_overlaps: Overlapping pairs found before the reference check
        n_reference_mismatch: Pairs dropped because the window residue did
            not match the mutation's reference residue
        n_missing_sequence: Pairs dropped because no window could be built
    """
    candidates: List[CandidateRewiringEvent] = field(default_factory=list)
    n_overlaps: int = 0
    n_reference_mismatch: int = 0
    n_missing_sequence: int = 0


@dataclass(frozen=True)
class GMMComponent:
    """One weighted normal component of a Gaussian mixture."""
    mean: float
    sd: float
    weight: float


GMMParams = Tuple[GMMComponent, ...]


@dataclass(frozen=True, eq=False)
class PWM:
    """Position weight matrix.

    Attributes:
        alphabet: Residue letters, one per matrix column
        matrix: Array of shape (width, len(alphabet)) with residue
            frequencies per window position
    """
    alphabet: str
    matrix: np.ndarray

    def __post_init__(self):
        matrix = np.asarray(self.matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[1] != len(self.alphabet):
            raise ValueError(
                f"PWM matrix shape {matrix.shape} does not match alphabet of "
                f"{len(self.alphabet)} residues"
            )
        object.__setattr__(self, "matrix", matrix)

    @property
    def width(self) -> int:
        """Number of window positions covered by the matrix."""
        return self.matrix.shape[0]

    @property
    def center(self) -> int:
        """0-based index of the central (phosphorylated) position."""
        return self.width // 2


@dataclass(frozen=True, eq=False)
class KinaseModel:
    """A pre-trained kinase specificity model.

    Attributes:
        name: Kinase name
        family: Kinase family, with subfamily joined by "_" when known
        pwm: Position weight matrix of the kinase's substrates
        fg_params: Score mixture of known substrates (foreground)
        bg_params: Score mixture of generic sequence (background)
        auc: Discriminative power of the model, in (0, 1]
        nseqs: Number of sequences the PWM was built from
    """
    name: str
    family: str
    pwm: PWM
    fg_params: GMMParams
    bg_params: GMMParams
    auc: float = 1.0
    nseqs: int = 0


@dataclass(frozen=True)
class ScoredEvent:
    """A candidate rewiring event scored against one kinase model."""
    gene: str
    mutation: Mutation
    site_position: int
    mutation_offset: int
    wt_window: str
    mt_window: str
    score_wt: float
    score_mt: float
    log_ratio: float
    ploss: float
    pgain: float
    prob: float
    effect: Effect
    pwm: str
    pwm_fam: str
    nseqs: int

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateRewiringEvent,
        model: KinaseModel,
        **scores,
    ) -> "ScoredEvent":
        """Build a scored event from a candidate and the model that scored it."""
        return cls(
            gene=candidate.gene,
            mutation=candidate.mutation,
            site_position=candidate.site_position,
            mutation_offset=candidate.mutation_offset,
            wt_window=candidate.wt_window,
            mt_window=candidate.mt_window,
            pwm=model.name,
            pwm_fam=model.family,
            nseqs=model.nseqs,
            **scores,
        )

    def to_dict(self) -> Dict:
        """Convert to a report row."""
        return {
            "gene": self.gene,
            "mutation": self.mutation.label,
            "psite_pos": self.site_position,
            "mut_dist": self.mutation_offset,
            "wt": self.wt_window,
            "mt": self.mt_window,
            "score_wt": self.score_wt,
            "score_mt": self.score_mt,
            "log_ratio": self.log_ratio,
            "pwm": self.pwm,
            "pwm_fam": self.pwm_fam,
            "nseqs": self.nseqs,
            "prob": self.prob,
            "effect": self.effect.value,
        }


@dataclass
class PosteriorResult:
    """Likelihoods and posteriors for a batch of scores.

    Wild-type only results fill the l_wt_* and post_wt_* arrays. Joint
    results always fill ploss and pgain; the remaining arrays are only kept
    when intermediate values were requested.
    """
    l_wt_fg: Optional[np.ndarray] = None
    l_wt_bg: Optional[np.ndarray] = None
    post_wt_fg: Optional[np.ndarray] = None
    post_wt_bg: Optional[np.ndarray] = None
    l_mt_fg: Optional[np.ndarray] = None
    l_mt_bg: Optional[np.ndarray] = None
    post_mt_fg: Optional[np.ndarray] = None
    post_mt_bg: Optional[np.ndarray] = None
    ploss: Optional[np.ndarray] = None
    pgain: Optional[np.ndarray] = None

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Return the populated arrays keyed by name."""
        return {k: v for k, v in self.__dict__.items() if v is not None}
