"""
pymimp Rewiring Module: effects of point mutations on kinase-substrate phosphorylation.

A mutation inside the flanking window of a phosphosite can create or destroy
a kinase recognition motif. This module scores wild-type and mutant windows
against kinase position weight matrices and turns the score change into a
probability of phosphorylation loss or gain.

Key Features:
- Map mutations onto phosphosite flanking windows (pSNVs)
- Score windows with information-weighted PWMs
- Foreground/background Gaussian mixture posteriors with an AUC-derived prior
- Parallel scoring over kinase models, ranked results

Example Usage:
    >>> from pymimp.rewiring import (
    ...     read_mutations, read_psites, read_sequences, predict_rewiring, results_to_frame
    ... )
    >>> events = predict_rewiring(
    ...     read_mutations("sample_muts.tab"),
    ...     read_sequences("sample_seqs.fa"),
    ...     read_psites("sample_phosphosites.tab"),
    ...     model_data="hconf",
    ... )
    >>> df = results_to_frame(events)
"""

# Data models
from .models import (
    CandidateRewiringEvent,
    Effect,
    GMMComponent,
    GMMParams,
    KinaseModel,
    MappingResult,
    Mutation,
    PhosphoSite,
    PosteriorResult,
    PWM,
    ScoredEvent,
)

# Windows and mapping
from .window import flanking_sequence, flanking_sequences
from .mapper import find_overlaps, map_psnvs

# Scoring
from .pwm import degenerate_pwm, information_content, mss
from .mixture import gmm_density, make_gmm_params
from .posterior import foreground_prior, rewiring_posterior

# Input/output
from .io import (
    get_model_data_path,
    load_models,
    model_from_dict,
    parse_mutation,
    read_mutations,
    read_psites,
    read_sequences,
    results_to_frame,
    save_models,
    select_models,
    write_results,
)

# Pipeline
from .pipeline import (
    log2_ratio,
    predict_kinase_phosphosites,
    predict_rewiring,
    rank_events,
    run_rewiring,
    score_kinase,
)


__all__ = [
    # Models
    "CandidateRewiringEvent",
    "Effect",
    "GMMComponent",
    "GMMParams",
    "KinaseModel",
    "MappingResult",
    "Mutation",
    "PhosphoSite",
    "PosteriorResult",
    "PWM",
    "ScoredEvent",
    # Windows and mapping
    "flanking_sequence",
    "flanking_sequences",
    "find_overlaps",
    "map_psnvs",
    # Scoring
    "degenerate_pwm",
    "information_content",
    "mss",
    "gmm_density",
    "make_gmm_params",
    "foreground_prior",
    "rewiring_posterior",
    # Input/output
    "get_model_data_path",
    "load_models",
    "model_from_dict",
    "parse_mutation",
    "read_mutations",
    "read_psites",
    "read_sequences",
    "results_to_frame",
    "save_models",
    "select_models",
    "write_results",
    # Pipeline
    "log2_ratio",
    "predict_kinase_phosphosites",
    "predict_rewiring",
    "rank_events",
    "run_rewiring",
    "score_kinase",
]
