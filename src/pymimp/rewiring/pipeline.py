"""
Kinase rewiring pipeline.

For every kinase model independently:

1. Score wild-type and mutant windows against the model's PWM
2. Drop candidates with undefined scores on both sides
3. Compute log2(score_mt / score_wt)
4. Compute ploss and pgain from the model's score mixtures
5. Keep rows where ploss or pgain reaches the probability threshold
6. Keep rows whose |log ratio| reaches the log2 threshold (or is undefined)
7. Classify as loss (checked first) or gain

Per-kinase results are merged after all models finished and ranked by
probability. Models share nothing mutable, so they are scored in parallel
with joblib when more than one core is requested; any worker exception
aborts the whole run.
"""

import logging
from itertools import chain
from typing import Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from pymimp.config import Config, get_config
from pymimp.errors import InputValidationError
from pymimp.validation import (
    check_flank,
    check_pwm_widths,
    check_thresholds,
    validate_mutation_mapping,
    validate_psites_sty,
)
from .io import get_model_data_path, load_models, select_models
from .mapper import map_psnvs
from .models import (
    CandidateRewiringEvent,
    Effect,
    KinaseModel,
    Mutation,
    PhosphoSite,
    ScoredEvent,
)
from .posterior import rewiring_posterior
from .pwm import DEGENERATE_GROUPS, degenerate_pwm, mss
from .window import flanking_sequences

logger = logging.getLogger(__name__)

ModelStore = Union[Mapping[str, KinaseModel], Sequence[KinaseModel]]


def _model_list(models: ModelStore) -> List[KinaseModel]:
    if isinstance(models, Mapping):
        return list(models.values())
    return list(models)


def log2_ratio(score_wt: np.ndarray, score_mt: np.ndarray) -> np.ndarray:
    """log2(score_mt / score_wt), NaN where either score is undefined or zero."""
    score_wt = np.asarray(score_wt, dtype=float)
    score_mt = np.asarray(score_mt, dtype=float)
    defined = (score_wt > 0) & (score_mt > 0)

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.log2(score_mt / score_wt)
    return np.where(defined, ratio, np.nan)


def score_kinase(
    model: KinaseModel,
    candidates: Sequence[CandidateRewiringEvent],
    prob_thresh: float = 0.5,
    log2_thresh: float = 1.0,
    include_center: bool = False,
    degenerate_pwms: bool = False,
    degenerate_groups: Iterable[str] = DEGENERATE_GROUPS,
) -> Optional[List[ScoredEvent]]:
    """
    Predict rewiring events of one kinase.

    Args:
        model: Kinase model
        candidates: Candidate rewiring events from map_psnvs
        prob_thresh: Probability threshold of gains and losses, in [0.5, 1]
        log2_thresh: Minimum absolute log2 ratio of mutant to wild-type score
        include_center: Score windows whose central residue is not S, T or Y
        degenerate_pwms: Collapse similar residues in the PWM before scoring
        degenerate_groups: Residue groups collapsed by degenerate_pwms

    Returns:
        Scored events passing both thresholds, or None when nothing passes
    """
    check_thresholds(prob_thresh, log2_thresh)

    if not candidates:
        return None

    pwm = model.pwm
    if degenerate_pwms:
        pwm = degenerate_pwm(pwm, degenerate_groups)

    score_wt = mss([c.wt_window for c in candidates], pwm, include_center=include_center)
    score_mt = mss([c.mt_window for c in candidates], pwm, include_center=include_center)

    keep = ~(np.isnan(score_wt) & np.isnan(score_mt))
    if not keep.any():
        return None

    kept = [c for c, k in zip(candidates, keep) if k]
    score_wt = score_wt[keep]
    score_mt = score_mt[keep]
    log_ratio = log2_ratio(score_wt, score_mt)

    post = rewiring_posterior(score_wt, score_mt, model.fg_params, model.bg_params, model.auc)

    passes = (post.ploss >= prob_thresh) | (post.pgain >= prob_thresh)
    if not passes.any():
        return None

    passes &= np.isnan(log_ratio) | (np.abs(log_ratio) >= log2_thresh)
    if not passes.any():
        return None

    events = []
    for i in np.flatnonzero(passes):
        ploss = float(post.ploss[i])
        pgain = float(post.pgain[i])
        effect = Effect.LOSS if ploss >= prob_thresh else Effect.GAIN
        events.append(ScoredEvent.from_candidate(
            kept[i],
            model,
            score_wt=float(score_wt[i]),
            score_mt=float(score_mt[i]),
            log_ratio=float(log_ratio[i]),
            ploss=ploss,
            pgain=pgain,
            prob=max(ploss, pgain),
            effect=effect,
        ))

    return events


def rank_events(events: Iterable[ScoredEvent]) -> List[ScoredEvent]:
    """Sort events by probability, highest first; ties keep their order."""
    return sorted(events, key=lambda e: e.prob, reverse=True)


def run_rewiring(
    models: ModelStore,
    candidates: Sequence[CandidateRewiringEvent],
    prob_thresh: float = 0.5,
    log2_thresh: float = 1.0,
    include_center: bool = False,
    cores: int = 1,
    degenerate_pwms: bool = False,
    show_progress: bool = False,
) -> Optional[List[ScoredEvent]]:
    """
    Score candidates against every kinase model and rank the results.

    Args:
        models: Kinase models, as a mapping keyed by name or a sequence
        candidates: Candidate rewiring events
        prob_thresh: Probability threshold of gains and losses, in [0.5, 1]
        log2_thresh: Minimum absolute log2 score ratio
        include_center: Score windows regardless of their central residue
        cores: Number of worker processes
        degenerate_pwms: Collapse similar residues in PWMs before scoring
        show_progress: Show a progress bar over kinase models

    Returns:
        Events of all models ranked by prob, or None if no model predicts any
    """
    check_thresholds(prob_thresh, log2_thresh)
    if cores < 1:
        raise InputValidationError(f"Cores must be at least 1, got {cores}")

    model_list = _model_list(models)
    if not model_list or not candidates:
        logger.warning("No rewiring events found")
        return None

    tasks = tqdm(
        model_list,
        desc="Predicting kinase rewiring events",
        disable=not show_progress,
    )
    kwargs = dict(
        prob_thresh=prob_thresh,
        log2_thresh=log2_thresh,
        include_center=include_center,
        degenerate_pwms=degenerate_pwms,
    )

    if cores == 1:
        scored = [score_kinase(model, candidates, **kwargs) for model in tasks]
    else:
        scored = Parallel(n_jobs=cores, prefer="processes")(
            delayed(score_kinase)(model, candidates, **kwargs) for model in tasks
        )

    scored = [events for events in scored if events]
    if not scored:
        logger.warning("No rewiring events found")
        return None

    ranked = rank_events(chain.from_iterable(scored))
    logger.info(
        f"Analysis complete with a total of {len(ranked)} predicted rewiring events "
        f"from {len(scored)} of {len(model_list)} kinase models"
    )
    return ranked


def _resolve_models(
    models: Optional[ModelStore],
    kinases: Optional[Iterable[str]],
    model_data: str,
    config: Config,
) -> ModelStore:
    if models is None:
        path = get_model_data_path(model_data, config.model_dir)
        logger.info(f"Loading specificity models from {path}")
        models = load_models(path)
    if isinstance(models, Mapping):
        return select_models(models, kinases)
    if kinases is not None:
        return select_models({m.name: m for m in models}, kinases)
    return models


def predict_rewiring(
    mutations: Sequence[Mutation],
    sequences: Optional[Mapping[str, str]],
    sites: Sequence[PhosphoSite],
    models: Optional[ModelStore] = None,
    kinases: Optional[Iterable[str]] = None,
    prob_thresh: Optional[float] = None,
    log2_thresh: Optional[float] = None,
    include_center: Optional[bool] = None,
    cores: Optional[int] = None,
    flank: Optional[int] = None,
    model_data: Optional[str] = None,
    degenerate_pwms: bool = False,
    config: Optional[Config] = None,
) -> Optional[List[ScoredEvent]]:
    """
    Predict the impact of point mutations on kinase-substrate phosphorylation.

    Args:
        mutations: Point mutations
        sequences: Full-length sequences keyed by gene, or None when the
            sites carry pre-extracted windows
        sites: Phosphosites
        models: Kinase model store; loaded from model_data when omitted
        kinases: Names of kinase models to use (default: all)
        prob_thresh: Probability threshold of gains and losses, in [0.5, 1]
        log2_thresh: Minimum absolute log2 score ratio
        include_center: Keep mutations of the central residue and score
            windows regardless of their central residue
        cores: Number of worker processes
        flank: Residues on each side of a phosphosite
        model_data: Model data set id or bundle path
        degenerate_pwms: Collapse similar residues in PWMs before scoring
        config: Configuration supplying defaults (default: get_config())

    Returns:
        Ranked scored events, or None if no pSNV or rewiring event was found

    Raises:
        InputValidationError: On invalid thresholds, before any work
        UnknownModel: If none of the requested kinases exist
    """
    config = config or get_config()
    prob_thresh = config.prob_thresh if prob_thresh is None else prob_thresh
    log2_thresh = config.log2_thresh if log2_thresh is None else log2_thresh
    include_center = config.include_center if include_center is None else include_center
    cores = config.cores if cores is None else cores
    flank = config.flank if flank is None else flank
    model_data = model_data or config.model_data

    check_thresholds(prob_thresh, log2_thresh)
    check_flank(flank)

    # Keep only genes we have site data for
    site_genes = {s.gene for s in sites}
    mutations = [m for m in mutations if m.gene in site_genes]

    if sequences is not None:
        sequences = {g: s for g, s in sequences.items() if g in site_genes}

        is_valid, _, warnings = validate_mutation_mapping(mutations, sequences)
        if not is_valid:
            logger.warning(
                f"{len(warnings)} mutations do not map to their reference residue"
            )
            for msg in warnings:
                logger.debug(msg)

        if not sites or not mutations or not sequences:
            logger.warning("No phosphorylation, mutation or sequence data remaining after filtering!")
            return None

        is_valid, _, warnings = validate_psites_sty(sites, sequences)
        if not is_valid:
            logger.warning(f"{len(warnings)} phosphosites do not map to S, T or Y")
            for msg in warnings:
                logger.debug(msg)
    else:
        mutation_genes = {m.gene for m in mutations}
        sites = [s for s in sites if s.gene in mutation_genes]

    mapping = map_psnvs(mutations, sites, sequences, flank=flank, pad=config.pad_char)
    candidates = mapping.candidates

    if not include_center:
        candidates = [c for c in candidates if c.mutation_offset != 0]

    if not candidates:
        logger.warning("No pSNVs were found!")
        return None

    logger.info(f"Found {len(candidates)} mutations in phosphosite flanking regions")

    models = _resolve_models(models, kinases, model_data, config)
    check_pwm_widths(_model_list(models), flank)

    return run_rewiring(
        models,
        candidates,
        prob_thresh=prob_thresh,
        log2_thresh=log2_thresh,
        include_center=include_center,
        cores=cores,
        degenerate_pwms=degenerate_pwms,
        show_progress=config.show_progress,
    )


def predict_kinase_phosphosites(
    sites: Sequence[PhosphoSite],
    sequences: Mapping[str, str],
    models: Optional[ModelStore] = None,
    kinases: Optional[Iterable[str]] = None,
    posterior_thresh: Optional[float] = None,
    intermediate: bool = False,
    flank: Optional[int] = None,
    model_data: Optional[str] = None,
    config: Optional[Config] = None,
) -> Optional[pd.DataFrame]:
    """
    Predict kinases of wild-type phosphosites.

    Each site window is scored against every model and assigned to the
    foreground mixture with an even prior. Sites with an undefined
    posterior never pass.

    Args:
        sites: Phosphosites
        sequences: Full-length sequences keyed by gene
        models: Kinase model store; loaded from model_data when omitted
        kinases: Names of kinase models to use (default: all)
        posterior_thresh: Minimum foreground posterior (default 0.8)
        intermediate: Also report score_wt, l_wt_fg and l_wt_bg
        flank: Residues on each side of a phosphosite
        model_data: Model data set id or bundle path
        config: Configuration supplying defaults

    Returns:
        DataFrame with gene, pos, wt, post_wt_fg, post_wt_bg, pwm, pwm_fam
        (plus intermediate columns), or None if no site passes
    """
    config = config or get_config()
    posterior_thresh = config.posterior_thresh if posterior_thresh is None else posterior_thresh
    flank = config.flank if flank is None else flank
    model_data = model_data or config.model_data
    check_flank(flank)

    sites = [s for s in sites if s.gene in sequences]
    if not sites:
        logger.warning("No phosphorylation or sequence data remaining after filtering!")
        return None

    is_valid, _, warnings = validate_psites_sty(sites, sequences)
    if not is_valid:
        logger.warning(f"{len(warnings)} phosphosites do not map to S, T or Y")

    windows = flanking_sequences(
        sequences,
        [(s.gene, s.position) for s in sites],
        flank=flank,
        pad=config.pad_char,
    )
    base = pd.DataFrame({
        "gene": [s.gene for s in sites],
        "pos": [s.position for s in sites],
        "wt": windows,
    })

    model_list = _model_list(_resolve_models(models, kinases, model_data, config))
    check_pwm_widths(model_list, flank)

    frames = []
    for model in tqdm(model_list, desc="Scoring sequences", disable=not config.show_progress):
        scores = mss(windows, model.pwm)
        post = rewiring_posterior(scores, fg_params=model.fg_params, bg_params=model.bg_params)

        passes = np.nan_to_num(post.post_wt_fg, nan=-1.0) >= posterior_thresh
        if not passes.any():
            continue

        frame = base[passes].copy()
        frame["score_wt"] = scores[passes]
        frame["l_wt_fg"] = post.l_wt_fg[passes]
        frame["l_wt_bg"] = post.l_wt_bg[passes]
        frame["post_wt_fg"] = post.post_wt_fg[passes]
        frame["post_wt_bg"] = post.post_wt_bg[passes]
        frame["pwm"] = model.name
        frame["pwm_fam"] = model.family
        frames.append(frame)

    if not frames:
        logger.warning("No kinase phosphosite predictions passed the posterior threshold")
        return None

    final = pd.concat(frames, ignore_index=True)
    if not intermediate:
        final = final.drop(columns=["score_wt", "l_wt_fg", "l_wt_bg"])
    return final
