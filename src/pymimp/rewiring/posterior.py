"""
Posterior probabilities of phosphorylation loss and gain.

Scores are assigned to the foreground (known substrates) or background
(generic sequence) mixture with Bayes' rule. The foreground prior comes
from the model's AUC: auc / (1 + auc), so a perfect model (AUC = 1) starts
from even odds.

Undefined posteriors (a NaN score, or a score with zero likelihood under
both mixtures) are resolved to background: post_fg = 0, post_bg = 1. An
undefined score therefore never produces a gain or a loss.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .mixture import gmm_density
from .models import GMMParams, PosteriorResult


ScoreArray = Union[Sequence[float], np.ndarray]


def foreground_prior(auc: float = 1.0) -> Tuple[float, float]:
    """Foreground and background priors for a model AUC."""
    fg_prior = auc / (1 + auc)
    return fg_prior, 1 - fg_prior


def _likelihoods(
    scores: np.ndarray,
    fg_params: GMMParams,
    bg_params: GMMParams,
    fg_prior: float,
    bg_prior: float,
):
    l_fg = gmm_density(scores, fg_params) * fg_prior
    l_bg = gmm_density(scores, bg_params) * bg_prior

    with np.errstate(divide="ignore", invalid="ignore"):
        total = l_fg + l_bg
        post_fg = l_fg / total
        post_bg = l_bg / total

    return l_fg, l_bg, post_fg, post_bg


def rewiring_posterior(
    wt_scores: ScoreArray,
    mt_scores: Optional[ScoreArray] = None,
    fg_params: Optional[GMMParams] = None,
    bg_params: Optional[GMMParams] = None,
    auc: float = 1.0,
    intermediate: bool = False,
) -> PosteriorResult:
    """Compute posteriors and, given mutant scores, ploss and pgain.

    Args:
        wt_scores: Wild-type window scores
        mt_scores: Mutant window scores, parallel to wt_scores, or None for
            wild-type posteriors only
        fg_params: Foreground mixture
        bg_params: Background mixture
        auc: AUC of the kinase model
        intermediate: Keep likelihoods and posteriors in the joint result

    Returns:
        PosteriorResult. Wild-type only results keep NaN posteriors for
        undefined scores; joint results resolve them to background first.
    """
    if fg_params is None or bg_params is None:
        raise TypeError("rewiring_posterior requires fg_params and bg_params")

    fg_prior, bg_prior = foreground_prior(auc)
    wt = np.atleast_1d(np.asarray(wt_scores, dtype=float))

    l_wt_fg, l_wt_bg, post_wt_fg, post_wt_bg = _likelihoods(
        wt, fg_params, bg_params, fg_prior, bg_prior
    )

    if mt_scores is None:
        return PosteriorResult(
            l_wt_fg=l_wt_fg,
            l_wt_bg=l_wt_bg,
            post_wt_fg=post_wt_fg,
            post_wt_bg=post_wt_bg,
        )

    mt = np.atleast_1d(np.asarray(mt_scores, dtype=float))
    if mt.shape != wt.shape:
        raise ValueError(
            f"Wild-type and mutant scores differ in length ({len(wt)} vs {len(mt)})"
        )

    l_mt_fg, l_mt_bg, post_mt_fg, post_mt_bg = _likelihoods(
        mt, fg_params, bg_params, fg_prior, bg_prior
    )

    post_wt_fg = np.where(np.isnan(post_wt_fg), 0.0, post_wt_fg)
    post_wt_bg = np.where(np.isnan(post_wt_bg), 1.0, post_wt_bg)
    post_mt_fg = np.where(np.isnan(post_mt_fg), 0.0, post_mt_fg)
    post_mt_bg = np.where(np.isnan(post_mt_bg), 1.0, post_mt_bg)

    # Loss: foreground before, background after. Gain: the reverse.
    ploss = post_wt_fg * post_mt_bg
    pgain = post_wt_bg * post_mt_fg

    if not intermediate:
        return PosteriorResult(ploss=ploss, pgain=pgain)

    return PosteriorResult(
        l_wt_fg=l_wt_fg,
        l_wt_bg=l_wt_bg,
        post_wt_fg=post_wt_fg,
        post_wt_bg=post_wt_bg,
        l_mt_fg=l_mt_fg,
        l_mt_bg=l_mt_bg,
        post_mt_fg=post_mt_fg,
        post_mt_bg=post_mt_bg,
        ploss=ploss,
        pgain=pgain,
    )
