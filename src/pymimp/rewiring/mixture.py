"""
Gaussian mixture densities of motif scores.
"""

from typing import Iterable, Mapping, Sequence, Union

import numpy as np
from scipy.stats import norm

from .models import GMMComponent, GMMParams


def make_gmm_params(components: Iterable[Union[GMMComponent, Mapping, Sequence]]) -> GMMParams:
    """Build mixture parameters from components, dicts or (mean, sd, weight) tuples.

    Dict keys may be mean/sd/weight or the plural means/sds/wts. A single
    dict of parallel means/sds/wts lists is also accepted.
    """
    if isinstance(components, Mapping):
        components = zip(components["means"], components["sds"], components["wts"])

    params = []
    for comp in components:
        if isinstance(comp, GMMComponent):
            params.append(comp)
        elif isinstance(comp, Mapping):
            params.append(GMMComponent(
                mean=float(comp.get("mean", comp.get("means"))),
                sd=float(comp.get("sd", comp.get("sds"))),
                weight=float(comp.get("weight", comp.get("wts"))),
            ))
        else:
            mean, sd, weight = comp
            params.append(GMMComponent(float(mean), float(sd), float(weight)))
    return tuple(params)


def gmm_density(
    x: Union[float, Sequence[float], np.ndarray],
    params: GMMParams,
) -> Union[float, np.ndarray]:
    """Weighted mixture density at one or more points.

    Computes sum_i weight_i * N(x; mean_i, sd_i). Weights are used as given.
    NaN points give NaN densities.

    Args:
        x: Point or points to evaluate
        params: Mixture components

    Returns:
        A float for scalar input, otherwise an array with one density per point
    """
    points = np.asarray(x, dtype=float)
    scalar = points.ndim == 0
    points = np.atleast_1d(points)

    if not params:
        dens = np.where(np.isnan(points), np.nan, 0.0)
    else:
        means = np.array([c.mean for c in params])
        sds = np.array([c.sd for c in params])
        weights = np.array([c.weight for c in params])
        # (points, components) -> weighted sum over components
        dens = norm.pdf(points[:, None], loc=means, scale=sds) @ weights

    if scalar:
        return float(dens[0])
    return dens
