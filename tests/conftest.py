"""Shared fixtures for pymimp tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for pymimp imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pymimp.config import Config
from pymimp.rewiring.models import CandidateRewiringEvent, GMMComponent, KinaseModel, Mutation, PWM
from pymimp.rewiring.pwm import AMINO_ACIDS, mss


def make_pwm() -> PWM:
    """Width-3 PWM: R strongly preferred at -1, S/T/Y at the centre, +1 uninformative."""
    upstream = np.full(len(AMINO_ACIDS), 0.1 / 19)
    upstream[AMINO_ACIDS.index("R")] = 0.9

    center = np.zeros(len(AMINO_ACIDS))
    for aa in "STY":
        center[AMINO_ACIDS.index(aa)] = 1 / 3

    downstream = np.full(len(AMINO_ACIDS), 1 / len(AMINO_ACIDS))

    return PWM(alphabet=AMINO_ACIDS, matrix=np.vstack([upstream, center, downstream]))


def make_model(name="KIN1", family="FAM_SUB", auc=1.0, nseqs=42, sd=0.02, fg_mean=None, bg_mean=None):
    """Kinase model whose foreground sits on RSP-like windows and background on ASP-like ones."""
    pwm = make_pwm()
    if fg_mean is None:
        fg_mean = mss("RSP", pwm)
    if bg_mean is None:
        bg_mean = mss("ASP", pwm)
    return KinaseModel(
        name=name,
        family=family,
        pwm=pwm,
        fg_params=(GMMComponent(mean=fg_mean, sd=sd, weight=1.0),),
        bg_params=(GMMComponent(mean=bg_mean, sd=sd, weight=1.0),),
        auc=auc,
        nseqs=nseqs,
    )


def make_candidate(wt, mt, offset, ref, alt, gene="G1", site=5):
    """Candidate event for a mutation at site + offset."""
    return CandidateRewiringEvent(
        gene=gene,
        mutation=Mutation(gene, site + offset, ref, alt),
        site_position=site,
        mutation_offset=offset,
        wt_window=wt,
        mt_window=mt,
    )


@pytest.fixture
def pwm():
    return make_pwm()


@pytest.fixture
def kinase_model():
    return make_model()


@pytest.fixture
def quiet_config():
    """Config with a 1-residue flank and no progress bars."""
    return Config(flank=1, show_progress=False)
