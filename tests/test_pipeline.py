"""
Tests for the pymimp rewiring pipeline.

Tests cover:
- Per-kinase scoring, filtering and loss/gain classification
- Ranking and merging across kinase models
- End-to-end predictions from mutations, sequences and phosphosites
- Kinase assignment of wild-type phosphosites
"""

import math
from dataclasses import replace

import numpy as np
import pytest

from conftest import make_candidate as candidate, make_model
from pymimp.errors import InputValidationError, UnknownModel
from pymimp.rewiring import (
    Effect,
    Mutation,
    PhosphoSite,
    PWM,
    log2_ratio,
    predict_kinase_phosphosites,
    predict_rewiring,
    rank_events,
    results_to_frame,
    run_rewiring,
    save_models,
    score_kinase,
)
from pymimp.rewiring.io import REPORT_COLUMNS
from pymimp.rewiring.pwm import AMINO_ACIDS


LOSS = candidate("RSP", "ASP", -1, "R", "A")
GAIN = candidate("ASP", "RSP", -1, "A", "R", gene="G2")
SILENT = candidate("RSP", "RSA", 1, "P", "A")
CENTER = candidate("RSP", "RAP", 0, "S", "A")
UNDEFINED = candidate("RAP", "RGP", 0, "A", "G")

SEQUENCES = {
    "G1": "MAARSPAAA",
    "G2": "MAAASPAAA",
}
SITES = [PhosphoSite("G1", 5), PhosphoSite("G2", 5)]


class TestLog2Ratio:
    """Tests for the score ratio."""

    def test_defined(self):
        """Test log2 of the mutant to wild-type ratio."""
        assert log2_ratio(np.array([0.25]), np.array([1.0]))[0] == pytest.approx(2.0)

    def test_undefined_scores(self):
        """Test NaN and zero scores give NaN ratios."""
        ratio = log2_ratio(np.array([np.nan, 0.5, 0.0]), np.array([0.5, np.nan, 0.5]))
        assert np.isnan(ratio).all()


class TestScoreKinase:
    """Tests for scoring candidates against one kinase model."""

    def test_loss(self, kinase_model):
        """Test destroying the R at -1 is predicted as a loss."""
        events = score_kinase(kinase_model, [LOSS])
        assert len(events) == 1

        event = events[0]
        assert event.effect is Effect.LOSS
        assert event.ploss == pytest.approx(1.0)
        assert event.prob == event.ploss
        assert event.score_wt == pytest.approx(1.0)
        assert event.log_ratio < -1
        assert event.pwm == "KIN1"
        assert event.pwm_fam == "FAM_SUB"
        assert event.nseqs == 42

    def test_gain(self, kinase_model):
        """Test creating the R at -1 is predicted as a gain."""
        events = score_kinase(kinase_model, [GAIN])
        assert len(events) == 1
        assert events[0].effect is Effect.GAIN
        assert events[0].pgain == pytest.approx(1.0)
        assert events[0].log_ratio > 1

    def test_unchanged_score(self, kinase_model):
        """Test a mutation at an uninformative position is not reported."""
        assert score_kinase(kinase_model, [SILENT]) is None

    def test_both_scores_undefined(self, kinase_model):
        """Test rows with no defined score are dropped."""
        assert score_kinase(kinase_model, [UNDEFINED]) is None
        events = score_kinase(kinase_model, [UNDEFINED, LOSS])
        assert [e.mutation for e in events] == [LOSS.mutation]

    def test_central_mutation_keeps_undefined_ratio(self, kinase_model):
        """Test a destroyed S/T/Y is a loss regardless of the ratio filter."""
        events = score_kinase(kinase_model, [CENTER], log2_thresh=10)
        assert len(events) == 1
        assert events[0].effect is Effect.LOSS
        assert math.isnan(events[0].score_mt)
        assert math.isnan(events[0].log_ratio)

    def test_log2_threshold(self, kinase_model):
        """Test events with a small score change are dropped."""
        assert score_kinase(kinase_model, [LOSS, GAIN], log2_thresh=10) is None
        assert len(score_kinase(kinase_model, [LOSS, GAIN], log2_thresh=0)) == 2

    def test_prob_threshold(self, kinase_model):
        """Test a strict probability threshold still admits confident events."""
        events = score_kinase(kinase_model, [LOSS], prob_thresh=1.0)
        assert events is None or events[0].prob >= 1.0
        assert score_kinase(kinase_model, [LOSS], prob_thresh=0.5) is not None

    def test_invalid_prob_threshold(self, kinase_model):
        """Test prob_thresh below 0.5 is rejected."""
        with pytest.raises(InputValidationError):
            score_kinase(kinase_model, [LOSS], prob_thresh=0.4)
        with pytest.raises(InputValidationError):
            score_kinase(kinase_model, [LOSS], prob_thresh=1.5)

    def test_empty_candidates(self, kinase_model):
        """Test no candidates means no events."""
        assert score_kinase(kinase_model, []) is None

    def test_degenerate_pwms(self, kinase_model):
        """Test K is treated like R once KR are collapsed."""
        lys = candidate("KSP", "ASP", -1, "K", "A")
        assert score_kinase(kinase_model, [lys], degenerate_pwms=True) is not None

    def test_classification(self, kinase_model):
        """Test every event satisfies its own threshold."""
        events = score_kinase(kinase_model, [LOSS, GAIN, CENTER])
        for event in events:
            if event.effect is Effect.LOSS:
                assert event.ploss >= 0.5
            else:
                assert event.pgain >= 0.5
                assert event.ploss < 0.5


class TestRunRewiring:
    """Tests for scoring several kinase models."""

    def setup_method(self):
        self.models = {
            "KIN1": make_model("KIN1", sd=0.3),
            "KIN2": make_model("KIN2", family="FAM2", auc=0.5, sd=0.3),
        }

    def test_ranked_by_probability(self):
        """Test results from all models are ranked by prob."""
        events = run_rewiring(self.models, [LOSS, GAIN])
        assert events is not None
        assert {e.pwm for e in events} == {"KIN1", "KIN2"}

        probs = [e.prob for e in events]
        assert probs == sorted(probs, reverse=True)

    def test_lower_auc_lowers_probability(self):
        """Test a weaker model yields less confident events."""
        events = run_rewiring(self.models, [LOSS])
        by_model = {e.pwm: e.prob for e in events}
        assert by_model["KIN1"] > by_model["KIN2"]

    def test_model_sequence(self):
        """Test models may be passed as a list."""
        events = run_rewiring(list(self.models.values()), [LOSS])
        assert len(events) == 2

    def test_nothing_found(self):
        """Test None is returned when no model predicts anything."""
        assert run_rewiring(self.models, [SILENT]) is None
        assert run_rewiring(self.models, []) is None
        assert run_rewiring({}, [LOSS]) is None

    def test_idempotent(self):
        """Test identical input gives identical output."""
        assert run_rewiring(self.models, [LOSS, GAIN]) == run_rewiring(self.models, [LOSS, GAIN])

    def test_parallel_matches_serial(self):
        """Test several worker processes give the same ranked result."""
        serial = run_rewiring(self.models, [LOSS, GAIN], cores=1)
        parallel = run_rewiring(self.models, [LOSS, GAIN], cores=2)
        assert parallel == serial

    def test_thresholds_checked_first(self):
        """Test invalid thresholds raise even without models."""
        with pytest.raises(InputValidationError):
            run_rewiring({}, [], prob_thresh=0.4)
        with pytest.raises(InputValidationError):
            run_rewiring(self.models, [LOSS], cores=0)

    def test_rank_events_stable(self, kinase_model):
        """Test ties keep their input order."""
        loss = replace(score_kinase(kinase_model, [LOSS])[0], prob=0.7)
        gain = replace(score_kinase(kinase_model, [GAIN])[0], prob=0.7)
        top = replace(loss, prob=0.9)
        assert rank_events([gain, loss, top]) == [top, gain, loss]

    @pytest.mark.parametrize("cores", [1, 2])
    def test_failing_model_aborts_run(self, cores):
        """Test an error in one kinase task aborts the run without partial results."""
        broken = replace(
            make_model("BROKEN"),
            pwm=PWM(alphabet=AMINO_ACIDS, matrix=np.full((5, len(AMINO_ACIDS)), 0.05)),
        )
        models = [self.models["KIN1"], broken]

        with pytest.raises(InputValidationError, match="PWM width is 5"):
            run_rewiring(models, [LOSS, GAIN], cores=cores)


class TestPredictRewiring:
    """End-to-end tests."""

    def setup_method(self):
        self.models = {"KIN1": make_model()}
        self.mutations = [
            Mutation("G1", 4, "R", "A"),   # loss at G1 5
            Mutation("G1", 5, "S", "A"),   # central residue
            Mutation("G1", 9, "A", "V"),   # outside every window
            Mutation("G2", 4, "A", "R"),   # gain at G2 5
            Mutation("G3", 4, "A", "R"),   # no phosphosites
        ]

    def test_loss_and_gain(self, quiet_config):
        """Test a loss and a gain are found from sequences."""
        events = predict_rewiring(
            self.mutations, SEQUENCES, SITES, models=self.models, config=quiet_config
        )
        assert events is not None
        summary = {(e.gene, e.mutation.label, e.effect) for e in events}
        assert summary == {("G1", "R4A", Effect.LOSS), ("G2", "A4R", Effect.GAIN)}

        for event in events:
            assert event.mutation_offset == -1
            assert event.site_position == 5

    def test_central_mutations_dropped(self, quiet_config):
        """Test mutations of the phosphorylated residue are dropped by default."""
        events = predict_rewiring(
            [Mutation("G1", 5, "S", "A")], SEQUENCES, SITES,
            models=self.models, config=quiet_config,
        )
        assert events is None

    def test_reference_mismatch_dropped(self, quiet_config):
        """Test a mutation whose reference residue disagrees is not scored."""
        events = predict_rewiring(
            [Mutation("G1", 4, "K", "A")], SEQUENCES, SITES,
            models=self.models, config=quiet_config,
        )
        assert events is None

    def test_curated_windows(self, quiet_config):
        """Test pre-extracted windows replace sequences."""
        sites = [PhosphoSite("P12345", 5, sequence_window="RSP", symbol="G1")]
        events = predict_rewiring(
            [Mutation("P12345", 4, "R", "A")], None, sites,
            models=self.models, config=quiet_config,
        )
        assert len(events) == 1
        assert events[0].gene == "P12345 (G1)"
        assert events[0].effect is Effect.LOSS

    def test_explicit_arguments_override_config(self, quiet_config):
        """Test explicit thresholds take precedence over the configuration."""
        events = predict_rewiring(
            self.mutations, SEQUENCES, SITES, models=self.models,
            log2_thresh=10, config=quiet_config,
        )
        assert events is None

    def test_invalid_threshold(self, quiet_config):
        """Test invalid thresholds are rejected before any work."""
        with pytest.raises(InputValidationError):
            predict_rewiring(
                self.mutations, SEQUENCES, SITES, models=self.models,
                prob_thresh=0.4, config=quiet_config,
            )

    def test_flank_must_match_pwm_width(self, quiet_config):
        """Test a flank that does not fit the PWMs is rejected before scoring."""
        with pytest.raises(InputValidationError, match="Flank 2 gives windows of width 5") as excinfo:
            predict_rewiring(
                self.mutations, SEQUENCES, SITES, models=self.models,
                flank=2, config=quiet_config,
            )
        assert "KIN1 (3)" in str(excinfo.value)

    def test_unknown_kinases(self, quiet_config):
        """Test requesting only unknown kinases raises UnknownModel."""
        with pytest.raises(UnknownModel) as excinfo:
            predict_rewiring(
                self.mutations, SEQUENCES, SITES, models=self.models,
                kinases=["NOPE"], config=quiet_config,
            )
        assert excinfo.value.available == ["KIN1"]
        assert "NOPE" in str(excinfo.value)

    def test_partially_known_kinases(self, quiet_config):
        """Test unknown names are ignored when one kinase matches."""
        events = predict_rewiring(
            self.mutations, SEQUENCES, SITES, models=self.models,
            kinases=["KIN1", "NOPE"], config=quiet_config,
        )
        assert {e.pwm for e in events} == {"KIN1"}

    def test_models_from_bundle(self, quiet_config, tmp_path):
        """Test models are loaded from a bundle path."""
        path = save_models(self.models, tmp_path / "models.json")
        events = predict_rewiring(
            self.mutations, SEQUENCES, SITES, model_data=str(path), config=quiet_config
        )
        assert len(events) == 2

    def test_no_psnvs(self, quiet_config):
        """Test None is returned when no mutation hits a window."""
        events = predict_rewiring(
            [Mutation("G1", 9, "A", "V")], SEQUENCES, SITES,
            models=self.models, config=quiet_config,
        )
        assert events is None

    def test_results_frame(self, quiet_config):
        """Test the report has fixed columns and one row per event."""
        events = predict_rewiring(
            self.mutations, SEQUENCES, SITES, models=self.models, config=quiet_config
        )
        df = results_to_frame(events)
        assert list(df.columns) == REPORT_COLUMNS
        assert len(df) == 2
        assert set(df["effect"]) == {"loss", "gain"}
        assert set(df["mutation"]) == {"R4A", "A4R"}
        assert set(df["mut_dist"]) == {-1}

    def test_empty_results_frame(self):
        """Test no events tabulate to an empty frame."""
        df = results_to_frame(None)
        assert list(df.columns) == REPORT_COLUMNS
        assert df.empty


class TestPredictKinasePhosphosites:
    """Tests for kinase assignment of wild-type sites."""

    def setup_method(self):
        self.models = {"KIN1": make_model()}

    def test_assigns_foreground_sites(self, quiet_config):
        """Test only sites scoring like substrates are assigned."""
        sites = SITES + [PhosphoSite("G1", 4)]
        df = predict_kinase_phosphosites(
            sites, SEQUENCES, models=self.models, config=quiet_config
        )
        assert list(df.columns) == ["gene", "pos", "wt", "post_wt_fg", "post_wt_bg", "pwm", "pwm_fam"]
        assert len(df) == 1
        row = df.iloc[0]
        assert row["gene"] == "G1"
        assert row["pos"] == 5
        assert row["wt"] == "RSP"
        assert row["pwm"] == "KIN1"
        assert row["post_wt_fg"] >= 0.8

    def test_intermediate_columns(self, quiet_config):
        """Test scores and likelihoods are reported on request."""
        df = predict_kinase_phosphosites(
            SITES, SEQUENCES, models=self.models, intermediate=True, config=quiet_config
        )
        for column in ("score_wt", "l_wt_fg", "l_wt_bg"):
            assert column in df.columns
        assert df["score_wt"].iloc[0] == pytest.approx(1.0)

    def test_nothing_passes(self, quiet_config):
        """Test None when no site passes the posterior threshold."""
        df = predict_kinase_phosphosites(
            [PhosphoSite("G2", 5)], SEQUENCES, models=self.models, config=quiet_config
        )
        assert df is None

    def test_unknown_genes(self, quiet_config):
        """Test sites without sequences are ignored."""
        assert predict_kinase_phosphosites(
            [PhosphoSite("G9", 5)], SEQUENCES, models=self.models, config=quiet_config
        ) is None

    def test_flank_must_match_pwm_width(self, quiet_config):
        """Test a flank that does not fit the PWMs is rejected."""
        with pytest.raises(InputValidationError, match="width 5"):
            predict_kinase_phosphosites(
                SITES, SEQUENCES, models=self.models, flank=2, config=quiet_config
            )
