"""
Reading inputs and kinase models, and writing results.

Mutation and phosphosite tables are whitespace-delimited without a header:

    TP53    R282W               TP53    280
    CTNNB1  S33C                CTNNB1  29

A phosphosite table may carry a third column with a pre-extracted flanking
window and a fourth with a gene symbol; this is the curated-window mode used
when no FASTA is available.

Model bundles are JSON files keyed by kinase name:

    {"AURKB": {"name": "AURKB", "family": "AUR", "nseqs": 92, "auc": 0.87,
               "pwm": {"alphabet": "ACDEFGHIKLMNPQRSTVWY", "matrix": [[...], ...]},
               "fg_params": [{"mean": 0.8, "sd": 0.05, "weight": 1.0}],
               "bg_params": [{"mean": 0.5, "sd": 0.10, "weight": 1.0}]}}
"""

import json
import logging
import re
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from Bio import SeqIO

from ..errors import InputValidationError, ModelDataError, UnknownModel
from .mixture import make_gmm_params
from .models import KinaseModel, Mutation, PhosphoSite, PWM, ScoredEvent
from .pwm import AMINO_ACIDS

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MUTATION_PATTERN = re.compile(r"^([A-Z])(\d+)([A-Z])$")

MODEL_DATA_FILES = {
    "hconf": "hconf.json",
    "hconf-fam": "hconf_fam.json",
    "lconf": "lconf.json",
}

REPORT_COLUMNS = [
    "gene", "mutation", "psite_pos", "mut_dist", "wt", "mt",
    "score_wt", "score_mt", "log_ratio", "pwm", "pwm_fam", "nseqs",
    "prob", "effect",
]


def read_sequences(seqs: Union[PathLike, Mapping[str, str]]) -> Dict[str, str]:
    """Read protein sequences from a FASTA file or pass a mapping through.

    Args:
        seqs: FASTA path, or mapping of gene to sequence

    Returns:
        Dict mapping gene to uppercase sequence
    """
    if isinstance(seqs, Mapping):
        return {str(k): str(v).upper() for k, v in seqs.items()}

    path = Path(seqs)
    if not path.exists():
        raise FileNotFoundError(f"Sequence file not found: {path}")

    sequences = {}
    for record in SeqIO.parse(str(path), "fasta"):
        if record.id in sequences:
            logger.warning(f"Duplicate sequence id {record.id}, keeping the first")
            continue
        sequences[record.id] = str(record.seq).upper()

    if not sequences:
        raise InputValidationError(f"No FASTA records found in {path}")
    return sequences


def parse_mutation(text: str) -> Tuple[str, int, str]:
    """Parse a mutation in X123Y notation.

    Returns:
        Tuple of (ref_aa, position, alt_aa)

    Raises:
        InputValidationError: For anything other than a single residue
            substitution
    """
    match = MUTATION_PATTERN.match(str(text).strip().upper())
    if not match:
        raise InputValidationError(
            f"Invalid mutation '{text}': expected a substitution such as R282W"
        )
    ref_aa, position, alt_aa = match.groups()
    if int(position) < 1:
        raise InputValidationError(f"Invalid mutation '{text}': positions are 1-based")
    return ref_aa, int(position), alt_aa


def _read_table(source: Union[PathLike, pd.DataFrame], min_columns: int) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input table not found: {path}")
        df = pd.read_csv(path, sep=r"\s+", header=None, comment="#", dtype=str)

    if df.shape[1] < min_columns:
        raise InputValidationError(
            f"Expected at least {min_columns} columns, got {df.shape[1]}"
        )
    return df


def read_mutations(source: Union[PathLike, pd.DataFrame]) -> List[Mutation]:
    """Read a (gene, mutation) table into Mutation records."""
    df = _read_table(source, 2)

    mutations = []
    for gene, text in zip(df.iloc[:, 0], df.iloc[:, 1]):
        ref_aa, position, alt_aa = parse_mutation(text)
        mutations.append(Mutation(str(gene), position, ref_aa, alt_aa))
    return mutations


def read_psites(source: Union[PathLike, pd.DataFrame]) -> List[PhosphoSite]:
    """Read a (gene, position[, window[, symbol]]) table into PhosphoSite records."""
    df = _read_table(source, 2)

    sites = []
    for row in df.itertuples(index=False):
        try:
            position = int(row[1])
        except ValueError:
            raise InputValidationError(f"Invalid phosphosite position '{row[1]}' for {row[0]}")

        window = row[2] if len(row) > 2 and not pd.isna(row[2]) else None
        symbol = row[3] if len(row) > 3 and not pd.isna(row[3]) else None
        sites.append(PhosphoSite(
            gene=str(row[0]),
            position=position,
            sequence_window=str(window).upper() if window is not None else None,
            symbol=str(symbol) if symbol is not None else None,
        ))
    return sites


def model_from_dict(name: str, entry: Mapping) -> KinaseModel:
    """Decode one kinase model bundle entry."""
    try:
        pwm_entry = entry["pwm"]
        if isinstance(pwm_entry, Mapping):
            alphabet = pwm_entry.get("alphabet", AMINO_ACIDS)
            matrix = pwm_entry["matrix"]
        else:
            alphabet, matrix = AMINO_ACIDS, pwm_entry

        auc = float(entry.get("auc", 1.0))
        if not 0 < auc <= 1:
            raise ValueError(f"AUC must be in (0, 1], got {auc}")

        return KinaseModel(
            name=str(entry.get("name", name)),
            family=str(entry.get("family", "")),
            pwm=PWM(alphabet=alphabet, matrix=matrix),
            fg_params=make_gmm_params(entry["fg_params"]),
            bg_params=make_gmm_params(entry["bg_params"]),
            auc=auc,
            nseqs=int(entry.get("nseqs", 0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ModelDataError(f"Invalid model entry '{name}': {e}") from e


def load_models(path: PathLike) -> Dict[str, KinaseModel]:
    """Load a JSON model bundle.

    Returns:
        Dict mapping kinase name to KinaseModel, in bundle order
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model bundle not found: {path}")

    try:
        with open(path, "r") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ModelDataError(f"Cannot decode model bundle {path}: {e}") from e

    if not isinstance(raw, Mapping):
        raise ModelDataError(f"Model bundle {path} must map kinase names to models")

    models = {name: model_from_dict(name, entry) for name, entry in raw.items()}
    logger.debug(f"Loaded {len(models)} kinase models from {path}")
    return models


def save_models(models: Mapping[str, KinaseModel], path: PathLike) -> Path:
    """Write kinase models to a JSON bundle readable by load_models."""
    path = Path(path)
    bundle = {}
    for name, model in models.items():
        bundle[name] = {
            "name": model.name,
            "family": model.family,
            "nseqs": model.nseqs,
            "auc": model.auc,
            "pwm": {"alphabet": model.pwm.alphabet, "matrix": model.pwm.matrix.tolist()},
            "fg_params": [asdict(c) for c in model.fg_params],
            "bg_params": [asdict(c) for c in model.bg_params],
        }
    with open(path, "w") as f:
        json.dump(bundle, f, indent=2)
    return path


def get_model_data_path(model_data: str, model_dir: Optional[PathLike] = None) -> Path:
    """Resolve a model data set id, or a bundle path, to a file.

    Raises:
        UnknownModel: If model_data is neither an existing file nor a known id
        FileNotFoundError: If the id is known but its bundle is missing
    """
    candidate = Path(model_data)
    if candidate.is_file():
        return candidate

    if model_data not in MODEL_DATA_FILES:
        raise UnknownModel([model_data], MODEL_DATA_FILES)

    if model_dir is None:
        raise FileNotFoundError(f"No model directory configured for '{model_data}'")

    path = Path(model_dir) / MODEL_DATA_FILES[model_data]
    if not path.exists():
        raise FileNotFoundError(f"Model bundle for '{model_data}' not found: {path}")
    return path


def select_models(
    models: Mapping[str, KinaseModel],
    kinases: Optional[Iterable[str]] = None,
) -> Dict[str, KinaseModel]:
    """Restrict a model store to the requested kinases.

    Unknown names are ignored as long as at least one name matches.

    Raises:
        UnknownModel: If none of the requested kinases exist
    """
    if kinases is None:
        return dict(models)

    kinases = [kinases] if isinstance(kinases, str) else list(kinases)
    selected = {k: models[k] for k in kinases if k in models}
    if not selected:
        raise UnknownModel(kinases, models.keys())

    missing = [k for k in kinases if k not in models]
    if missing:
        logger.warning(f"Ignoring unknown kinase models: {', '.join(missing)}")
    return selected


def results_to_frame(events: Optional[Sequence[ScoredEvent]]) -> pd.DataFrame:
    """Tabulate scored events with the fixed report columns."""
    rows = [event.to_dict() for event in events or []]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def write_results(
    results: Union[pd.DataFrame, Sequence[ScoredEvent], None],
    output_path: PathLike,
) -> Path:
    """Write results as a tab-separated file."""
    if not isinstance(results, pd.DataFrame):
        results = results_to_frame(results)

    output_path = Path(output_path)
    results.to_csv(output_path, sep="\t", index=False, na_rep="NA")
    return output_path
