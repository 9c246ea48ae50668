"""
pymimp Command-Line Interface

Entry point for the pymimp command:

    pymimp predict MUTS --seqs SEQS.fa --psites PSITES.tab [-o results.tsv]
    pymimp kinases [--models hconf]
    pymimp config
"""

import argparse
import sys
from typing import List, Optional

from pymimp import __version__
from pymimp.config import get_config
from pymimp.errors import PymimpError
from pymimp.logging import setup_logging
from pymimp.rewiring import (
    get_model_data_path,
    load_models,
    predict_rewiring,
    read_mutations,
    read_psites,
    read_sequences,
    results_to_frame,
    write_results,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="pymimp",
        description="Predict the impact of mutations on kinase-substrate phosphorylation",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    predict = sub.add_parser("predict", help="Predict rewiring events of mutations")
    predict.add_argument("mutations", help="Mutation table (gene, mutation e.g. R282W)")
    predict.add_argument("--seqs", help="Protein sequences in FASTA format")
    predict.add_argument(
        "--psites", required=True,
        help="Phosphosite table (gene, position[, window[, symbol]])",
    )
    predict.add_argument(
        "--models", default=config.model_data,
        help=f"Model data set id or bundle path (default: {config.model_data})",
    )
    predict.add_argument("--kinases", nargs="+", help="Kinase models to use (default: all)")
    predict.add_argument("--prob-thresh", type=float, default=config.prob_thresh)
    predict.add_argument("--log2-thresh", type=float, default=config.log2_thresh)
    predict.add_argument(
        "--include-center", action="store_true", default=config.include_center,
        help="Keep gains and losses caused by mutating the central residue",
    )
    predict.add_argument(
        "--degenerate-pwms", action="store_true",
        help="Collapse similar residues (DE, KR, ILMV) in PWMs",
    )
    predict.add_argument("--cores", type=int, default=config.cores)
    predict.add_argument("-o", "--output", help="Write results as TSV (default: stdout)")
    predict.add_argument("-v", "--verbose", action="store_true")

    kinases = sub.add_parser("kinases", help="List kinase models in a bundle")
    kinases.add_argument("--models", default=config.model_data)

    sub.add_parser("config", help="Show and validate configuration")

    return parser


def predict_main(args: argparse.Namespace) -> int:
    """Run the predict subcommand."""
    logger = setup_logging("pymimp", verbose=args.verbose)

    mutations = read_mutations(args.mutations)
    sites = read_psites(args.psites)
    sequences = read_sequences(args.seqs) if args.seqs else None

    events = predict_rewiring(
        mutations,
        sequences,
        sites,
        kinases=args.kinases,
        prob_thresh=args.prob_thresh,
        log2_thresh=args.log2_thresh,
        include_center=args.include_center,
        cores=args.cores,
        model_data=args.models,
        degenerate_pwms=args.degenerate_pwms,
    )

    if events is None:
        logger.info("No rewiring events found")
        return 0

    if args.output:
        write_results(events, args.output)
        logger.info(f"Wrote {len(events)} rewiring events to {args.output}")
    else:
        results_to_frame(events).to_csv(sys.stdout, sep="\t", index=False, na_rep="NA")
    return 0


def kinases_main(args: argparse.Namespace) -> int:
    """List kinase model names."""
    config = get_config()
    models = load_models(get_model_data_path(args.models, config.model_dir))
    for name, model in models.items():
        print(f"{name}\t{model.family}\t{model.nseqs}")
    return 0


def config_main(args: argparse.Namespace) -> int:
    """Print configuration status."""
    logger = setup_logging("pymimp")
    config = get_config()
    config.print_status()

    is_valid, errors = config.validate()
    if errors:
        logger.error("Configuration Errors:")
        for error in errors:
            logger.error(f"  ✗ {error}")
        return 1

    logger.info("✓ Configuration is valid")
    return 0


COMMANDS = {
    "predict": predict_main,
    "kinases": kinases_main,
    "config": config_main,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the pymimp command."""
    args = build_parser().parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except (PymimpError, FileNotFoundError) as e:
        setup_logging("pymimp").error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
