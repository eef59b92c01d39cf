"""Shared argparse argument factories for phylohmm CLI tools.

Each function adds a group of related arguments to an ArgumentParser.
Default values can be overridden per-script where needed.
"""

import argparse

from phylohmm.training.config import EMConfig, EM_CONVERGENCE_THRESHOLD


def add_em_args(parser: argparse.ArgumentParser,
                threshold: float = EM_CONVERGENCE_THRESHOLD) -> None:
    """Add EM convergence arguments (--threshold, --max-iter, --pseudocount)."""
    parser.add_argument(
        '--threshold', '-t', type=float, default=threshold,
        help=f"Minimum log2 likelihood gain per iteration to keep training (default: {threshold})"
    )
    parser.add_argument(
        '--max-iter', type=int, default=None,
        help="Cap on EM iterations (default: no cap)"
    )
    parser.add_argument(
        '--pseudocount', type=float, default=0.0,
        help="Pseudocount added to every expected transition count (default: 0)"
    )


def add_restart_args(parser: argparse.ArgumentParser,
                     default_restarts: int = 10,
                     default_seed: int = 42) -> None:
    """Add random-restart arguments (--restarts, --seed)."""
    parser.add_argument(
        '--restarts', '-c', type=int, default=default_restarts,
        help=f"Number of random initializations (default: {default_restarts})"
    )
    parser.add_argument(
        '--seed', '-s', type=int, default=default_seed,
        help=f"Random seed (default: {default_seed})"
    )


def add_log_args(parser: argparse.ArgumentParser) -> None:
    """Add --log argument."""
    parser.add_argument(
        '--log', '-l', default=None, metavar='FILE',
        help="Write per-iteration likelihoods and transitions to FILE ('-' for stdout)"
    )


def add_verbose_args(parser: argparse.ArgumentParser) -> None:
    """Add --verbose flag."""
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help="Verbose output"
    )


def add_version_args(parser: argparse.ArgumentParser) -> None:
    """Add --version flag."""
    from phylohmm import __version__
    parser.add_argument(
        '--version', action='version',
        version=f'%(prog)s {__version__}'
    )


def config_from_args(args: argparse.Namespace) -> EMConfig:
    """Build an EMConfig from parsed add_em_args() arguments."""
    return EMConfig(threshold=args.threshold, max_iter=args.max_iter)
