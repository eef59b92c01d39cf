#!/usr/bin/env python3
"""
phylohmm train
Train a categorical HMM by EM from a table of observation sequences.

Input is a TSV with one row per position and (at least) the columns:
    sample   sample identifier; rows of one sample must be in order
    symbol   observed symbol (any hashable value)

Several random initializations are trained and the best one (highest
final log2 likelihood) is reported.
"""

import argparse
import contextlib
import sys
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from phylohmm.core.samples import SampleSet
from phylohmm.models.categorical import train_categorical
from phylohmm.cli.common import (add_em_args, add_restart_args, add_log_args,
                                 add_verbose_args, add_version_args, config_from_args)


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description='Train a categorical HMM by EM from observation sequences',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('-i', '--input', required=True,
                        help='TSV file with sample and symbol columns')
    parser.add_argument('-n', '--n-states', type=int, default=2,
                        help='Number of hidden states')

    add_em_args(parser)
    add_restart_args(parser)
    add_log_args(parser)
    add_verbose_args(parser)
    add_version_args(parser)

    return parser.parse_args(argv)


def load_samples(filepath: str) -> Tuple[SampleSet, list]:
    """
    Load observation sequences from a TSV file.

    Returns:
        (samples, symbols) where samples holds symbol codes and symbols[code]
        is the original symbol
    """
    table = pd.read_csv(filepath, sep='\t')

    missing = {'sample', 'symbol'} - set(table.columns)
    if missing:
        raise ValueError(f"Missing column(s) {sorted(missing)} in {filepath}")
    if table.empty:
        raise ValueError(f"No observations in {filepath}")

    codes, symbols = pd.factorize(table['symbol'], sort=True)
    table['code'] = codes

    sequences = [group.to_numpy() for _, group in table.groupby('sample', sort=False)['code']]
    return SampleSet.from_sequences(sequences), list(symbols)


def _open_log(path: Optional[str]):
    if path is None:
        return contextlib.nullcontext(None)
    if path == '-':
        return contextlib.nullcontext(sys.stdout)
    return open(path, 'w')


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)

    if args.n_states < 1:
        print("Error: --n-states must be >= 1")
        sys.exit(1)

    try:
        config = config_from_args(args)
        samples, symbols = load_samples(args.input)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    pseudocounts = None
    if args.pseudocount > 0:
        pseudocounts = np.full((args.n_states, args.n_states), args.pseudocount)

    print("phylohmm EM training")
    print(f"  Input: {args.input}")
    print(f"  Samples: {len(samples)} ({samples.total_length:,} positions)")
    print(f"  Symbols: {len(symbols)}")
    print(f"  States: {args.n_states}")
    print(f"  Restarts: {args.restarts}")
    print(f"  Seed: {args.seed}")

    with _open_log(args.log) as logf:
        hmm, model, logls = train_categorical(
            samples, args.n_states, len(symbols),
            n_restarts=args.restarts, seed=args.seed, config=config,
            pseudocounts=pseudocounts, logf=logf, verbose=args.verbose,
        )

    states = [f"state{k}" for k in range(args.n_states)]
    print(f"\nBest log2 likelihood: {max(logls):.4f}")
    print(f"\nTransition matrix:\n{pd.DataFrame(hmm.transmat_, index=states, columns=states).round(4)}")
    print(f"\nEmission probabilities:\n"
          f"{pd.DataFrame(model.emissionprob_, index=states, columns=symbols).round(4)}")
    print("Done!")


if __name__ == '__main__':
    main()
