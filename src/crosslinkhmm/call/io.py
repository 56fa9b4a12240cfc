from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from ..bw.em import Calls
from ..core.error import ObservationsError
from ..core.logs import logger
from ..core.obs import Chain
from ..hmm.states import STATE_NAMES, State

# Columns of a table of observations.
CHROM_COL = "chrom"
POS_COL = "pos"
K_COL = "k"
N_COL = "n"
STRAND_COL = "strand"
SIGNAL_COL = "signal"
BIN_COVAR_PREFIX = "bcov"
GAMMA_COVAR_PREFIX = "gcov"
REQUIRED_COLS = [CHROM_COL, POS_COL, K_COL, N_COL]
NO_STRAND = "."

# Columns of a table of calls.
REP_COL = "rep"
STATE_COL = "state"
SCORE_COL = "score"
POSTERIOR_PREFIX = "posterior_"


def _covar_cols(table: pd.DataFrame, prefix: str):
    return [col for col in table.columns if col.startswith(prefix)]


def _split_runs(positions: np.ndarray, max_gap: int):
    """ Indexes at which to split positions into runs with no gap
    greater than max_gap. """
    return np.flatnonzero(np.diff(positions) > max_gap) + 1


def read_observations(file: str | Path, max_gap: int = 1):
    """ Read a table of observations and split it into chains.

    Parameters
    ----------
    file: str | Path
        Tab-separated table with columns chrom, pos, k, n and optionally
        strand, signal, and covariates (bcov*, gcov*).
    max_gap: int
        Start a new chain wherever two consecutive positions on the same
        chromosome and strand are more than this far apart.

    Returns
    -------
    list[Chain]
        Chains of observations, ordered by chromosome, strand, and
        position.
    """
    if max_gap < 1:
        raise ValueError(f"max_gap must be ≥ 1, but got {max_gap}")
    table = pd.read_csv(file, sep="\t", dtype={CHROM_COL: str,
                                               STRAND_COL: str})
    if missing := [col for col in REQUIRED_COLS if col not in table.columns]:
        raise ObservationsError(f"{file} is missing column(s) {missing}")
    if STRAND_COL not in table.columns:
        table[STRAND_COL] = NO_STRAND
    bin_cols = _covar_cols(table, BIN_COVAR_PREFIX)
    gamma_cols = _covar_cols(table, GAMMA_COVAR_PREFIX)
    has_signal = SIGNAL_COL in table.columns
    chains = list()
    for (chrom, strand), group in table.groupby([CHROM_COL, STRAND_COL],
                                                sort=True):
        group = group.sort_values(POS_COL)
        positions = group[POS_COL].to_numpy()
        if np.any(np.diff(positions) == 0):
            raise ObservationsError(f"{file} has duplicate positions on "
                                    f"{chrom} ({strand})")
        splits = _split_runs(positions, max_gap)
        for run in np.split(np.arange(positions.size), splits):
            rows = group.iloc[run]
            run_positions = positions[run]
            chains.append(Chain(
                rows[K_COL].to_numpy(),
                rows[N_COL].to_numpy(),
                signal=rows[SIGNAL_COL].to_numpy() if has_signal else None,
                bin_covars=rows[bin_cols].to_numpy() if bin_cols else None,
                gamma_covars=(rows[gamma_cols].to_numpy() if gamma_cols
                              else None),
                positions=run_positions,
                name=(f"{chrom}({strand}):"
                      f"{run_positions[0]}-{run_positions[-1]}"),
                chrom=chrom,
                strand=strand,
            ))
    logger.routine(f"Read {len(chains)} chain(s) from {file}")
    return chains


def select_chroms(chains: Iterable[Chain], chroms: Iterable[str]):
    """ Select the chains on the given chromosomes (all if none). """
    chroms = set(chroms)
    if not chroms:
        return list(chains)
    return [chain for chain in chains if chain.chrom in chroms]


def calls_to_frame(calls: list[list[Calls]]):
    """ Table of the calls at every position of every replicate. """
    frames = list()
    for rep, rep_calls in enumerate(calls):
        for call in rep_calls:
            chain = call.chain
            positions = (chain.positions if chain.positions is not None
                         else np.arange(1, len(chain) + 1))
            frame = pd.DataFrame({
                REP_COL: rep,
                CHROM_COL: chain.chrom,
                STRAND_COL: chain.strand,
                POS_COL: positions,
                STATE_COL: [State(state).name.lower()
                            for state in call.states],
                SCORE_COL: call.scores,
            })
            for state, name in enumerate(STATE_NAMES):
                frame[f"{POSTERIOR_PREFIX}{name}"] = call.posteriors[:, state]
            frames.append(frame)
    if not frames:
        columns = [REP_COL, CHROM_COL, STRAND_COL, POS_COL, STATE_COL,
                   SCORE_COL] + [f"{POSTERIOR_PREFIX}{name}"
                                 for name in STATE_NAMES]
        return pd.DataFrame(columns=columns)
    return pd.concat(frames, ignore_index=True)


def write_calls(calls: list[list[Calls]], file: str | Path):
    """ Write the calls to a tab-separated file. """
    file = Path(file)
    file.parent.mkdir(parents=True, exist_ok=True)
    frame = calls_to_frame(calls)
    frame.to_csv(file, sep="\t", index=False)
    logger.routine(f"Wrote calls of {len(frame)} position(s) to {file}")
    return file

########################################################################
#                                                                      #
# © Copyright 2024, the CROSSLINK-HMM Developers.                     #
#                                                                      #
# This file is part of CROSSLINK-HMM.                                  #
#                                                                      #
# CROSSLINK-HMM is free software; you can redistribute it and/or       #
# modify it under the terms of the GNU General Public License as       #
# published by the Free Software Foundation; either version 3 of the   #
# License, or (at your option) any later version.                      #
#                                                                      #
# CROSSLINK-HMM is distributed in the hope that it will be useful, but #
# WITHOUT ANY WARRANTY; without even the implied warranty of MERCHANT- #
# ABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU General     #
# Public License for more details.                                     #
#                                                                      #
# You should have received a copy of the GNU General Public License    #
# along with CROSSLINK-HMM; if not, see                                #
# <https://www.gnu.org/licenses>.                                      #
#                                                                      #
########################################################################
