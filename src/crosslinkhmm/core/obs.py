"""

Observations Core Module

========================================================================

A chain is one contiguous run of positions (e.g. one strand of one
chromosome or transcript, split wherever consecutive positions are too
far apart) with the observations at each position:

- truncation count ``k``: number of read starts (non-negative integer)
- estimated coverage ``n``: number of trials for the binomial (≥ 0)
- signal (optional): smoothed enrichment signal for the gamma components
- binomial covariates (optional): one column per covariate of the
  truncation probability (e.g. motif scores)
- gamma covariates (optional): one column per covariate of the gamma
  shape (e.g. input signal)
- positions (optional): genomic coordinates, from which the gap between
  consecutive positions is computed

Chains are immutable once constructed.

"""

from functools import cached_property

import numpy as np

from .error import ObservationsError
from .validate import require_1d_array, require_nonnegative


def _freeze(array: np.ndarray):
    array.flags.writeable = False
    return array


def _as_covars(name: str, covars, length: int):
    if covars is None:
        return None
    covars = np.array(covars, dtype=float)
    if covars.ndim == 1:
        covars = covars[:, np.newaxis]
    if covars.ndim != 2 or covars.shape[0] != length:
        raise ObservationsError(f"{name} must have shape ({length}, any), "
                                f"but got {covars.shape}")
    if covars.shape[1] == 0:
        return None
    if not np.all(np.isfinite(covars)):
        raise ObservationsError(f"{name} must be finite")
    return _freeze(covars)


class Chain(object):
    """ Observations along one contiguous chain of positions. """

    def __init__(self,
                 trunc_counts: np.ndarray,
                 n_estimates: np.ndarray,
                 signal: np.ndarray | None = None,
                 bin_covars: np.ndarray | None = None,
                 gamma_covars: np.ndarray | None = None,
                 positions: np.ndarray | None = None,
                 name: str = "",
                 chrom: str = "",
                 strand: str = "."):
        trunc_counts = np.asarray(trunc_counts)
        require_1d_array("trunc_counts", trunc_counts)
        require_nonnegative("trunc_counts", trunc_counts)
        if not np.all(np.equal(np.mod(trunc_counts, 1), 0)):
            raise ObservationsError("trunc_counts must be integers")
        self.name = name
        self.chrom = chrom
        self.strand = strand
        self.trunc_counts = _freeze(trunc_counts.astype(np.int64))
        length = self.trunc_counts.size
        if length == 0:
            raise ObservationsError(f"Chain {repr(name)} has no positions")
        n_estimates = np.array(n_estimates, dtype=float)
        require_1d_array("n_estimates", n_estimates, length)
        require_nonnegative("n_estimates", n_estimates)
        self.n_estimates = _freeze(n_estimates)
        if signal is not None:
            signal = np.array(signal, dtype=float)
            require_1d_array("signal", signal, length)
            require_nonnegative("signal", signal)
            signal = _freeze(signal)
        self.signal = signal
        self.bin_covars = _as_covars("bin_covars", bin_covars, length)
        self.gamma_covars = _as_covars("gamma_covars", gamma_covars, length)
        if positions is not None:
            positions = np.asarray(positions)
            require_1d_array("positions", positions, length)
            if length > 1 and not np.all(np.diff(positions) > 0):
                raise ObservationsError("positions must be strictly "
                                        "increasing")
            positions = _freeze(positions.astype(np.int64))
        self.positions = positions

    def __len__(self):
        return self.trunc_counts.size

    @property
    def has_signal(self):
        return self.signal is not None

    @property
    def num_bin_covars(self):
        return 0 if self.bin_covars is None else self.bin_covars.shape[1]

    @property
    def num_gamma_covars(self):
        return 0 if self.gamma_covars is None else self.gamma_covars.shape[1]

    @cached_property
    def trunc_floor_n(self):
        """ Number of trials of each binomial: the coverage rounded down
        to an integer, but no less than the truncation count. """
        return _freeze(np.maximum(np.floor(self.n_estimates).astype(np.int64),
                                  self.trunc_counts))

    @cached_property
    def gaps(self):
        """ Gap between each position and the previous one (the first
        gap is 1 by convention). """
        gaps = np.ones(len(self), dtype=np.int64)
        if self.positions is not None and len(self) > 1:
            gaps[1:] = np.diff(self.positions)
        return _freeze(gaps)

    def __str__(self):
        return f"{type(self).__name__} {repr(self.name)} ({len(self)} nt)"

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
