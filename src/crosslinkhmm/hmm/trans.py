import numpy as np

from .states import NUM_STATES, State
from ..core.error import IncompatibleValuesError
from ..core.logs import logger
from ..core.validate import require_fraction

# Starting transition probabilities (rows: from, columns: to).
INIT_TRANS = np.array([[0.980, 0.015, 0.005],
                       [0.050, 0.900, 0.050],
                       [0.100, 0.400, 0.500]])
# Starting probabilities of the state at the first position.
INIT_PROBS = np.array([0.90, 0.09, 0.01])

# Tolerance for probabilities to sum to 1.
SUM_TOLERANCE = 1.e-6


def _normalize_probs(name: str, probs: np.ndarray):
    probs = np.array(probs, dtype=float)
    if not np.all(np.isfinite(probs)) or np.any(probs < 0.):
        raise IncompatibleValuesError(f"{name} must be finite and ≥ 0, "
                                      f"but got {probs}")
    sums = probs.sum(axis=-1, keepdims=True)
    if np.any(sums <= 0.):
        raise IncompatibleValuesError(f"{name} must have positive sums, "
                                      f"but got {probs}")
    if np.any(np.abs(sums - 1.) > SUM_TOLERANCE):
        logger.warning(f"{name} does not sum to 1: normalizing {probs}")
        return probs / sums
    return probs


def floor_enriched_to_crosslink(row: np.ndarray, min_prob: float):
    """ Raise the probability of a transition from enriched to crosslink
    to at least min_prob, scaling the rest of the row so that it still
    sums to 1. """
    require_fraction("min_prob", min_prob)
    if row[State.CROSSLINK] >= min_prob:
        return row
    row = row.copy()
    others = np.arange(NUM_STATES) != State.CROSSLINK
    other_sum = row[others].sum()
    if other_sum > 0.:
        row[others] *= (1. - min_prob) / other_sum
    else:
        row[State.ENRICHED] = 1. - min_prob
    row[State.CROSSLINK] = min_prob
    return row


class TransitionMatrix(object):
    """ Probabilities of the first state and of transitions between
    states; the probabilities of a step across a gap of g positions are
    those of g single steps (the g-th power of the matrix). """

    def __init__(self,
                 matrix: np.ndarray | None = None,
                 init: np.ndarray | None = None):
        if matrix is None:
            matrix = INIT_TRANS
        if init is None:
            init = INIT_PROBS
        matrix = np.asarray(matrix, dtype=float)
        init = np.asarray(init, dtype=float)
        if matrix.shape != (NUM_STATES, NUM_STATES):
            raise IncompatibleValuesError(
                f"matrix must have shape {NUM_STATES, NUM_STATES}, "
                f"but got {matrix.shape}"
            )
        if init.shape != (NUM_STATES,):
            raise IncompatibleValuesError(
                f"init must have shape {NUM_STATES,}, but got {init.shape}"
            )
        self.matrix = _normalize_probs("matrix", matrix)
        self.init = _normalize_probs("init", init)

    def power(self, gap: int):
        """ Transition probabilities across a gap. """
        if gap < 1:
            raise ValueError(f"gap must be ≥ 1, but got {gap}")
        return np.linalg.matrix_power(self.matrix, gap)

    def log_matrices(self, gaps: np.ndarray, dtype: type | np.dtype = float):
        """ Log transition probabilities for every distinct gap.

        Parameters
        ----------
        gaps: np.ndarray
            Gap before every position of a chain.
        dtype: type | np.dtype
            Type of the log probabilities.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            3D array (distinct gaps x states x states) of log transition
            probabilities, and 1D array of the index of the gap before
            every position.
        """
        unique_gaps, steps = np.unique(gaps, return_inverse=True)
        matrices = np.stack([self.power(int(gap)) for gap in unique_gaps])
        with np.errstate(divide="ignore"):
            log_matrices = np.log(matrices).astype(dtype)
        return log_matrices, steps.astype(np.int64).reshape(-1)

    def log_init(self, dtype: type | np.dtype = float):
        with np.errstate(divide="ignore"):
            return np.log(self.init).astype(dtype)

    def update(self,
               counts: np.ndarray,
               counts_masked: np.ndarray,
               first_probs: np.ndarray,
               min_trans_prob_cs: float):
        """ Re-estimate the probabilities from expected numbers of
        transitions.

        Parameters
        ----------
        counts: np.ndarray
            Expected number of each transition over all unit steps.
        counts_masked: np.ndarray
            Expected number of each transition over the unit steps whose
            destination has enough coverage; determines how the mass of
            the enriched state is split between staying enriched and
            moving to crosslink.
        first_probs: np.ndarray
            Sum over chains of the probability of each state at the
            first position.
        min_trans_prob_cs: float
            Minimum probability of a transition from enriched to
            crosslink.
        """
        matrix = self.matrix.copy()
        for i, row in enumerate(counts):
            if (total := row.sum()) > 0.:
                matrix[i] = row / total
            else:
                logger.detail(f"No transitions from state {State(i).name}; "
                              f"keeping {matrix[i]}")
        enr = State.ENRICHED
        xl = State.CROSSLINK
        masked = counts_masked[enr, [enr, xl]]
        if (masked_total := masked.sum()) > 0.:
            stay_or_bind = 1. - matrix[enr, State.NON_ENRICHED]
            matrix[enr, enr] = stay_or_bind * masked[0] / masked_total
            matrix[enr, xl] = stay_or_bind * masked[1] / masked_total
        matrix[enr] = floor_enriched_to_crosslink(matrix[enr],
                                                  min_trans_prob_cs)
        self.matrix = matrix / matrix.sum(axis=1, keepdims=True)
        if (first_total := first_probs.sum()) > 0.:
            self.init = first_probs / first_total

    def copy(self):
        return self.__class__(self.matrix.copy(), self.init.copy())

    def __str__(self):
        return f"{type(self).__name__}({self.matrix.tolist()})"

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
