"""

HMM Engine

========================================================================

Forward-backward and Viterbi algorithms in log space over one chain.

Every step of the forward and backward recursions adds probabilities
stored as logarithms, i.e. computes log(exp(a) + exp(b)). The expensive
term log(1 + exp(b - a)) is looked up in a ``LogSumExpTable`` when
b - a falls within the table, otherwise computed directly. Passing no
table computes every term directly.

The kernels are compiled with Numba for double precision and release
the GIL, so chains can be processed in parallel threads. For extended
precision, which Numba does not support, the same kernels run as pure
Python.

"""

from collections import namedtuple
from typing import Callable

import numpy as np
from numba import jit
from scipy.special import logsumexp

from .params import ModelParams
from .states import NUM_STATES, State
from ..core.logs import logger
from ..core.lse import LogSumExpTable
from ..core.obs import Chain
from ..core.precision import DOUBLE, Precision

ForwardBackward = namedtuple("ForwardBackward",
                             ["posteriors",
                              "log_like",
                              "counts",
                              "counts_masked"])


@jit(nogil=True)
def _forward(log_emit: np.ndarray,
             log_init: np.ndarray,
             log_trans: np.ndarray,
             steps: np.ndarray,
             table: np.ndarray,
             table_min: float,
             table_scale: float):
    """ Log probability of the observations up to each position and of
    the state at that position.

    Parameters
    ----------
    log_emit: np.ndarray
        2D (positions x states) log emission probabilities.
    log_init: np.ndarray
        1D (states) log probabilities of the first state.
    log_trans: np.ndarray
        3D (gaps x states x states) log transition probabilities.
    steps: np.ndarray
        1D (positions) index of the gap before each position.
    table: np.ndarray
        Tabulated values of log(1 + exp(x)).
    table_min: float
        Smallest x in the table.
    table_scale: float
        Number of table entries per unit of x.

    Returns
    -------
    np.ndarray
        2D (positions x states) forward log probabilities.
    """
    num_pos, num_states = log_emit.shape
    alpha = np.empty_like(log_emit)
    for j in range(num_states):
        alpha[0, j] = log_init[j] + log_emit[0, j]
    for t in range(1, num_pos):
        g = steps[t]
        for j in range(num_states):
            acc = -np.inf
            for i in range(num_states):
                a = acc
                b = alpha[t - 1, i] + log_trans[g, i, j]
                if a < b:
                    a, b = b, a
                if b == -np.inf:
                    acc = a
                elif b - a >= table_min:
                    acc = a + table[int((b - a - table_min) * table_scale
                                        + 0.5)]
                else:
                    acc = a + np.log1p(np.exp(b - a))
            alpha[t, j] = acc + log_emit[t, j]
    return alpha


@jit(nogil=True)
def _backward(log_emit: np.ndarray,
              log_trans: np.ndarray,
              steps: np.ndarray,
              table: np.ndarray,
              table_min: float,
              table_scale: float):
    """ Log probability of the observations after each position given
    the state at that position. """
    num_pos, num_states = log_emit.shape
    beta = np.empty_like(log_emit)
    for i in range(num_states):
        beta[num_pos - 1, i] = 0.
    for t in range(num_pos - 2, -1, -1):
        g = steps[t + 1]
        for i in range(num_states):
            acc = -np.inf
            for j in range(num_states):
                a = acc
                b = log_trans[g, i, j] + log_emit[t + 1, j] + beta[t + 1, j]
                if a < b:
                    a, b = b, a
                if b == -np.inf:
                    acc = a
                elif b - a >= table_min:
                    acc = a + table[int((b - a - table_min) * table_scale
                                        + 0.5)]
                else:
                    acc = a + np.log1p(np.exp(b - a))
            beta[t, i] = acc
    return beta


@jit(nogil=True)
def _transition_counts(alpha: np.ndarray,
                       beta: np.ndarray,
                       log_emit: np.ndarray,
                       log_trans: np.ndarray,
                       steps: np.ndarray,
                       unit_step: np.ndarray,
                       dest_ok: np.ndarray,
                       log_like: float):
    """ Expected number of transitions between each pair of states over
    all steps of one position, and over those steps whose destination
    passes a filter. """
    num_pos, num_states = log_emit.shape
    counts = np.zeros((num_states, num_states))
    counts_masked = np.zeros((num_states, num_states))
    for t in range(1, num_pos):
        if not unit_step[t]:
            continue
        g = steps[t]
        for i in range(num_states):
            for j in range(num_states):
                xi = np.exp(alpha[t - 1, i]
                            + log_trans[g, i, j]
                            + log_emit[t, j]
                            + beta[t, j]
                            - log_like)
                counts[i, j] += xi
                if dest_ok[t]:
                    counts_masked[i, j] += xi
    return counts, counts_masked


@jit(nogil=True)
def _viterbi(log_emit: np.ndarray,
             log_init: np.ndarray,
             log_trans: np.ndarray,
             steps: np.ndarray):
    """ Most likely path of states and its log probability. """
    num_pos, num_states = log_emit.shape
    delta = np.empty_like(log_emit)
    back = np.zeros((num_pos, num_states), dtype=np.int64)
    for j in range(num_states):
        delta[0, j] = log_init[j] + log_emit[0, j]
    for t in range(1, num_pos):
        g = steps[t]
        for j in range(num_states):
            best = -np.inf
            best_i = 0
            for i in range(num_states):
                value = delta[t - 1, i] + log_trans[g, i, j]
                if value > best:
                    best = value
                    best_i = i
            delta[t, j] = best + log_emit[t, j]
            back[t, j] = best_i
    path = np.empty(num_pos, dtype=np.int64)
    last = 0
    for j in range(1, num_states):
        if delta[num_pos - 1, j] > delta[num_pos - 1, last]:
            last = j
    path[num_pos - 1] = last
    for t in range(num_pos - 1, 0, -1):
        path[t - 1] = back[t, path[t]]
    return path, delta[num_pos - 1, last]


def _kernel(func: Callable, precision: Precision):
    """ Compiled kernel for double precision, else its Python body. """
    return func if precision.compiled else func.py_func


def _table_args(table: LogSumExpTable | None):
    if table is None:
        # No lookups: every difference falls below the table.
        return np.zeros(1), np.inf, 1.
    return table.values, table.min_value, table.scale


def calc_log_emissions(chain: Chain,
                       params: ModelParams,
                       precision: Precision = DOUBLE):
    """ Log emission probability of every state at every position.

    The truncation-count component of the non-crosslink states is 1
    wherever no read starts at the position, while the crosslink state
    requires at least one read start. The signal component is omitted
    when the chain has no signal.

    Parameters
    ----------
    chain: Chain
        Observations.
    params: ModelParams
        Parameters of the model.
    precision: Precision
        Type of the log probabilities.

    Returns
    -------
    np.ndarray
        2D (positions x states) log emission probabilities.
    """
    has_starts = chain.trunc_counts > 0
    log_bin1 = np.where(has_starts, params.bin1.log_density(chain), 0.)
    log_bin2 = params.bin2.log_density(chain)
    log_gamma1 = params.gamma1.log_density(chain)
    log_gamma2 = params.gamma2.log_density(chain)
    log_emit = precision.empty((len(chain), NUM_STATES))
    log_emit[:, State.NON_ENRICHED] = log_gamma1 + log_bin1
    log_emit[:, State.ENRICHED] = log_gamma2 + log_bin1
    log_emit[:, State.CROSSLINK] = log_gamma2 + log_bin2
    impossible = np.all(log_emit == -np.inf, axis=1)
    if num_impossible := np.count_nonzero(impossible):
        logger.warning(f"{chain} has {num_impossible} position(s) with "
                       f"probability 0 in every state; treating every state "
                       f"as equally likely there")
        log_emit[impossible] = 0.
    return log_emit


def forward_backward(chain: Chain,
                     params: ModelParams,
                     table: LogSumExpTable | None,
                     precision: Precision = DOUBLE,
                     n_threshold_for_trans_p: float = 0.):
    """ Posterior probability of every state at every position, log
    likelihood of the chain, and expected numbers of transitions.

    Parameters
    ----------
    chain: Chain
        Observations.
    params: ModelParams
        Parameters of the model; only read.
    table: LogSumExpTable | None
        Table for adding log probabilities; None to compute exactly.
    precision: Precision
        Type of the log probabilities and posteriors.
    n_threshold_for_trans_p: float
        Count transitions into positions with at least this coverage
        separately (see `TransitionMatrix.update`).

    Returns
    -------
    ForwardBackward
        Posteriors (2D: positions x states), log likelihood, and
        expected transitions over all unit steps and over unit steps
        into positions with enough coverage (each 2D: states x states).
    """
    log_emit = calc_log_emissions(chain, params, precision)
    log_trans, steps = params.trans.log_matrices(chain.gaps, precision.dtype)
    log_init = params.trans.log_init(precision.dtype)
    table_args = _table_args(table)
    alpha = _kernel(_forward, precision)(log_emit,
                                         log_init,
                                         log_trans,
                                         steps,
                                         *table_args)
    beta = _kernel(_backward, precision)(log_emit,
                                         log_trans,
                                         steps,
                                         *table_args)
    log_like = logsumexp(alpha[-1])
    if not np.isfinite(log_like):
        raise ValueError(f"Log likelihood of {chain} is {log_like}")
    posteriors = np.exp(alpha + beta - log_like)
    # Remove rounding errors so that each row sums to 1.
    posteriors /= posteriors.sum(axis=1, keepdims=True)
    unit_step = chain.gaps == 1
    dest_ok = chain.n_estimates >= n_threshold_for_trans_p
    counts, counts_masked = _kernel(_transition_counts, precision)(
        alpha, beta, log_emit, log_trans, steps, unit_step, dest_ok, log_like
    )
    logger.detail(f"Ran forward-backward on {chain}: "
                  f"log likelihood = {float(log_like)}")
    return ForwardBackward(posteriors=posteriors,
                           log_like=float(log_like),
                           counts=np.asarray(counts, dtype=float),
                           counts_masked=np.asarray(counts_masked,
                                                    dtype=float))


def viterbi(chain: Chain,
            params: ModelParams,
            precision: Precision = DOUBLE):
    """ Most likely path of states through the chain.

    Returns
    -------
    tuple[np.ndarray, float]
        State at every position and log probability of the path.
    """
    log_emit = calc_log_emissions(chain, params, precision)
    log_trans, steps = params.trans.log_matrices(chain.gaps, precision.dtype)
    log_init = params.trans.log_init(precision.dtype)
    path, log_prob = _kernel(_viterbi, precision)(log_emit,
                                                   log_init,
                                                   log_trans,
                                                   steps)
    return path, float(log_prob)

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
