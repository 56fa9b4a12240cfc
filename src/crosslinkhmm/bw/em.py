"""

Baum-Welch

========================================================================

Learn the parameters of the model by expectation-maximization. Each
iteration runs forward-backward on every chain of every replicate in a
pool of threads (E-step), waits for every chain to finish, and then
re-estimates the parameters from the posterior probabilities in the
main thread (M-step). Parameters are only read during the E-step and
only written during the M-step.

"""

from collections import namedtuple
from enum import Enum
from typing import Iterable

import numpy as np

from ..core.arg import DECODE_VITERBI
from ..core.config import HMMConfig, cap_g1_k_max
from ..core.error import NoDataError, ObservationsError
from ..core.logs import logger
from ..core.lse import LogSumExpTable
from ..core.obs import Chain
from ..core.precision import get_precision
from ..core.task import dispatch
from ..emit.gamma import Gamma, GammaReg, above_trunc
from ..emit.ztbin import ZTBIN, ZTBINReg, choose_n_threshold
from ..hmm.engine import ForwardBackward, forward_backward, viterbi
from ..hmm.params import (BIN1,
                          BIN2,
                          GAMMA1,
                          GAMMA2,
                          ModelParams)
from ..hmm.score import calc_scores
from ..hmm.states import State

# Starting shape and scale of the gamma distributions, used only when
# the signal cannot be split into non-enriched and enriched positions.
GAMMA1_K_INIT = 0.5
GAMMA2_K_INIT = 2.
THETA_INIT = 1.

Calls = namedtuple("Calls", ["chain", "states", "scores", "posteriors"])


class EMStatus(Enum):
    """ Status of a run of Baum-Welch. """
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"


def _iter_chains(replicates: list[list[Chain]]):
    for rep, chains in enumerate(replicates):
        for chain in chains:
            yield rep, chain


def check_replicates(replicates: list[list[Chain]]):
    """ Require at least one chain, and that every chain has the same
    kinds of observations. """
    chains = [chain for _, chain in _iter_chains(replicates)]
    if not chains:
        raise NoDataError("Got no chains of observations")
    first = chains[0]
    for chain in chains[1:]:
        if chain.has_signal != first.has_signal:
            raise ObservationsError(f"{chain} and {first} differ in whether "
                                    f"they have a signal")
        if chain.num_bin_covars != first.num_bin_covars:
            raise ObservationsError(f"{chain} and {first} have different "
                                    f"numbers of binomial covariates")
        if chain.num_gamma_covars != first.num_gamma_covars:
            raise ObservationsError(f"{chain} and {first} have different "
                                    f"numbers of gamma covariates")
    return first.has_signal, first.num_bin_covars, first.num_gamma_covars


def _init_gammas(chains: list[Chain], config: HMMConfig):
    """ Fit the gamma distributions to the positions whose signal is
    below and at least the prior threshold of enrichment. """
    gamma1 = Gamma(GAMMA1,
                   GAMMA1_K_INIT,
                   THETA_INIT,
                   config.g1_k_min,
                   config.g1_k_max,
                   config.gamma_trunc)
    gamma2 = Gamma(GAMMA2,
                   GAMMA2_K_INIT,
                   THETA_INIT,
                   config.g2_k_min,
                   config.g2_k_max,
                   config.gamma_trunc)
    chains = [chain for chain in chains if chain.has_signal]
    if not chains:
        return gamma1, gamma2
    if config.prior_enrichment_threshold is not None:
        threshold = config.prior_enrichment_threshold
    else:
        signal = np.concatenate([chain.signal for chain in chains])
        signal = signal[above_trunc(signal, config.gamma_trunc)]
        threshold = (float(np.median(signal)) if signal.size > 0
                     else config.gamma_trunc)
    logger.routine(f"Initially classifying positions with signal ≥ "
                   f"{threshold} as enriched")
    gamma2.update([(chain, (chain.signal >= threshold).astype(float))
                   for chain in chains],
                  config)
    gamma1.update([(chain, (chain.signal < threshold).astype(float))
                   for chain in chains],
                  config,
                  k_max=gamma2.k if config.g1_k_le_g2_k else None)
    return gamma1, gamma2


def set_auto_n_thresholds(config: HMMConfig):
    """ Set both n thresholds to the fewest trials at which a crosslink
    site expects enough read starts to be informative. """
    n_threshold = choose_n_threshold(config.bin2_p_init)
    logger.routine(f"Set n_threshold_for_p and n_threshold_for_trans_p to "
                   f"{n_threshold} from bin2_p_init = {config.bin2_p_init}")
    return config._replace(n_threshold_for_p=n_threshold,
                           n_threshold_for_trans_p=n_threshold)


def adjust_config(replicates: list[list[Chain]], config: HMMConfig):
    """ Adjust the settings to the kinds of observations. """
    has_signal, _, num_gamma_covars = check_replicates(replicates)
    if config.auto_n_threshold:
        config = set_auto_n_thresholds(config)
    if has_signal and num_gamma_covars == 0:
        return cap_g1_k_max(config)
    return config


def exclude_high_counts(chains: Iterable[Chain], max_trunc_count: int):
    """ Chains on which to learn: those with no site with more than
    `max_trunc_count` read starts. """
    kept = list()
    for chain in chains:
        if len(chain) > 0 and chain.trunc_counts.max() > max_trunc_count:
            logger.routine(f"Excluded {chain} from learning because it has "
                           f"a site with {chain.trunc_counts.max()} "
                           f"(> {max_trunc_count}) read starts")
        else:
            kept.append(chain)
    return kept


def init_params(replicates: list[list[Chain]], config: HMMConfig):
    """ Starting parameters of every replicate. """
    _, num_bin_covars, num_gamma_covars = check_replicates(replicates)
    config = adjust_config(replicates, config)
    params = list()
    for chains in replicates:
        if num_bin_covars > 0:
            bin1 = ZTBINReg.from_p(BIN1, config.bin1_p_init, num_bin_covars)
            bin2 = ZTBINReg.from_p(BIN2, config.bin2_p_init, num_bin_covars)
        else:
            bin1 = ZTBIN(BIN1, config.bin1_p_init)
            bin2 = ZTBIN(BIN2, config.bin2_p_init)
        gamma1, gamma2 = _init_gammas(chains, config)
        if num_gamma_covars > 0:
            gamma1 = GammaReg.from_gamma(gamma1, num_gamma_covars)
            gamma2 = GammaReg.from_gamma(gamma2, num_gamma_covars)
        rep_params = ModelParams(bin1, bin2, gamma1, gamma2)
        rep_params.order_check(config)
        params.append(rep_params)
    return params


def _weights(posteriors: np.ndarray, *states: State):
    return np.asarray(posteriors[:, list(states)].sum(axis=1), dtype=float)


class BaumWelch(object):
    """ Learn the parameters of the model from replicates of chains. """

    def __init__(self,
                 replicates: list[list[Chain]],
                 config: HMMConfig,
                 params: list[ModelParams] | None = None):
        """
        Parameters
        ----------
        replicates: list[list[Chain]]
            Chains of observations of each replicate.
        config: HMMConfig
            Settings of the run.
        params: list[ModelParams] | None
            Starting parameters of each replicate; if omitted, then
            estimated from the observations.
        """
        config = adjust_config(replicates, config)
        self.replicates = replicates
        self.config = config
        self.precision = get_precision(config.high_precision)
        if config.lookup_table_size > 0:
            self.table = LogSumExpTable(config.lookup_table_size,
                                        config.lookup_table_min_value)
        else:
            logger.detail("Adding log probabilities without a lookup table")
            self.table = None
        if params is None:
            params = init_params(replicates, config)
        elif len(params) != len(replicates):
            raise ValueError(f"Got {len(replicates)} replicate(s), but "
                             f"parameters for {len(params)}")
        self.params = params
        self.status = EMStatus.INITIALIZED
        self.iteration = 0
        self.log_likes: list[float] = list()

    @property
    def num_reps(self):
        return len(self.replicates)

    @property
    def converged(self):
        return self.status == EMStatus.CONVERGED

    def _run_forward_backward(self,
                              replicates: list[list[Chain]],
                              num_threads: int):
        """ Run forward-backward on every chain and group the results by
        replicate. """
        tasks = list(_iter_chains(replicates))
        results = dispatch(forward_backward,
                           num_threads=num_threads,
                           as_list=True,
                           ordered=True,
                           raise_on_error=True,
                           args=[(chain,
                                  self.params[rep],
                                  self.table,
                                  self.precision,
                                  self.config.n_threshold_for_trans_p)
                                 for rep, chain in tasks])
        grouped: list[list[ForwardBackward]] = [list() for _ in replicates]
        for (rep, _), result in zip(tasks, results, strict=True):
            grouped[rep].append(result)
        return grouped

    def _e_step(self):
        return self._run_forward_backward(self.replicates,
                                          self.config.num_threads)

    def _update_bins(self, results: list[list[ForwardBackward]]):
        def data(reps: Iterable[int], *states: State):
            return [(chain, _weights(result.posteriors, *states))
                    for rep in reps
                    for chain, result in zip(self.replicates[rep],
                                             results[rep],
                                             strict=True)]

        non_crosslink = State.NON_ENRICHED, State.ENRICHED
        if self.config.share_bin:
            # Pool all replicates into the bins of the first replicate,
            # then copy them into the other replicates.
            first = self.params[0]
            reps = range(self.num_reps)
            first.bin1.update(data(reps, *non_crosslink), self.config)
            first.bin2.update(data(reps, State.CROSSLINK), self.config)
            for rep_params in self.params[1:]:
                rep_params.bin1.set_params(first.bin1.get_params())
                rep_params.bin2.set_params(first.bin2.get_params())
        else:
            for rep, rep_params in enumerate(self.params):
                rep_params.bin1.update(data([rep], *non_crosslink),
                                       self.config)
                rep_params.bin2.update(data([rep], State.CROSSLINK),
                                       self.config)

    def _update_gammas(self, rep: int, results: list[ForwardBackward]):
        chains = self.replicates[rep]
        rep_params = self.params[rep]
        rep_params.gamma2.update(
            [(chain, _weights(result.posteriors,
                              State.ENRICHED,
                              State.CROSSLINK))
             for chain, result in zip(chains, results, strict=True)],
            self.config
        )
        rep_params.gamma1.update(
            [(chain, _weights(result.posteriors, State.NON_ENRICHED))
             for chain, result in zip(chains, results, strict=True)],
            self.config,
            k_max=rep_params.gamma2.k if self.config.g1_k_le_g2_k else None
        )

    def _update_trans(self, rep: int, results: list[ForwardBackward]):
        if not results:
            return
        counts = sum(result.counts for result in results)
        counts_masked = sum(result.counts_masked for result in results)
        first_probs = sum(np.asarray(result.posteriors[0], dtype=float)
                          for result in results)
        self.params[rep].trans.update(counts,
                                      counts_masked,
                                      first_probs,
                                      self.config.min_trans_prob_cs)

    def _m_step(self, results: list[list[ForwardBackward]]):
        self._update_bins(results)
        for rep, rep_results in enumerate(results):
            if self.replicates[rep] and self.replicates[rep][0].has_signal:
                self._update_gammas(rep, rep_results)
            self._update_trans(rep, rep_results)
            self.params[rep].order_check(self.config)

    def run(self):
        """ Iterate until the parameters converge or the number of
        iterations reaches the limit. """
        if self.status != EMStatus.INITIALIZED:
            raise RuntimeError(f"{self} has already run")
        max_iter = self.config.max_iter_bw
        if max_iter == 0:
            logger.status("Using the initial parameters without learning")
            self.status = EMStatus.MAX_ITER_REACHED
            return self
        self.status = EMStatus.ITERATING
        logger.task(f"Began learning with up to {max_iter} iteration(s)")
        while self.status == EMStatus.ITERATING:
            self.iteration += 1
            results = self._e_step()
            log_like = float(sum(result.log_like
                                 for rep_results in results
                                 for result in rep_results))
            self.log_likes.append(log_like)
            previous = [rep_params.copy() for rep_params in self.params]
            self._m_step(results)
            logger.routine(f"Iteration {self.iteration}: "
                           f"log likelihood = {log_like}")
            for rep, rep_params in enumerate(self.params):
                logger.detail(f"Iteration {self.iteration}, replicate {rep}:"
                              f"\n{rep_params}")
            if all(rep_params.converged(prev_params, self.config)
                   for rep_params, prev_params in zip(self.params,
                                                      previous,
                                                      strict=True)):
                self.status = EMStatus.CONVERGED
                logger.task(f"Converged after {self.iteration} iteration(s)")
            elif self.iteration >= max_iter:
                self.status = EMStatus.MAX_ITER_REACHED
                logger.warning(f"Baum-Welch did not converge within "
                               f"{max_iter} iteration(s); using the "
                               f"parameters from the last iteration")
        return self

    def apply(self, replicates: list[list[Chain]] | None = None):
        """ Call the state of every position with the current parameters.

        Parameters
        ----------
        replicates: list[list[Chain]] | None
            Chains of each replicate to call; defaults to the chains on
            which the parameters were learned.

        Returns
        -------
        list[list[Calls]]
            Calls of every chain of every replicate.
        """
        if replicates is None:
            replicates = self.replicates
        if len(replicates) != self.num_reps:
            raise ValueError(f"Learned {self.num_reps} replicate(s), "
                             f"but got {len(replicates)} to apply")
        check_replicates(replicates)
        results = self._run_forward_backward(replicates,
                                             self.config.num_threads_apply)
        calls = list()
        for rep, (chains, rep_results) in enumerate(zip(replicates,
                                                        results,
                                                        strict=True)):
            rep_calls = list()
            for chain, result in zip(chains, rep_results, strict=True):
                if self.config.decode == DECODE_VITERBI:
                    states, _ = viterbi(chain, self.params[rep],
                                        self.precision)
                else:
                    states = np.argmax(result.posteriors, axis=1)
                scores = calc_scores(result.posteriors,
                                     self.config.score_type)
                rep_calls.append(Calls(chain=chain,
                                       states=np.asarray(states,
                                                         dtype=np.int64),
                                       scores=scores,
                                       posteriors=np.asarray(
                                           result.posteriors, dtype=float
                                       )))
            calls.append(rep_calls)
        return calls

    def __str__(self):
        return (f"{type(self).__name__}({self.num_reps} replicate(s), "
                f"{self.status.value})")

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
