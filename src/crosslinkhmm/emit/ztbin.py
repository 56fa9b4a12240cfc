"""

Zero-Truncated Binomial Emissions

========================================================================

The number of read starts ``k`` at a position among ``n`` trials (the
estimated coverage) follows a binomial distribution conditioned on
``k ≥ 1``, because only positions with at least one read start are
observed::

    P(k | n, p) = Binom(k | n, p) / (1 - (1 - p)^n)    for 1 ≤ k ≤ n

with ``n`` raised to ``k`` wherever ``n < k``. Since ``Binom(0 | n, p)``
equals ``(1 - p)^n``, the denominator is exactly the probability that
``k ≥ 1``, so the density sums to 1 over ``k = 1, ..., n``.

The truncation probability ``p`` is either one number (``ZTBIN``) or
depends on covariates through a logistic link (``ZTBINReg``).

"""

from typing import Iterable

import numpy as np
from scipy.special import expit, logit
from scipy.stats import binom

from .base import EmissionModel, replace_nan
from ..core.config import HMMConfig
from ..core.logs import logger
from ..core.obs import Chain
from ..core.validate import require_fraction
from ..solve.multiroot import find_root

# Bounds of the truncation probability.
P_MIN = 1.e-6
P_MAX = 1. - 1.e-6
# Automatic n thresholds: the fewest trials at which a crosslink site
# expects at least this many read starts.
AUTO_N_MIN_MEAN = 2.
AUTO_N_MAX = 10000


def clip_p(p):
    return np.clip(p, P_MIN, P_MAX)


def ztbin_log_pmf(k: np.ndarray, n: np.ndarray, p: float | np.ndarray):
    """ Log probability of k ≥ 1 under a zero-truncated binomial
    distribution with n trials and probability p; -inf wherever k = 0.

    Parameters
    ----------
    k: np.ndarray
        Numbers of successes.
    n: np.ndarray
        Numbers of trials; raised to k wherever less than k.
    p: float | np.ndarray
        Probability of success.

    Returns
    -------
    np.ndarray
        Log probability of each k.
    """
    k = np.asarray(k)
    n = np.maximum(n, k)
    p = clip_p(p)
    with np.errstate(divide="ignore", invalid="ignore"):
        log_pmf = binom.logpmf(k, n, p)
        # log(1 - (1 - p)^n), computed without cancellation.
        log_nonzero = np.log(-np.expm1(n * np.log1p(-p)))
        log_ztpmf = log_pmf - log_nonzero
    return np.where(k > 0, log_ztpmf, -np.inf)


def ztbin_mean(n: np.ndarray, p: float):
    """ Expected number of successes of a zero-truncated binomial
    distribution with n trials and probability p. """
    p = clip_p(p)
    return n * p / -np.expm1(n * np.log1p(-p))


def choose_n_threshold(p: float,
                       min_mean: float = AUTO_N_MIN_MEAN,
                       max_n: int = AUTO_N_MAX):
    """ Smallest number of trials at which a zero-truncated binomial
    distribution with probability p expects at least `min_mean`
    successes (at most `max_n`). """
    n = np.arange(1, max_n + 1)
    enough = np.flatnonzero(ztbin_mean(n, p) >= min_mean)
    return float(n[enough[0]] if enough.size > 0 else max_n)


def _gate(chain: Chain, weights: np.ndarray, config: HMMConfig):
    """ Select positions that are informative about the truncation
    probability: at least one read start, enough coverage, and a ratio
    of read starts to coverage that does not suggest an artifact. """
    k = chain.trunc_counts
    n = chain.trunc_floor_n
    with np.errstate(divide="ignore", invalid="ignore"):
        mask = ((k > 0)
                & (n > 1)
                & (chain.n_estimates >= config.n_threshold_for_p)
                & (k / n <= config.max_kn_ratio)
                & (weights > 0.))
    return mask


class ZTBIN(EmissionModel):
    """ Zero-truncated binomial with one truncation probability. """

    def __init__(self, name: str, p: float):
        super().__init__(name)
        require_fraction("p", p, inclusive=False)
        self.p = float(clip_p(p))

    def log_density(self, chain: Chain):
        return replace_nan(ztbin_log_pmf(chain.trunc_counts,
                                         chain.trunc_floor_n,
                                         self.p),
                           self.name)

    def update(self,
               data: Iterable[tuple[Chain, np.ndarray]],
               config: HMMConfig):
        # Weighted average of the moment estimator (k - 1) / (n - 1).
        numer = 0.
        denom = 0.
        for chain, weights in data:
            weights = np.asarray(weights, dtype=float)
            mask = _gate(chain, weights, config)
            k = chain.trunc_counts[mask]
            n = chain.trunc_floor_n[mask]
            w = weights[mask]
            numer += float(np.sum(w * ((k - 1) / (n - 1))))
            denom += float(np.sum(w))
        if denom > 0.:
            self.p = float(clip_p(numer / denom))
            logger.detail(f"Updated {self.name}.p to {self.p}")
        else:
            logger.warning(f"No positions are informative about {self.name}; "
                           f"keeping p = {self.p}")

    def order_check(self, other: "ZTBIN", config: HMMConfig):
        if self.p > other.p:
            logger.detail(f"Swapping {self.name}.p ({self.p}) and "
                          f"{other.name}.p ({other.p})")
            self.p, other.p = other.p, self.p
            return True
        return False

    def converged(self, previous: "ZTBIN", config: HMMConfig):
        return abs(self.p - previous.p) < config.bin_p_conv

    def get_params(self):
        return dict(p=self.p)

    def set_params(self, params: dict[str, float]):
        if "p" in params:
            require_fraction(f"{self.name}.p", params["p"], inclusive=False)
            self.p = float(clip_p(params["p"]))

    def copy(self):
        return self.__class__(self.name, self.p)


class ZTBINReg(EmissionModel):
    """ Zero-truncated binomial whose truncation probability depends on
    covariates through a logistic link::

        p = expit(b0 + b1 * x1 + ... + bm * xm)
    """

    def __init__(self, name: str, intercept: float, coeffs: np.ndarray):
        super().__init__(name)
        self.intercept = float(intercept)
        self.coeffs = np.array(coeffs, dtype=float).reshape(-1)

    @classmethod
    def from_p(cls, name: str, p: float, num_covars: int):
        """ Start with no dependence on the covariates. """
        require_fraction("p", p, inclusive=False)
        return cls(name, float(logit(p)), np.zeros(num_covars))

    @property
    def num_covars(self):
        return self.coeffs.size

    @property
    def all_coeffs(self):
        """ Intercept followed by the coefficients. """
        return np.concatenate([[self.intercept], self.coeffs])

    def _check_chain(self, chain: Chain):
        if chain.num_bin_covars != self.num_covars:
            raise ValueError(f"{self.name} has {self.num_covars} covariates, "
                             f"but chain {repr(chain.name)} has "
                             f"{chain.num_bin_covars}")

    def p_of(self, chain: Chain):
        """ Truncation probability at every position of the chain. """
        self._check_chain(chain)
        eta = np.full(len(chain), self.intercept)
        if self.num_covars > 0:
            eta = eta + chain.bin_covars @ self.coeffs
        return clip_p(expit(eta))

    def log_density(self, chain: Chain):
        return replace_nan(ztbin_log_pmf(chain.trunc_counts,
                                         chain.trunc_floor_n,
                                         self.p_of(chain)),
                           self.name)

    def update(self,
               data: Iterable[tuple[Chain, np.ndarray]],
               config: HMMConfig):
        # Gather the informative positions of all chains.
        ks = list()
        ns = list()
        ws = list()
        xs = list()
        for chain, weights in data:
            self._check_chain(chain)
            weights = np.asarray(weights, dtype=float)
            mask = _gate(chain, weights, config)
            ks.append(chain.trunc_counts[mask])
            ns.append(chain.trunc_floor_n[mask])
            ws.append(weights[mask])
            covars = (chain.bin_covars[mask] if self.num_covars > 0
                      else np.empty((np.count_nonzero(mask), 0)))
            xs.append(np.hstack([np.ones((covars.shape[0], 1)), covars]))
        if not ks or sum(map(np.size, ks)) == 0:
            logger.warning(f"No positions are informative about {self.name}; "
                           f"keeping coefficients {self.all_coeffs}")
            return
        k = np.concatenate(ks).astype(float)
        n = np.concatenate(ns).astype(float)
        w = np.concatenate(ws)
        x = np.vstack(xs)

        def score(coeffs: np.ndarray):
            # Gradient of the weighted log likelihood with respect to
            # the coefficients; d/d(eta) = k - n * p / (1 - (1 - p)^n).
            p = clip_p(expit(x @ coeffs))
            with np.errstate(divide="ignore", invalid="ignore"):
                nonzero = -np.expm1(n * np.log1p(-p))
                resid = k - n * p / nonzero
            return x.T @ (w * resid) / w.sum()

        coeffs = find_root(score,
                           self.all_coeffs,
                           max_iter=config.max_iter_multiroot,
                           name=f"{self.name} coefficients")
        self.intercept = float(coeffs[0])
        self.coeffs = np.asarray(coeffs[1:], dtype=float)
        logger.detail(f"Updated {self}")

    def order_check(self, other: "ZTBINReg", config: HMMConfig):
        if self.intercept > other.intercept:
            logger.detail(f"Swapping the coefficients of {self.name} and "
                          f"{other.name}")
            self.intercept, other.intercept = other.intercept, self.intercept
            self.coeffs, other.coeffs = other.coeffs, self.coeffs
            return True
        return False

    def converged(self, previous: "ZTBINReg", config: HMMConfig):
        # Compare on the scale of the probability at the intercept.
        if abs(expit(self.intercept)
               - expit(previous.intercept)) >= config.bin_p_conv:
            return False
        return bool(np.all(np.abs(self.coeffs - previous.coeffs)
                           < config.bin_p_conv))

    def get_params(self):
        params = dict(b0=self.intercept)
        for i, coeff in enumerate(self.coeffs, start=1):
            params[f"b{i}"] = float(coeff)
        return params

    def set_params(self, params: dict[str, float]):
        if "b0" in params:
            self.intercept = float(params["b0"])
        coeffs = self.coeffs.copy()
        for i in range(self.num_covars):
            if (key := f"b{i + 1}") in params:
                coeffs[i] = float(params[key])
        self.coeffs = coeffs

    def copy(self):
        return self.__class__(self.name, self.intercept, self.coeffs.copy())

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
