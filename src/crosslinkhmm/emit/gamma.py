"""

Gamma Emissions

========================================================================

The smoothed enrichment signal ``x`` at a position follows a gamma
distribution with shape ``k`` and scale ``theta``, optionally truncated
on the left at ``trunc``::

    f(x | k, theta) = Gamma(x | k, theta) / S(trunc | k, theta)

for ``x ≥ trunc``, where ``S`` is the survival function (1 when
``trunc`` is 0). A signal value below ``trunc`` lies outside the
support: it carries no information about the state, so its density is
1 in every gamma component, and it is left out of fitting.

The shape is either one number (``Gamma``) or depends on covariates
through a log link (``GammaReg``). Both fit the shape and the scale by
maximum likelihood of the truncated density.

"""

from typing import Iterable

import numpy as np
from scipy.special import digamma, gammaln
from scipy.stats import gamma

from .base import EmissionModel, replace_nan
from ..core.config import HMMConfig
from ..core.logs import logger
from ..core.obs import Chain
from ..core.validate import require_atleast, require_greater
from ..solve.brent import maximize_bounded
from ..solve.multiroot import find_root

SIGNAL_MIN = 1.e-8
THETA_MIN = 1.e-8
# Ratio of the upper to the lower bound of the scale under truncation.
THETA_RANGE = 1.e3
LOG_THETA_MAX = 30.
DIFF_STEP = 1.e-5


def clip_signal(signal: np.ndarray):
    return np.maximum(signal, SIGNAL_MIN)


def above_trunc(signal: np.ndarray, trunc: float):
    """ Whether each signal value lies within the support of a gamma
    distribution truncated at `trunc`. """
    if trunc > 0.:
        return signal >= trunc
    return np.ones(np.shape(signal), dtype=bool)


def gamma_log_pdf(x: np.ndarray,
                  k: float | np.ndarray,
                  theta: float,
                  trunc: float = 0.):
    """ Log density of a gamma distribution truncated on the left.

    Parameters
    ----------
    x: np.ndarray
        Values at which to evaluate the density; must be ≥ `trunc`.
    k: float | np.ndarray
        Shape parameter(s).
    theta: float
        Scale parameter.
    trunc: float
        Truncation point; 0 for no truncation.

    Returns
    -------
    np.ndarray
        Log density at each value.
    """
    log_pdf = gamma.logpdf(x, k, scale=theta)
    if trunc > 0.:
        log_pdf = log_pdf - gamma.logsf(trunc, k, scale=theta)
    return log_pdf


def signal_log_density(signal: np.ndarray,
                       k: float | np.ndarray,
                       theta: float,
                       trunc: float):
    """ Log density of each signal value; 0 wherever the value lies
    below the truncation point. """
    log_pdf = gamma_log_pdf(clip_signal(signal), k, theta, trunc)
    return np.where(above_trunc(signal, trunc), log_pdf, 0.)


def _dlogsf_dk(k: np.ndarray, theta: float, trunc: float):
    """ Derivative of the log survival function at `trunc` with respect
    to the shape (central finite difference). """
    if trunc <= 0.:
        return np.zeros_like(k)
    step = DIFF_STEP * np.maximum(k, 1.)
    return ((gamma.logsf(trunc, k + step, scale=theta)
             - gamma.logsf(trunc, k - step, scale=theta))
            / (2. * step))


def _dlogsf_dlogtheta(k: np.ndarray, theta: float, trunc: float):
    """ Derivative of the log survival function at `trunc` with respect
    to the log of the scale, which equals trunc times the hazard. """
    if trunc <= 0.:
        return np.zeros_like(k)
    return trunc * np.exp(gamma.logpdf(trunc, k, scale=theta)
                          - gamma.logsf(trunc, k, scale=theta))


def _gather(data: Iterable[tuple[Chain, np.ndarray]],
            trunc: float,
            covars: bool = False):
    """ Concatenate the signal (and covariates) and weights of all
    positions with positive weight and signal within the support. """
    xs = list()
    ws = list()
    cs = list()
    for chain, weights in data:
        if not chain.has_signal:
            continue
        weights = np.asarray(weights, dtype=float)
        mask = (weights > 0.) & above_trunc(chain.signal, trunc)
        xs.append(clip_signal(chain.signal[mask]))
        ws.append(weights[mask])
        if covars:
            cs.append(chain.gamma_covars[mask]
                      if chain.gamma_covars is not None
                      else np.empty((np.count_nonzero(mask), 0)))
    if not xs:
        return None
    x = np.concatenate(xs)
    w = np.concatenate(ws)
    if x.size == 0 or w.sum() <= 0.:
        return None
    if covars:
        return x, w, np.vstack(cs)
    return x, w


class Gamma(EmissionModel):
    """ Gamma distribution with one shape and one scale. """

    def __init__(self,
                 name: str,
                 k: float,
                 theta: float,
                 k_min: float,
                 k_max: float,
                 trunc: float = 0.):
        super().__init__(name)
        require_greater("k_min", k_min, 0., classes=(float, int))
        require_greater("k_max", k_max, k_min, "k_min", classes=(float, int))
        require_greater("theta", theta, 0., classes=(float, int))
        require_atleast("trunc", trunc, 0., classes=(float, int))
        self.k_min = float(k_min)
        self.k_max = float(k_max)
        self.k = float(np.clip(k, self.k_min, self.k_max))
        self.theta = float(theta)
        self.trunc = float(trunc)

    @property
    def mean(self):
        return self.k * self.theta

    def log_density(self, chain: Chain):
        if not chain.has_signal:
            return np.zeros(len(chain))
        return replace_nan(signal_log_density(chain.signal,
                                              self.k,
                                              self.theta,
                                              self.trunc),
                           self.name)

    def _mean_log_like(self,
                       k: float,
                       theta: float,
                       mean_x: float,
                       mean_log_x: float):
        """ Weighted mean log likelihood, from the weighted means of the
        signal and of its logarithm. """
        log_like = ((k - 1.) * mean_log_x
                    - mean_x / theta
                    - k * np.log(theta)
                    - gammaln(k))
        if self.trunc > 0.:
            log_like -= gamma.logsf(self.trunc, k, scale=theta)
        return float(log_like)

    def _fit_theta(self,
                   k: float,
                   mean_x: float,
                   mean_log_x: float,
                   config: HMMConfig):
        """ Scale that maximizes the likelihood given the shape. """
        # Without truncation, the maximizer is mean_x / k. Truncation
        # raises the mean above k * theta, so mean_x / k also bounds
        # the maximizer from above.
        upper = max(mean_x / k, THETA_MIN)
        if self.trunc <= 0.:
            return upper
        lower = max(upper / THETA_RANGE, THETA_MIN)

        def objective(log_theta: float):
            return self._mean_log_like(k,
                                       np.exp(log_theta),
                                       mean_x,
                                       mean_log_x)

        return float(np.exp(maximize_bounded(objective,
                                             np.log(lower),
                                             np.log(upper),
                                             max_iter=config.max_iter_brent,
                                             name=f"log {self.name}.theta")))

    def fit(self,
            x: np.ndarray,
            w: np.ndarray,
            config: HMMConfig,
            k_max: float | None = None):
        """ Maximize the weighted log likelihood of the signal values
        over the shape, with the scale fit for each shape. """
        total = float(np.sum(w))
        mean_x = max(float(np.sum(w * x)) / total, THETA_MIN)
        mean_log_x = float(np.sum(w * np.log(x))) / total
        upper = self.k_max if k_max is None else min(self.k_max, k_max)
        upper = max(upper, self.k_min)

        def objective(k: float):
            theta = self._fit_theta(k, mean_x, mean_log_x, config)
            return self._mean_log_like(k, theta, mean_x, mean_log_x)

        k = maximize_bounded(objective,
                             self.k_min,
                             upper,
                             max_iter=config.max_iter_brent,
                             name=f"{self.name}.k")
        theta = self._fit_theta(k, mean_x, mean_log_x, config)
        fit_log_like = self._mean_log_like(k, theta, mean_x, mean_log_x)
        current_log_like = self._mean_log_like(self.k,
                                               self.theta,
                                               mean_x,
                                               mean_log_x)
        # Keep the current parameters if they are allowed and fit better.
        if self.k_min <= self.k <= upper and current_log_like > fit_log_like:
            logger.detail(f"Kept {self}, which fits better than "
                          f"k = {k}, theta = {theta}")
            return
        self.k = k
        self.theta = theta
        logger.detail(f"Updated {self}")

    def update(self,
               data: Iterable[tuple[Chain, np.ndarray]],
               config: HMMConfig,
               k_max: float | None = None):
        gathered = _gather(data, self.trunc)
        if gathered is None:
            logger.warning(f"No positions are informative about {self.name}; "
                           f"keeping k = {self.k}, theta = {self.theta}")
            return
        self.fit(*gathered, config, k_max)

    def order_check(self, other: "Gamma", config: HMMConfig):
        if config.g1_k_le_g2_k and self.k > other.k:
            logger.detail(f"Lowering {self.name}.k ({self.k}) to "
                          f"{other.name}.k ({other.k})")
            self.k = max(other.k, self.k_min)
            return True
        return False

    def converged(self, previous: "Gamma", config: HMMConfig):
        return abs(self.k - previous.k) < config.gamma_k_conv

    def get_params(self):
        return dict(k=self.k, theta=self.theta)

    def set_params(self, params: dict[str, float]):
        if "k" in params:
            require_greater(f"{self.name}.k", params["k"], 0.,
                            classes=(float, int))
            self.k = float(params["k"])
        if "theta" in params:
            require_greater(f"{self.name}.theta", params["theta"], 0.,
                            classes=(float, int))
            self.theta = float(params["theta"])

    def copy(self):
        model = self.__class__(self.name,
                               self.k,
                               self.theta,
                               self.k_min,
                               self.k_max,
                               self.trunc)
        # Keep a shape that was loaded from outside the bounds.
        model.k = self.k
        return model


class GammaReg(EmissionModel):
    """ Gamma distribution whose shape depends on covariates through a
    log link, with one scale::

        k = exp(b0 + b1 * x1 + ... + bm * xm)
    """

    def __init__(self,
                 name: str,
                 intercept: float,
                 coeffs: np.ndarray,
                 theta: float,
                 k_min: float,
                 k_max: float,
                 trunc: float = 0.):
        super().__init__(name)
        require_greater("k_min", k_min, 0., classes=(float, int))
        require_greater("k_max", k_max, k_min, "k_min", classes=(float, int))
        require_greater("theta", theta, 0., classes=(float, int))
        require_atleast("trunc", trunc, 0., classes=(float, int))
        self.k_min = float(k_min)
        self.k_max = float(k_max)
        self.intercept = self._clip_intercept(intercept)
        self.coeffs = np.array(coeffs, dtype=float).reshape(-1)
        self.theta = float(theta)
        self.trunc = float(trunc)

    @classmethod
    def from_gamma(cls, model: Gamma, num_covars: int):
        """ Start with the shape of a fitted gamma distribution and no
        dependence on the covariates. """
        return cls(model.name,
                   float(np.log(model.k)),
                   np.zeros(num_covars),
                   model.theta,
                   model.k_min,
                   model.k_max,
                   model.trunc)

    def _clip_intercept(self, intercept: float):
        return float(np.clip(intercept,
                             np.log(self.k_min),
                             np.log(self.k_max)))

    @property
    def num_covars(self):
        return self.coeffs.size

    @property
    def k(self):
        """ Shape where every covariate is 0. """
        return float(np.exp(self.intercept))

    @property
    def all_coeffs(self):
        return np.concatenate([[self.intercept], self.coeffs])

    def _shape(self, covars: np.ndarray, coeffs: np.ndarray):
        eta = coeffs[0] + covars @ coeffs[1:]
        # Bound the linear predictor so that exp does not overflow.
        return np.exp(np.clip(eta, -30., 30.))

    def shape_of(self, chain: Chain):
        """ Shape at every position of the chain. """
        if chain.num_gamma_covars != self.num_covars:
            raise ValueError(f"{self.name} has {self.num_covars} covariates, "
                             f"but chain {repr(chain.name)} has "
                             f"{chain.num_gamma_covars}")
        covars = (chain.gamma_covars if self.num_covars > 0
                  else np.empty((len(chain), 0)))
        return self._shape(covars, self.all_coeffs)

    def log_density(self, chain: Chain):
        if not chain.has_signal:
            return np.zeros(len(chain))
        return replace_nan(signal_log_density(chain.signal,
                                              self.shape_of(chain),
                                              self.theta,
                                              self.trunc),
                           self.name)

    def _log_like(self,
                  x: np.ndarray,
                  w: np.ndarray,
                  k: np.ndarray,
                  theta: float):
        return float(np.sum(w * gamma_log_pdf(x, k, theta, self.trunc)))

    def _fit_theta(self,
                   x: np.ndarray,
                   w: np.ndarray,
                   k: np.ndarray,
                   config: HMMConfig):
        """ Scale that maximizes the likelihood given the shapes. """
        upper = max(float(np.sum(w * x) / np.sum(w * k)), THETA_MIN)
        if self.trunc <= 0.:
            return upper
        lower = max(upper / THETA_RANGE, THETA_MIN)

        def objective(log_theta: float):
            return self._log_like(x, w, k, np.exp(log_theta))

        return float(np.exp(maximize_bounded(objective,
                                             np.log(lower),
                                             np.log(upper),
                                             max_iter=config.max_iter_brent,
                                             name=f"log {self.name}.theta")))

    def update(self,
               data: Iterable[tuple[Chain, np.ndarray]],
               config: HMMConfig,
               k_max: float | None = None):
        gathered = _gather(data, self.trunc, covars=True)
        if gathered is None:
            logger.warning(f"No positions are informative about {self.name}; "
                           f"keeping coefficients {self.all_coeffs}")
            return
        x, w, covars = gathered
        if covars.shape[1] != self.num_covars:
            raise ValueError(f"{self.name} has {self.num_covars} covariates, "
                             f"but the data have {covars.shape[1]}")
        design = np.hstack([np.ones((x.size, 1)), covars])
        log_x = np.log(x)

        def score(params: np.ndarray):
            # The coefficients are followed by log theta. With respect
            # to log k, the derivative of the weighted log likelihood is
            # k * (log x - log theta - digamma(k) - d log S / dk);
            # with respect to log theta, it is
            # x / theta - k - d log S / d log theta.
            log_theta = np.clip(params[-1], np.log(THETA_MIN), LOG_THETA_MAX)
            theta = np.exp(log_theta)
            k = self._shape(covars, params[:-1])
            resid_k = k * (log_x
                           - log_theta
                           - digamma(k)
                           - _dlogsf_dk(k, theta, self.trunc))
            resid_theta = (x / theta
                           - k
                           - _dlogsf_dlogtheta(k, theta, self.trunc))
            return np.append(design.T @ (w * resid_k),
                             np.sum(w * resid_theta)) / w.sum()

        params = find_root(score,
                           np.append(self.all_coeffs, np.log(self.theta)),
                           max_iter=config.max_iter_multiroot,
                           name=f"{self.name} coefficients and log theta")
        upper = self.k_max if k_max is None else max(min(self.k_max, k_max),
                                                     self.k_min)
        intercept = float(np.clip(params[0],
                                  np.log(self.k_min),
                                  np.log(upper)))
        coeffs = np.asarray(params[1:-1], dtype=float)
        k = self._shape(covars, np.append(intercept, coeffs))
        # Refit the scale in case the intercept was clipped.
        theta = self._fit_theta(x, w, k, config)
        current_k = self._shape(covars, self.all_coeffs)
        # Keep the current parameters if they are allowed and fit better.
        if (np.log(self.k_min) <= self.intercept <= np.log(upper)
                and (self._log_like(x, w, current_k, self.theta)
                     > self._log_like(x, w, k, theta))):
            logger.detail(f"Kept {self}, which fits better than "
                          f"coefficients {np.append(intercept, coeffs)}, "
                          f"theta = {theta}")
            return
        self.intercept = intercept
        self.coeffs = coeffs
        self.theta = theta
        logger.detail(f"Updated {self}")

    def order_check(self, other: "GammaReg", config: HMMConfig):
        if config.g1_k_le_g2_k and self.intercept > other.intercept:
            logger.detail(f"Lowering {self.name}.k ({self.k}) to "
                          f"{other.name}.k ({other.k})")
            self.intercept = self._clip_intercept(other.intercept)
            return True
        return False

    def converged(self, previous: "GammaReg", config: HMMConfig):
        if abs(self.k - previous.k) >= config.gamma_k_conv:
            return False
        return bool(np.all(np.abs(self.coeffs - previous.coeffs)
                           < config.gamma_k_conv))

    def get_params(self):
        params = dict(b0=self.intercept)
        for i, coeff in enumerate(self.coeffs, start=1):
            params[f"b{i}"] = float(coeff)
        params["theta"] = self.theta
        return params

    def set_params(self, params: dict[str, float]):
        if "b0" in params:
            self.intercept = float(params["b0"])
        coeffs = self.coeffs.copy()
        for i in range(self.num_covars):
            if (key := f"b{i + 1}") in params:
                coeffs[i] = float(params[key])
        self.coeffs = coeffs
        if "theta" in params:
            require_greater(f"{self.name}.theta", params["theta"], 0.,
                            classes=(float, int))
            self.theta = float(params["theta"])

    def copy(self):
        model = self.__class__(self.name,
                               self.intercept,
                               self.coeffs.copy(),
                               self.theta,
                               self.k_min,
                               self.k_max,
                               self.trunc)
        model.intercept = self.intercept
        return model

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
