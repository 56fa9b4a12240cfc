from abc import ABC, abstractmethod
from typing import Iterable

import numpy as np

from ..core.config import HMMConfig
from ..core.logs import logger
from ..core.obs import Chain


def replace_nan(log_density: np.ndarray, name: str):
    """ Replace every NaN log density with -inf (a density of 0), and
    log an error if any were found. """
    nan = np.isnan(log_density)
    if num_nan := np.count_nonzero(nan):
        logger.error(f"Density of {name} is undefined (NaN) at {num_nan} "
                     f"position(s); setting the density to 0")
        log_density = np.where(nan, -np.inf, log_density)
    return log_density


class EmissionModel(ABC):
    """ Parametric family of emission densities for one component of
    one or more hidden states. """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def log_density(self, chain: Chain) -> np.ndarray:
        """ Log of the density at every position of the chain. """

    @abstractmethod
    def update(self,
               data: Iterable[tuple[Chain, np.ndarray]],
               config: HMMConfig) -> None:
        """ Re-estimate the parameters from each chain and the weight of
        this component at each position of the chain. """

    @abstractmethod
    def order_check(self, other: "EmissionModel", config: HMMConfig) -> bool:
        """ Enforce that this model (of the less enriched states) does
        not exceed the other model (of the more enriched states); return
        whether any parameter had to be changed. """

    @abstractmethod
    def converged(self, previous: "EmissionModel", config: HMMConfig) -> bool:
        """ Whether the parameters have changed by less than the
        tolerance since the previous iteration. """

    @abstractmethod
    def get_params(self) -> dict[str, float]:
        """ Parameters, keyed by name (without the model's name). """

    @abstractmethod
    def set_params(self, params: dict[str, float]) -> None:
        """ Set parameters from a (possibly incomplete) dict; parameters
        that are missing keep their current values. """

    @abstractmethod
    def copy(self) -> "EmissionModel":
        """ Independent copy of the model. """

    def __str__(self):
        params = ", ".join(f"{key}={value:.6g}"
                           for key, value in self.get_params().items())
        return f"{type(self).__name__} {self.name} ({params})"

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
