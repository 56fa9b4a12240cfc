"""

Bounded 1-Dimensional Maximization

========================================================================

Shape parameters are fit by maximizing a weighted log likelihood over a
bounded interval with Brent's method (golden-section search accelerated
by parabolic interpolation). Stopping at the iteration cap is not an
error: the best point found so far is returned because the outer EM
loop will refine it on the next iteration.

"""

from typing import Callable

import numpy as np
from scipy.optimize import minimize_scalar

from ..core.error import IncompatibleValuesError
from ..core.logs import logger
from ..core.validate import require_atleast

# Absolute tolerance of the maximizer.
DEFAULT_XATOL = 1.e-6


def maximize_bounded(objective: Callable[[float], float],
                     lower: float,
                     upper: float, *,
                     max_iter: int,
                     xatol: float = DEFAULT_XATOL,
                     name: str = "x"):
    """ Find the value of a scalar in [lower, upper] that maximizes an
    objective function.

    Parameters
    ----------
    objective: Callable[[float], float]
        Function to maximize; non-finite values count as -inf.
    lower: float
        Lower bound of the search interval.
    upper: float
        Upper bound of the search interval.
    max_iter: int
        Maximum number of iterations.
    xatol: float
        Absolute tolerance of the maximizer.
    name: str
        Name of the parameter, for logging.

    Returns
    -------
    float
        Best value found; always within [lower, upper].
    """
    require_atleast("max_iter", max_iter, 1, classes=int)
    if not lower <= upper:
        raise IncompatibleValuesError(f"Lower bound of {name} ({lower}) "
                                      f"exceeds upper bound ({upper})")
    if lower == upper:
        return float(lower)

    def minimand(x: float):
        value = objective(x)
        return -value if np.isfinite(value) else np.inf

    result = minimize_scalar(minimand,
                             bounds=(lower, upper),
                             method="bounded",
                             options=dict(maxiter=max_iter, xatol=xatol))
    if not result.success:
        logger.warning(f"Brent's method did not converge for {name} "
                       f"after {result.nfev} evaluations: {result.message}; "
                       f"using best value {result.x}")
    # The bounded method never evaluates the bounds themselves.
    best_x = float(np.clip(result.x, lower, upper))
    best_value = -minimand(best_x)
    for bound in (lower, upper):
        if (value := -minimand(bound)) > best_value:
            best_x, best_value = float(bound), value
    logger.detail(f"Maximized objective over {name} in [{lower}, {upper}]: "
                  f"{name}={best_x}, objective={best_value}")
    return best_x

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
