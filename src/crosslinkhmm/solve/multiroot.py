"""

Multidimensional Root Finding

========================================================================

Regression coefficients are fit by solving the stationarity conditions
of the weighted log likelihood (its gradient equals zero). Failure to
converge is not an error: the last iterate is returned, or the starting
point if the last iterate is not finite.

"""

from typing import Callable

import numpy as np
from scipy.optimize import root

from ..core.logs import logger
from ..core.validate import require_atleast


def find_root(func: Callable[[np.ndarray], np.ndarray],
              x0: np.ndarray, *,
              max_iter: int,
              name: str = "x"):
    """ Find a root of a vector function with Powell's hybrid method.

    Parameters
    ----------
    func: Callable[[np.ndarray], np.ndarray]
        Function whose root to find; maps a vector to a vector of the
        same length.
    x0: np.ndarray
        Starting point.
    max_iter: int
        Maximum number of iterations, in units of the number of
        dimensions (one iteration evaluates the function once for each
        dimension while estimating the Jacobian).
    name: str
        Name of the parameters, for logging.

    Returns
    -------
    np.ndarray
        Root, or the best available approximation of it.
    """
    require_atleast("max_iter", max_iter, 1, classes=int)
    x0 = np.asarray(x0, dtype=float)
    max_fev = max_iter * (x0.size + 1)
    result = root(func, x0, method="hybr", options=dict(maxfev=max_fev))
    x = np.asarray(result.x, dtype=float)
    if not np.all(np.isfinite(x)):
        logger.warning(f"Root finding for {name} produced non-finite values; "
                       f"keeping starting point {x0}")
        return x0.copy()
    if not result.success:
        logger.warning(f"Root finding for {name} did not converge after "
                       f"{result.nfev} evaluations: {result.message}; "
                       f"using last iterate {x}")
    logger.detail(f"Found root of {name}: {x}")
    return x

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
