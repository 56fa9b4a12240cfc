"""

Numeric Precision Core Module

========================================================================

Emission probabilities, forward and backward tables, and posterior
probabilities are stored in one floating-point type, which is chosen
once per run. Double precision is the default; extended precision
(``numpy.longdouble``) can be requested for very long chains, although
working in log space makes it rarely necessary.

"""

import numpy as np

from .logs import logger


class Precision(object):
    """ Floating-point type used to store probabilities. """
    __slots__ = ["dtype"]

    def __init__(self, dtype: type | np.dtype):
        self.dtype = np.dtype(dtype)
        if self.dtype.kind != "f":
            raise TypeError(f"Precision requires a floating-point type, "
                            f"but got {self.dtype}")

    @property
    def name(self):
        return self.dtype.name

    @property
    def compiled(self):
        """ Whether the compiled kernels can handle this type. """
        return self.dtype == np.float64

    @property
    def eps(self):
        return float(np.finfo(self.dtype).eps)

    def asarray(self, values):
        """ Convert values to an array of this type. """
        return np.asarray(values, dtype=self.dtype)

    def empty(self, shape):
        return np.empty(shape, dtype=self.dtype)

    def zeros(self, shape):
        return np.zeros(shape, dtype=self.dtype)

    def __eq__(self, other):
        return isinstance(other, Precision) and self.dtype == other.dtype

    def __hash__(self):
        return hash(self.dtype)

    def __str__(self):
        return f"{type(self).__name__}({self.name})"


DOUBLE = Precision(np.float64)
EXTENDED = Precision(np.longdouble)


def get_precision(high_precision: bool):
    """ Select the precision for a run. """
    if not high_precision:
        return DOUBLE
    if EXTENDED.eps >= DOUBLE.eps:
        logger.warning(f"{EXTENDED.name} is no more precise than "
                       f"{DOUBLE.name} on this platform")
    logger.detail(f"Storing probabilities with {EXTENDED}")
    return EXTENDED

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
