"""

Log-Sum-Exp Core Module

========================================================================

Adding two probabilities stored as logarithms requires

    log(exp(a) + exp(b)) = max(a, b) + log(1 + exp(-|a - b|))

and the correction term ``log(1 + exp(x))`` (for ``x ≤ 0``) is the
expensive part of every step of the forward and backward recursions.
A ``LogSumExpTable`` tabulates it once, at evenly spaced values of ``x``
in ``[min_value, 0]``. The kernels of the HMM engine look up ``x`` by
rounding it to the nearest tabulated value and compute values below
``min_value`` directly.

A table is immutable after construction and is passed explicitly to
every computation that needs it; worker threads share it read-only.

"""

import numpy as np

from .validate import require_atleast, require_less

DEFAULT_SIZE = 600000
DEFAULT_MIN_VALUE = -2000.


class LogSumExpTable(object):
    """ Table of log(1 + exp(x)) for x in [min_value, 0]. """
    __slots__ = ["_size", "_min_value", "_scale", "_values"]

    def __init__(self,
                 size: int = DEFAULT_SIZE,
                 min_value: float = DEFAULT_MIN_VALUE):
        require_atleast("size", size, 2, classes=int)
        require_less("min_value", min_value, 0., classes=(float, int))
        self._size = size
        self._min_value = float(min_value)
        # Number of table entries per unit of x.
        self._scale = (size - 1) / -self._min_value
        values = np.log1p(np.exp(np.linspace(self._min_value, 0., size)))
        values.flags.writeable = False
        self._values = values

    @property
    def size(self):
        return self._size

    @property
    def min_value(self):
        return self._min_value

    @property
    def scale(self):
        return self._scale

    @property
    def values(self):
        """ Read-only array of tabulated values. """
        return self._values

    def __eq__(self, other):
        return (isinstance(other, LogSumExpTable)
                and self._size == other._size
                and self._min_value == other._min_value)

    def __hash__(self):
        return hash((self._size, self._min_value))

    def __str__(self):
        return (f"{type(self).__name__}(size={self._size}, "
                f"min_value={self._min_value})")

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
