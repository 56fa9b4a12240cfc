from operator import eq, ge, gt, le, lt
from typing import Any, Callable, Container, Type

import numpy as np

from .error import ObservationsError

COMPARISON_SIGNS = {eq: "=",
                    ge: "≥",
                    gt: ">",
                    le: "≤",
                    lt: "<"}


def require_issubclass(name: str,
                       value: type,
                       classes: type | tuple[type, ...],
                       error_type: Type[ValueError] = ValueError) -> None:
    """ Raise an error if value is not a subclass of classes. """
    if not issubclass(value, classes):
        raise error_type(f"{name} must be a subclass of {classes}, "
                         f"but got {repr(value)}")


def require_isinstance(name: str,
                       value: Any,
                       classes: type | tuple[type, ...],
                       error_type: Type[TypeError] = TypeError) -> None:
    """ Raise an error if value is not an instance of classes. """
    if not isinstance(value, classes):
        require_issubclass("error_type", error_type, TypeError)
        raise error_type(f"{name} must be an instance of {classes}, "
                         f"but got {repr(value)} of type {type(value)}")


def require_isin(name: str,
                 value: Any,
                 values: Container,
                 error_type: Type[Exception] = ValueError):
    """ Require value to be in values. """
    if value not in values:
        raise error_type(f"{name} must be in {repr(values)}, "
                         f"but got {repr(value)}")


def _require_compare(name: str,
                     value: Any,
                     comparison: Callable[[Any, Any], bool],
                     compare_name: str,
                     compare_value: Any,
                     classes: type | tuple[type, ...],
                     error_type: Type[ValueError]):
    require_isinstance(name, value, classes)
    if not comparison(value, compare_value):
        require_issubclass("error_type", error_type, ValueError)
        sign = COMPARISON_SIGNS[comparison]
        if compare_name:
            message = (f"Must have {name} {sign} {compare_name}, "
                       f"but got {name}={repr(value)} "
                       f"and {compare_name}={repr(compare_value)}")
        else:
            message = (f"Must have {name} {sign} {repr(compare_value)}, "
                       f"but got {repr(value)}")
        raise error_type(message)


def require_equal(name: str,
                  value: Any,
                  other_value: Any,
                  other_name: str = "",
                  classes: type | tuple[type, ...] = object,
                  error_type: Type[ValueError] = ValueError):
    """ Require that value = other_value. """
    _require_compare(name, value, eq, other_name, other_value,
                     classes, error_type)


def require_atleast(name: str,
                    value: Any,
                    minimum_value: Any,
                    minimum_name: str = "",
                    classes: type | tuple[type, ...] = object,
                    error_type: Type[ValueError] = ValueError):
    """ Require that value ≥ minimum_value. """
    _require_compare(name, value, ge, minimum_name, minimum_value,
                     classes, error_type)


def require_greater(name: str,
                    value: Any,
                    other_value: Any,
                    other_name: str = "",
                    classes: type | tuple[type, ...] = object,
                    error_type: Type[ValueError] = ValueError):
    """ Require that value > other_value. """
    _require_compare(name, value, gt, other_name, other_value,
                     classes, error_type)


def require_atmost(name: str,
                   value: Any,
                   maximum_value: Any,
                   maximum_name: str = "",
                   classes: type | tuple[type, ...] = object,
                   error_type: Type[ValueError] = ValueError):
    """ Require that value ≤ maximum_value. """
    _require_compare(name, value, le, maximum_name, maximum_value,
                     classes, error_type)


def require_less(name: str,
                 value: Any,
                 other_value: Any,
                 other_name: str = "",
                 classes: type | tuple[type, ...] = object,
                 error_type: Type[ValueError] = ValueError):
    """ Require that value < other_value. """
    _require_compare(name, value, lt, other_name, other_value,
                     classes, error_type)


def require_between(name: str,
                    value: Any,
                    minimum_value: Any | None,
                    maximum_value: Any | None,
                    inclusive: bool = True,
                    classes: type | tuple[type, ...] = object,
                    error_type: Type[ValueError] = ValueError):
    """ Require that value is in [minimum_value, maximum_value] if
    inclusive is True, otherwise in (minimum_value, maximum_value). """
    if minimum_value is not None:
        if inclusive:
            require_atleast(name, value, minimum_value,
                            classes=classes, error_type=error_type)
        else:
            require_greater(name, value, minimum_value,
                            classes=classes, error_type=error_type)
    if maximum_value is not None:
        if inclusive:
            require_atmost(name, value, maximum_value,
                           classes=classes, error_type=error_type)
        else:
            require_less(name, value, maximum_value,
                         classes=classes, error_type=error_type)


def require_fraction(name: str,
                     value: Any,
                     inclusive: bool = True,
                     error_type: Type[ValueError] = ValueError):
    """ Require that value is in [0, 1] (or (0, 1) if not inclusive). """
    require_between(name, value, 0., 1.,
                    inclusive=inclusive,
                    classes=(float, int),
                    error_type=error_type)


def require_1d_array(name: str, array: np.ndarray, length: int | None = None):
    """ Require a 1-dimensional array, optionally of a given length. """
    require_isinstance(name, array, np.ndarray)
    if array.ndim != 1:
        raise ObservationsError(f"{name} must have 1 dimension, "
                                f"but got {array.ndim}")
    if length is not None and array.size != length:
        raise ObservationsError(f"{name} must have length {length}, "
                                f"but got {array.size}")


def require_nonnegative(name: str, array: np.ndarray):
    """ Require every value of an array to be finite and ≥ 0. """
    if not np.all(np.isfinite(array)):
        raise ObservationsError(f"{name} must be finite, but got "
                                f"{np.count_nonzero(~np.isfinite(array))} "
                                f"non-finite value(s)")
    if np.any(array < 0):
        raise ObservationsError(f"{name} must be ≥ 0, but got "
                                f"{np.count_nonzero(array < 0)} "
                                f"negative value(s)")

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
