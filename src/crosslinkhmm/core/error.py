""" Exceptions of CROSSLINK-HMM """


class IncompatibleValuesError(ValueError):
    """ Two or more values are individually valid, but their combination
    is not. """


class InconsistentValueError(ValueError):
    """ Two or more values differ when they should be equal. """


class OutOfBoundsError(ValueError):
    """ A numeric value is outside its proper bounds. """


class NoDataError(RuntimeError):
    """ Data were required, but none were provided. """


class ObservationsError(ValueError):
    """ The arrays of observations of a chain are inconsistent. """


class ParamsFileError(OSError):
    """ A file of model parameters could not be read or is malformed. """

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
