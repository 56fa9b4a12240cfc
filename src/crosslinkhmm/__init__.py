"""

CROSSLINK-HMM
========================================================================

Infer protein-RNA crosslink sites from read-start (truncation) profiles
with a non-homogeneous hidden Markov model whose emissions combine a
zero-truncated binomial model of read-start counts with a gamma model
of the smoothed read-start signal.

Expose the version at the top level::

    >>> import crosslinkhmm
    >>> crosslinkhmm.__version__
    'x.y.z'

"""

from .core.version import __version__

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
