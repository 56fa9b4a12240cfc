import numpy as np

from .states import State

# Scores of the posterior probabilities of the states at a position.
SCORE_MAX_OVER_SECOND = 0
SCORE_CROSSLINK_OVER_ENRICHED = 1
SCORE_CROSSLINK_LOG_ODDS = 2
SCORE_CROSSLINK_PROB = 3


def _log_ratio(numer: np.ndarray, denom: np.ndarray):
    # Bound both probabilities away from 0 to keep the ratio finite.
    tiny = np.finfo(float).tiny
    return (np.log(np.maximum(numer, tiny))
            - np.log(np.maximum(denom, tiny)))


def calc_scores(posteriors: np.ndarray, score_type: int):
    """ Score every position from the posterior probabilities.

    Parameters
    ----------
    posteriors: np.ndarray
        2D (positions x states) posterior probabilities.
    score_type: int
        0: log of the ratio of the most to the second most likely state;
        1: log of the ratio of crosslink to enriched;
        2: log odds of crosslink;
        3: probability of crosslink.

    Returns
    -------
    np.ndarray
        1D (positions) score of each position.
    """
    posteriors = np.asarray(posteriors, dtype=float)
    crosslink = posteriors[:, State.CROSSLINK]
    if score_type == SCORE_MAX_OVER_SECOND:
        ranked = np.sort(posteriors, axis=1)
        return _log_ratio(ranked[:, -1], ranked[:, -2])
    if score_type == SCORE_CROSSLINK_OVER_ENRICHED:
        return _log_ratio(crosslink, posteriors[:, State.ENRICHED])
    if score_type == SCORE_CROSSLINK_LOG_ODDS:
        return _log_ratio(crosslink, 1. - crosslink)
    if score_type == SCORE_CROSSLINK_PROB:
        return crosslink.copy()
    raise ValueError(f"Invalid score_type: {score_type}")

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
