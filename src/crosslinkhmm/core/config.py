from collections import namedtuple

from .arg import DECODE_METHODS
from .arg.docdef import auto
from .error import IncompatibleValuesError, OutOfBoundsError
from .logs import logger
from .validate import (require_atleast,
                       require_atmost,
                       require_between,
                       require_fraction,
                       require_greater,
                       require_isin,
                       require_isinstance,
                       require_less)

SCORE_TYPES = 0, 1, 2, 3

# Largest shape of the non-enriched gamma distribution when the shape
# does not depend on covariates.
G1_K_MAX_NO_COVARS = 1.

# Bounds of the largest number of read starts at a site for learning.
MAX_TRUNC_COUNT_MIN = 50
MAX_TRUNC_COUNT_MAX = 50000

HMMConfig = namedtuple("HMMConfig",
                       ["n_threshold_for_p",
                        "n_threshold_for_trans_p",
                        "auto_n_threshold",
                        "max_trunc_count",
                        "max_kn_ratio",
                        "bin_p_conv",
                        "gamma_k_conv",
                        "max_iter_brent",
                        "max_iter_multiroot",
                        "max_iter_bw",
                        "g1_k_min",
                        "g1_k_max",
                        "g2_k_min",
                        "g2_k_max",
                        "g1_k_le_g2_k",
                        "min_trans_prob_cs",
                        "lookup_table_size",
                        "lookup_table_min_value",
                        "high_precision",
                        "score_type",
                        "bin1_p_init",
                        "bin2_p_init",
                        "gamma_trunc",
                        "prior_enrichment_threshold",
                        "share_bin",
                        "decode",
                        "num_threads",
                        "num_threads_apply"])


@auto()
def make_config(*,
                n_threshold_for_p: float,
                n_threshold_for_trans_p: float,
                auto_n_threshold: bool,
                max_trunc_count: int,
                max_kn_ratio: float,
                bin_p_conv: float,
                gamma_k_conv: float,
                max_iter_brent: int,
                max_iter_multiroot: int,
                max_iter_bw: int,
                g1_k_min: float,
                g1_k_max: float,
                g2_k_min: float,
                g2_k_max: float,
                g1_k_le_g2_k: bool,
                min_trans_prob_cs: float,
                lookup_table_size: int,
                lookup_table_min_value: float,
                high_precision: bool,
                score_type: int,
                bin1_p_init: float,
                bin2_p_init: float,
                gamma_trunc: float,
                prior_enrichment_threshold: float | None,
                share_bin: bool,
                decode: str,
                num_threads: int,
                num_threads_apply: int):
    """ Validate the settings of a run and bundle them together. """
    number = float, int
    require_atleast("n_threshold_for_p", n_threshold_for_p, 0.,
                    classes=number)
    require_atleast("n_threshold_for_trans_p", n_threshold_for_trans_p, 0.,
                    classes=number)
    require_isinstance("auto_n_threshold", auto_n_threshold, bool)
    require_between("max_trunc_count", max_trunc_count,
                    MAX_TRUNC_COUNT_MIN, MAX_TRUNC_COUNT_MAX, classes=int,
                    error_type=OutOfBoundsError)
    require_greater("max_kn_ratio", max_kn_ratio, 0., classes=number)
    require_greater("bin_p_conv", bin_p_conv, 0., classes=number)
    require_greater("gamma_k_conv", gamma_k_conv, 0., classes=number)
    require_atleast("max_iter_brent", max_iter_brent, 1, classes=int)
    require_atleast("max_iter_multiroot", max_iter_multiroot, 1, classes=int)
    require_atleast("max_iter_bw", max_iter_bw, 0, classes=int)
    for name, k_min, k_max in [("g1", g1_k_min, g1_k_max),
                               ("g2", g2_k_min, g2_k_max)]:
        require_greater(f"{name}_k_min", k_min, 0., classes=number,
                        error_type=OutOfBoundsError)
        require_less(f"{name}_k_min", k_min, k_max, f"{name}_k_max",
                     classes=number, error_type=IncompatibleValuesError)
    if g1_k_le_g2_k:
        require_atmost("g1_k_min", g1_k_min, g2_k_min, "g2_k_min",
                       classes=number, error_type=IncompatibleValuesError)
    require_between("min_trans_prob_cs", min_trans_prob_cs, 0., 1.,
                    inclusive=False, classes=number,
                    error_type=OutOfBoundsError)
    require_isinstance("lookup_table_size", lookup_table_size, int)
    if lookup_table_size != 0:
        # A size of 0 disables the table in favor of exact arithmetic.
        require_atleast("lookup_table_size", lookup_table_size, 2,
                        classes=int)
    require_less("lookup_table_min_value", lookup_table_min_value, 0.,
                 classes=number)
    require_isinstance("high_precision", high_precision, bool)
    require_isin("score_type", score_type, SCORE_TYPES)
    require_fraction("bin1_p_init", bin1_p_init, inclusive=False,
                     error_type=OutOfBoundsError)
    require_fraction("bin2_p_init", bin2_p_init, inclusive=False,
                     error_type=OutOfBoundsError)
    if bin1_p_init > bin2_p_init:
        logger.warning(f"bin1_p_init ({bin1_p_init}) exceeds bin2_p_init "
                       f"({bin2_p_init}); they will be swapped")
        bin1_p_init, bin2_p_init = bin2_p_init, bin1_p_init
    require_atleast("gamma_trunc", gamma_trunc, 0., classes=number)
    if prior_enrichment_threshold is not None:
        require_atleast("prior_enrichment_threshold",
                        prior_enrichment_threshold, 0., classes=number)
    require_isinstance("share_bin", share_bin, bool)
    require_isin("decode", decode, DECODE_METHODS)
    require_atleast("num_threads", num_threads, 1, classes=int)
    require_atleast("num_threads_apply", num_threads_apply, 1, classes=int)
    return HMMConfig(n_threshold_for_p=float(n_threshold_for_p),
                     n_threshold_for_trans_p=float(n_threshold_for_trans_p),
                     auto_n_threshold=auto_n_threshold,
                     max_trunc_count=max_trunc_count,
                     max_kn_ratio=float(max_kn_ratio),
                     bin_p_conv=float(bin_p_conv),
                     gamma_k_conv=float(gamma_k_conv),
                     max_iter_brent=max_iter_brent,
                     max_iter_multiroot=max_iter_multiroot,
                     max_iter_bw=max_iter_bw,
                     g1_k_min=float(g1_k_min),
                     g1_k_max=float(g1_k_max),
                     g2_k_min=float(g2_k_min),
                     g2_k_max=float(g2_k_max),
                     g1_k_le_g2_k=g1_k_le_g2_k,
                     min_trans_prob_cs=float(min_trans_prob_cs),
                     lookup_table_size=lookup_table_size,
                     lookup_table_min_value=float(lookup_table_min_value),
                     high_precision=high_precision,
                     score_type=score_type,
                     bin1_p_init=float(bin1_p_init),
                     bin2_p_init=float(bin2_p_init),
                     gamma_trunc=float(gamma_trunc),
                     prior_enrichment_threshold=prior_enrichment_threshold,
                     share_bin=share_bin,
                     decode=decode,
                     num_threads=num_threads,
                     num_threads_apply=num_threads_apply)


def cap_g1_k_max(config: HMMConfig):
    """ Without covariates for the gamma shape, model the non-enriched
    signal with a shape of at most 1 (a decreasing density). """
    if config.g1_k_max <= G1_K_MAX_NO_COVARS:
        return config
    logger.routine(f"Set g1_k_max (maximum shape of the 'non-enriched' gamma "
                   f"distribution) to {G1_K_MAX_NO_COVARS}")
    g1_k_min = min(config.g1_k_min, G1_K_MAX_NO_COVARS / 2.)
    if g1_k_min != config.g1_k_min:
        logger.warning(f"Set g1_k_min from {config.g1_k_min} to {g1_k_min} "
                       f"to stay below g1_k_max")
    return config._replace(g1_k_min=g1_k_min, g1_k_max=G1_K_MAX_NO_COVARS)

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
