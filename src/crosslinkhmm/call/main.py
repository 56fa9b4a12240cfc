from pathlib import Path
from typing import Iterable

from click import command

from .io import read_observations, select_chroms, write_calls
from ..bw.em import BaumWelch, exclude_high_counts, init_params
from ..core.arg import (CMD_CALL,
                        opt_obs_file,
                        opt_out_calls,
                        opt_out_params,
                        opt_in_params,
                        opt_learn_chroms,
                        opt_apply_chroms,
                        opt_max_gap,
                        opt_num_threads,
                        opt_num_threads_apply,
                        opt_bin1_p_init,
                        opt_bin2_p_init,
                        opt_n_threshold_for_p,
                        opt_n_threshold_for_trans_p,
                        opt_auto_n_threshold,
                        opt_max_trunc_count,
                        opt_max_kn_ratio,
                        opt_bin_p_conv,
                        opt_share_bin,
                        opt_g1_k_min,
                        opt_g1_k_max,
                        opt_g2_k_min,
                        opt_g2_k_max,
                        opt_g1_k_le_g2_k,
                        opt_gamma_k_conv,
                        opt_gamma_trunc,
                        opt_prior_enrichment_threshold,
                        opt_min_trans_prob_cs,
                        opt_max_iter_brent,
                        opt_max_iter_multiroot,
                        opt_max_iter_bw,
                        opt_lookup_table_size,
                        opt_lookup_table_min_value,
                        opt_high_precision,
                        opt_decode,
                        opt_score_type)
from ..core.config import make_config
from ..core.error import NoDataError
from ..core.logs import logger
from ..core.run import run_func
from ..hmm.params import load_params, write_params


@run_func(CMD_CALL)
def run(obs_file: Iterable[str | Path], *,
        out_calls: str | Path,
        out_params: str | Path,
        in_params: str | Path | None,
        learn_chroms: Iterable[str],
        apply_chroms: Iterable[str],
        max_gap: int,
        **kwargs) -> list[Path]:
    """ Learn the parameters of the model and call crosslink sites. """
    obs_file = list(obs_file)
    if not obs_file:
        raise NoDataError("No files of observations were given")
    config = make_config(**kwargs)
    # Each file of observations is one replicate.
    all_chains = [read_observations(file, max_gap) for file in obs_file]
    learn_reps = [exclude_high_counts(select_chroms(chains, learn_chroms),
                                      config.max_trunc_count)
                  for chains in all_chains]
    apply_reps = [select_chroms(chains, apply_chroms) for chains in all_chains]
    params = init_params(learn_reps, config)
    if in_params:
        load_params(params, in_params)
    bw = BaumWelch(learn_reps, config, params).run()
    logger.status(f"Learned parameters ({bw.status.value} after "
                  f"{bw.iteration} iteration(s))")
    params_file = write_params(bw.params, out_params)
    calls = bw.apply(apply_reps)
    calls_file = write_calls(calls, out_calls)
    return [params_file, calls_file]


params = [
    # Input/output
    opt_obs_file,
    opt_out_calls,
    opt_out_params,
    opt_in_params,
    opt_learn_chroms,
    opt_apply_chroms,
    opt_max_gap,
    # Truncation counts
    opt_bin1_p_init,
    opt_bin2_p_init,
    opt_n_threshold_for_p,
    opt_n_threshold_for_trans_p,
    opt_auto_n_threshold,
    opt_max_trunc_count,
    opt_max_kn_ratio,
    opt_bin_p_conv,
    opt_share_bin,
    # Signal
    opt_g1_k_min,
    opt_g1_k_max,
    opt_g2_k_min,
    opt_g2_k_max,
    opt_g1_k_le_g2_k,
    opt_gamma_k_conv,
    opt_gamma_trunc,
    opt_prior_enrichment_threshold,
    # Transitions
    opt_min_trans_prob_cs,
    # Iterations
    opt_max_iter_brent,
    opt_max_iter_multiroot,
    opt_max_iter_bw,
    # Numerics
    opt_lookup_table_size,
    opt_lookup_table_min_value,
    opt_high_precision,
    # Decoding
    opt_decode,
    opt_score_type,
    # Parallelization
    opt_num_threads,
    opt_num_threads_apply,
]


@command(CMD_CALL, params=params)
def cli(*args, **kwargs):
    """ Learn the parameters of the model and call crosslink sites. """
    return run(*args, **kwargs)

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
