import os
from datetime import datetime

from click import Choice, Option, Path

from ..logs import logger

# System information
CWD = os.getcwd()
if (NUM_CPUS := os.cpu_count()) is None:
    logger.warning("Failed to determine CPU count: defaulting to 1")
    NUM_CPUS = 1

DECODE_POSTERIOR = "posterior"
DECODE_VITERBI = "viterbi"
DECODE_METHODS = DECODE_POSTERIOR, DECODE_VITERBI

# Input/output options

opt_obs_file = Option(
    ("--obs-file", "-i"),
    type=Path(exists=True, dir_okay=False),
    multiple=True,
    default=(),
    help="Table of observations (one file per replicate)"
)

opt_out_calls = Option(
    ("--out-calls", "-o"),
    type=Path(dir_okay=False),
    default=os.path.join(".", "calls.tsv"),
    help="Write the state and score of every position to this file"
)

opt_out_params = Option(
    ("--out-params", "-p"),
    type=Path(dir_okay=False),
    default=os.path.join(".", "params.tsv"),
    help="Write the learned parameters to this file"
)

opt_in_params = Option(
    ("--in-params",),
    type=Path(exists=False, dir_okay=False),
    default=None,
    help="Load initial parameters from this file"
)

opt_learn_chroms = Option(
    ("--learn-chroms",),
    type=str,
    multiple=True,
    default=(),
    help="Learn parameters on only these chromosomes (default: all)"
)

opt_apply_chroms = Option(
    ("--apply-chroms",),
    type=str,
    multiple=True,
    default=(),
    help="Call states on only these chromosomes (default: all)"
)

opt_max_gap = Option(
    ("--max-gap",),
    type=int,
    default=1,
    help="Split chains where consecutive positions are farther apart"
)

# Resource usage options

opt_num_threads = Option(
    ("--num-threads",),
    type=int,
    default=NUM_CPUS,
    help="Learn parameters with up to this many threads simultaneously"
)

opt_num_threads_apply = Option(
    ("--num-threads-apply",),
    type=int,
    default=NUM_CPUS,
    help="Call states with up to this many threads simultaneously"
)

# Binomial emission options

opt_bin1_p_init = Option(
    ("--bin1-p-init",),
    type=float,
    default=0.01,
    help="Initial truncation probability of the non-crosslink states"
)

opt_bin2_p_init = Option(
    ("--bin2-p-init",),
    type=float,
    default=0.15,
    help="Initial truncation probability of the crosslink state"
)

opt_n_threshold_for_p = Option(
    ("--n-threshold-for-p",),
    type=float,
    default=10.,
    help="Learn truncation probabilities from only sites with n ≥ this value"
)

opt_n_threshold_for_trans_p = Option(
    ("--n-threshold-for-trans-p",),
    type=float,
    default=0.,
    help=("Learn transitions from 'enriched' to 'enriched' or 'crosslink' "
          "from only sites with n ≥ this value")
)

opt_auto_n_threshold = Option(
    ("--auto-n-threshold/--fixed-n-threshold",),
    type=bool,
    default=False,
    help=("Choose both n thresholds from the read starts expected at "
          "crosslink sites instead of the values given")
)

opt_max_trunc_count = Option(
    ("--max-trunc-count",),
    type=int,
    default=500,
    help=("Learn from only chains whose every site has at most this many "
          "read starts")
)

opt_max_kn_ratio = Option(
    ("--max-kn-ratio",),
    type=float,
    default=1.,
    help="Learn truncation probabilities from only sites with k/n ≤ this value"
)

opt_bin_p_conv = Option(
    ("--bin-p-conv",),
    type=float,
    default=1.e-4,
    help="Converge when truncation probabilities change by less than this"
)

opt_share_bin = Option(
    ("--share-bin/--no-share-bin",),
    type=bool,
    default=True,
    help="Pool all replicates to learn the truncation probabilities"
)

# Gamma emission options

opt_g1_k_min = Option(
    ("--g1-k-min",),
    type=float,
    default=0.1,
    help="Minimum shape of the 'non-enriched' gamma distribution"
)

opt_g1_k_max = Option(
    ("--g1-k-max",),
    type=float,
    default=3.,
    help="Maximum shape of the 'non-enriched' gamma distribution"
)

opt_g2_k_min = Option(
    ("--g2-k-min",),
    type=float,
    default=1.,
    help="Minimum shape of the 'enriched' gamma distribution"
)

opt_g2_k_max = Option(
    ("--g2-k-max",),
    type=float,
    default=30.,
    help="Maximum shape of the 'enriched' gamma distribution"
)

opt_g1_k_le_g2_k = Option(
    ("--g1-k-le-g2-k/--g1-k-free",),
    type=bool,
    default=True,
    help="Constrain the 'non-enriched' shape to ≤ the 'enriched' shape"
)

opt_gamma_k_conv = Option(
    ("--gamma-k-conv",),
    type=float,
    default=1.e-3,
    help="Converge when gamma shapes change by less than this"
)

opt_gamma_trunc = Option(
    ("--gamma-trunc",),
    type=float,
    default=0.,
    help="Left-truncate the gamma distributions at this signal value"
)

opt_prior_enrichment_threshold = Option(
    ("--prior-enrichment-threshold",),
    type=float,
    default=None,
    help=("Initially classify sites with at least this signal as 'enriched' "
          "(default: median signal)")
)

# Transition options

opt_min_trans_prob_cs = Option(
    ("--min-trans-prob-cs",),
    type=float,
    default=1.e-4,
    help="Minimum probability of a transition from 'enriched' to 'crosslink'"
)

# Solver options

opt_max_iter_brent = Option(
    ("--max-iter-brent",),
    type=int,
    default=100,
    help="Run Brent's method for at most this many iterations"
)

opt_max_iter_multiroot = Option(
    ("--max-iter-multiroot",),
    type=int,
    default=100,
    help="Run the multidimensional root finder for at most this many iterations"
)

opt_max_iter_bw = Option(
    ("--max-iter-bw",),
    type=int,
    default=50,
    help="Run Baum-Welch for at most this many iterations"
)

# Numeric options

opt_lookup_table_size = Option(
    ("--lookup-table-size",),
    type=int,
    default=600000,
    help="Size of the lookup table of log-sum-exp values"
)

opt_lookup_table_min_value = Option(
    ("--lookup-table-min-value",),
    type=float,
    default=-2000.,
    help="Minimum value in the lookup table of log-sum-exp values"
)

opt_high_precision = Option(
    ("--high-precision/--double-precision",),
    type=bool,
    default=False,
    help="Store probabilities with extended (long double) precision"
)

# Decoding options

opt_decode = Option(
    ("--decode",),
    type=Choice(DECODE_METHODS),
    default=DECODE_POSTERIOR,
    help="Assign states by maximum posterior probability or Viterbi path"
)

opt_score_type = Option(
    ("--score-type",),
    type=int,
    default=0,
    help=("Score each site as 0: log ratio of the two most likely states; "
          "1: log ratio of 'crosslink' to 'enriched'; "
          "2: log odds of 'crosslink'; "
          "3: posterior probability of 'crosslink'")
)

# Logging options

opt_verbose = Option(
    ("--verbose", "-v"),
    count=True,
    help="Log more messages (-v, -vv, or -vvv) on stderr"
)

opt_quiet = Option(
    ("--quiet", "-q"),
    count=True,
    help="Log fewer messages (-q, -qq, or -qqq) on stderr"
)

opt_log = Option(
    ("--log",),
    type=Path(exists=False, dir_okay=False),
    default=os.path.join(CWD, "log", datetime.now().strftime(
        "crosslink-hmm_%Y-%m-%d_%H-%M-%S.log"
    )),
    help="Log all messages to a file"
)

opt_log_color = Option(
    ("--log-color/--log-plain",),
    type=bool,
    default=True,
    help="Log messages with or without color codes on stderr"
)

opt_exit_on_error = Option(
    ("--exit-on-error/--log-on-error",),
    type=bool,
    default=False,
    help="Raise errors immediately rather than logging them"
)

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
