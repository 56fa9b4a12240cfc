from inspect import getmembers

from click import Option

from . import cli

# Get every option defined for the command line interface.
cli_opts = dict(getmembers(cli, lambda member: isinstance(member, Option)))

# Get the default value of every option whose default is not None.
cli_defaults = {option.name: option.default
                for option in cli_opts.values()
                if option.default is not None}

# Options whose default is None need it given explicitly.
extra_defaults = dict(in_params=None,
                      prior_enrichment_threshold=None)

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
