from pathlib import Path

from click import group, version_option

from . import call, test, __version__
from .core.arg import (opt_exit_on_error,
                       opt_log,
                       opt_log_color,
                       opt_quiet,
                       opt_verbose)
from .core.logs import logger, set_config

params = [
    opt_verbose,
    opt_quiet,
    opt_log,
    opt_log_color,
    opt_exit_on_error,
]


# Group for main commands
@group(params=params, context_settings={"show_default": True})
@version_option(__version__)
def cli(verbose: int,
        quiet: int,
        log: str | Path,
        log_color: bool,
        exit_on_error: bool):
    """ Command line interface of CROSSLINK-HMM. """
    log_file_path = Path(log).absolute() if log else None
    set_config(verbose - quiet, log_file_path, log_color, exit_on_error)
    logger.detail(f"This is CROSSLINK-HMM version {__version__}")


# Add all commands to the main CLI command group.

for module in [call, test]:
    cli.add_command(module.cli)

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
