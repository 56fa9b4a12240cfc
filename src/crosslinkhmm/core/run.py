from functools import wraps
from typing import Callable, Optional

from .arg import docdef
from .logs import logger, log_exceptions


def log_command(command: str):
    """ Log the beginning and end of a command. """

    def decorator(func: Callable):

        @wraps(func)
        def wrapper(*args, **kwargs):
            logger.status(f"Began {command}")
            result = func(*args, **kwargs)
            logger.status(f"Ended {command}")
            return result

        return wrapper

    return decorator


def run_func(command: str,
             default: Optional[Callable] = list,
             **kwargs):
    """ Decorator for the function that runs a command: fill in default
    arguments, log (rather than raise) exceptions, and log the command.
    """

    def decorator(func: Callable):
        func = docdef.auto(**kwargs)(func)
        func = log_exceptions(default)(func)
        func = log_command(command)(func)
        return func

    return decorator

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
