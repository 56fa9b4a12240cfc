"""

Automatic Defaults and Docstrings

========================================================================

Every option of the command line carries its default value and help
text. Functions of the API take the same parameters by name, so their
defaults and docstrings are copied from the matching options to keep
the command line and the API in agreement.

"""

from functools import wraps
from inspect import Parameter, Signature
from textwrap import dedent
from typing import Any, Callable

from .default import cli_defaults, cli_opts, extra_defaults

# Parameters that never take defaults or documentation.
reserved_params = ["self", "cls"]

# Documentation of every option.
cli_docstrs = {option.name: option.help for option in cli_opts.values()}


def _replace_default(param: Parameter,
                     defaults: dict[str, Any],
                     exclude: tuple[str, ...]):
    if param.name in reserved_params or param.name in exclude:
        return param
    if param.name not in defaults:
        return param
    return param.replace(default=defaults[param.name])


def auto_defaults(defaults: dict[str, Any] | None = None,
                  exclude: tuple[str, ...] = ()):
    """ Give the keyword-only parameters of a function the defaults of
    the options with the same names. """
    all_defaults = cli_defaults | extra_defaults
    if defaults is not None:
        all_defaults = all_defaults | defaults

    def decorator(func: Callable):
        sig = Signature.from_callable(func)
        new_params = [_replace_default(param, all_defaults, exclude)
                      for param in sig.parameters.values()]
        try:
            # Affects only the signature shown in help text.
            func.__signature__ = sig.replace(parameters=new_params)
        except ValueError as error:
            raise ValueError(f"Failed to set the signature of "
                             f"{func.__name__}: {error}")
        # Affects the values actually passed.
        default_kwargs = {param.name: param.default for param in new_params
                          if param.kind == Parameter.KEYWORD_ONLY
                          and param.default is not Parameter.empty}

        @wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **(default_kwargs | kwargs))

        return wrapper

    return decorator


def _format_param(name: str, param: Parameter, docstr: str):
    if param.annotation is param.empty:
        name_type = name
    else:
        # Some annotations (e.g. unions) have no __name__.
        name_type = (f"{name}: "
                     f"{getattr(param.annotation, '__name__', param.annotation)}")
    if param.default is param.empty:
        docstr = f"{docstr} [{param.kind.description}]"
    else:
        docstr = (f"{docstr} [{param.kind.description}, "
                  f"default: {repr(param.default)}]")
    return [name_type, f"    {docstr}"]


def auto_docstrs(docstrs: dict[str, str] | None = None):
    """ Append the documentation of every parameter that matches an
    option to the docstring of a function. """
    all_docstrs = cli_docstrs if docstrs is None else cli_docstrs | docstrs

    def decorator(func: Callable):
        sig = Signature.from_callable(func)
        param_lines = list()
        for name, param in sig.parameters.items():
            if name in reserved_params:
                continue
            if docstr := all_docstrs.get(name):
                param_lines.extend(_format_param(name, param, docstr))
        lines = [dedent(func.__doc__)] if func.__doc__ else list()
        if param_lines:
            if lines:
                lines.append("")
            lines.extend(["Parameters", "----------"])
            lines.extend(param_lines)
        func.__doc__ = "\n".join(lines)
        return func

    return decorator


def auto(*,
         defaults: dict[str, Any] | None = None,
         exclude: tuple[str, ...] = (),
         docstrs: dict[str, str] | None = None):
    """ Apply `auto_defaults` and then `auto_docstrs`. """

    def decorator(func: Callable):
        func = auto_defaults(defaults, exclude)(func)
        func = auto_docstrs(docstrs)(func)
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
