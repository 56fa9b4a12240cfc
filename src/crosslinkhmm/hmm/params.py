"""

Model Parameters

========================================================================

The parameters of one replicate: two truncation-count components, two
signal components, and the transition probabilities. Parameters are
saved as a two-column tab-separated file of keys and values, e.g.::

    bin1.p          0.0123
    bin2.p          0.4567
    gamma1.k        0.8
    trans.1.2       0.05

With more than one replicate, every key is prefixed with ``rep<i>.``.

"""

from pathlib import Path

import numpy as np
import pandas as pd

from .states import NUM_STATES
from .trans import TransitionMatrix
from ..core.config import HMMConfig
from ..core.error import ParamsFileError
from ..core.logs import logger
from ..emit.base import EmissionModel

BIN1 = "bin1"
BIN2 = "bin2"
GAMMA1 = "gamma1"
GAMMA2 = "gamma2"
TRANS = "trans"
INIT = "init"
REP_PREFIX = "rep"


class ModelParams(object):
    """ All parameters of the model of one replicate. """

    def __init__(self,
                 bin1: EmissionModel,
                 bin2: EmissionModel,
                 gamma1: EmissionModel,
                 gamma2: EmissionModel,
                 trans: TransitionMatrix | None = None):
        self.bin1 = bin1
        self.bin2 = bin2
        self.gamma1 = gamma1
        self.gamma2 = gamma2
        self.trans = trans if trans is not None else TransitionMatrix()

    @property
    def emissions(self) -> list[EmissionModel]:
        return [self.bin1, self.bin2, self.gamma1, self.gamma2]

    def order_check(self, config: HMMConfig):
        """ Keep the components of the less enriched states from
        exceeding those of the more enriched states. """
        swapped = self.bin1.order_check(self.bin2, config)
        clamped = self.gamma1.order_check(self.gamma2, config)
        return swapped or clamped

    def converged(self, previous: "ModelParams", config: HMMConfig):
        """ Whether every emission parameter changed by less than its
        tolerance. """
        return all(model.converged(prev_model, config)
                   for model, prev_model in zip(self.emissions,
                                                previous.emissions,
                                                strict=True))

    def get_params(self):
        """ Every parameter, keyed by name. """
        params = dict()
        for model in self.emissions:
            for key, value in model.get_params().items():
                params[f"{model.name}.{key}"] = float(value)
        for i in range(NUM_STATES):
            for j in range(NUM_STATES):
                params[f"{TRANS}.{i}.{j}"] = float(self.trans.matrix[i, j])
        for i in range(NUM_STATES):
            params[f"{INIT}.{i}"] = float(self.trans.init[i])
        return params

    def set_params(self, params: dict[str, float]):
        """ Set every parameter given; keep the rest. """
        for model in self.emissions:
            prefix = f"{model.name}."
            model.set_params({key[len(prefix):]: value
                              for key, value in params.items()
                              if key.startswith(prefix)})
        matrix = self.trans.matrix.copy()
        init = self.trans.init.copy()
        for i in range(NUM_STATES):
            for j in range(NUM_STATES):
                if (key := f"{TRANS}.{i}.{j}") in params:
                    matrix[i, j] = params[key]
            if (key := f"{INIT}.{i}") in params:
                init[i] = params[key]
        self.trans = TransitionMatrix(matrix, init)

    def copy(self):
        return self.__class__(self.bin1.copy(),
                              self.bin2.copy(),
                              self.gamma1.copy(),
                              self.gamma2.copy(),
                              self.trans.copy())

    def __str__(self):
        return "\n".join(list(map(str, self.emissions)) + [str(self.trans)])


def _rep_prefix(rep: int, num_reps: int):
    return f"{REP_PREFIX}{rep}." if num_reps > 1 else ""


def write_params(params: list[ModelParams], file: str | Path):
    """ Write the parameters of every replicate to a file. """
    items = dict()
    for rep, rep_params in enumerate(params):
        prefix = _rep_prefix(rep, len(params))
        for key, value in rep_params.get_params().items():
            # repr() gives the shortest string that reads back exactly.
            items[f"{prefix}{key}"] = repr(float(value))
    file = Path(file)
    file.parent.mkdir(parents=True, exist_ok=True)
    pd.Series(items, dtype=object).to_csv(file, sep="\t", header=False)
    logger.routine(f"Wrote {len(items)} parameters to {file}")
    return file


def read_params(file: str | Path):
    """ Read parameters from a file into a dict.

    Parameters
    ----------
    file: str | Path
        File of parameters.

    Returns
    -------
    dict[str, float]
        Value of each parameter, keyed by name.

    Raises
    ------
    ParamsFileError
        If the file cannot be read, or if a line lacks a value or has a
        value that is not a number.
    """
    try:
        table = pd.read_csv(file,
                            sep="\t",
                            header=None,
                            names=["key", "value"],
                            index_col=False,
                            dtype=str,
                            keep_default_na=False)
    except pd.errors.EmptyDataError:
        logger.warning(f"File of parameters {file} is empty")
        return dict()
    except (OSError, pd.errors.ParserError) as error:
        logger.error(f"Could not read file of parameters {file}: {error}")
        raise ParamsFileError(f"Could not read file of parameters {file}: "
                              f"{error}") from error
    params = dict()
    for key, value in zip(table["key"], table["value"], strict=True):
        if pd.isna(value) or value == "":
            message = f"Parameter {repr(key)} in {file} has no value"
            logger.error(message)
            raise ParamsFileError(message)
        try:
            params[key] = float(value)
        except ValueError as error:
            message = (f"Parameter {repr(key)} in {file} has a value that "
                       f"is not a number: {repr(value)}")
            logger.error(message)
            raise ParamsFileError(message) from error
    logger.routine(f"Read {len(params)} parameters from {file}")
    return params


def load_params(params: list[ModelParams], file: str | Path):
    """ Set the parameters of every replicate from a file; parameters
    missing from the file keep their current values. """
    values = read_params(file)
    for rep, rep_params in enumerate(params):
        prefix = _rep_prefix(rep, len(params))
        rep_values = {key[len(prefix):]: value
                      for key, value in values.items()
                      if key.startswith(prefix)}
        if not rep_values and len(params) > 1:
            # Parameters without prefixes apply to every replicate.
            rep_values = {key: value for key, value in values.items()
                          if not key.startswith(REP_PREFIX)}
        rep_params.set_params(rep_values)
        logger.detail(f"Loaded parameters of replicate {rep}:\n{rep_params}")
    return params

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
