from concurrent.futures import ThreadPoolExecutor, as_completed
from inspect import getmodule
from itertools import filterfalse, repeat
from typing import Any, Callable, Iterable

from .logs import Level, logger, get_config
from .validate import require_equal


def calc_pool_size(num_tasks: int, num_threads: int):
    """ Calculate the size of a thread pool.

    Parameters
    ----------
    num_tasks: int
        Number of tasks to parallelize. Must be ≥ 1.
    num_threads: int
        Number of threads available. Must be ≥ 1.

    Returns
    -------
    int
        Size of the pool (number of concurrent tasks). Always ≥ 1.
    """
    if num_threads < 1:
        logger.warning(f"num_threads must be ≥ 1, but got {num_threads}; "
                       f"defaulting to 1")
        num_threads = 1
    if num_tasks < 1:
        logger.warning(f"num_tasks must be ≥ 1, but got {num_tasks}; "
                       f"defaulting to 1")
        num_tasks = 1
    return min(num_tasks, num_threads)


class Task(object):
    """ Wrap a parallelizable task so that its start and end are logged
    with a description whose detail depends on the verbosity. """

    def __init__(self, func: Callable):
        self._func = func

    @property
    def name(self):
        module = getmodule(self._func)
        module_name = module.__name__ if module is not None else "<unknown>"
        return f"{module_name}.{self._func.__name__}"

    def __call__(self, *args, **kwargs):
        verbosity = get_config().verbosity
        description_items = list()
        if verbosity >= Level.ROUTINE:
            description_items.extend(map(str, args))
        if verbosity >= Level.DETAIL:
            description_items.extend(f"{k}={repr(v)}"
                                     for k, v in kwargs.items())
        description = f"{self.name}({', '.join(description_items)})"
        logger.action(f"Began {description}")
        result = self._func(*args, **kwargs)
        logger.action(f"Ended {description}")
        return result


def _dispatch(funcs: Callable | list[Callable], *,
              num_threads: int,
              ordered: bool,
              raise_on_error: bool,
              args: tuple | Iterable[tuple] = (),
              kwargs: dict[str, Any] | None = None):
    if kwargs is None:
        kwargs = dict()
    if callable(funcs):
        if isinstance(args, tuple):
            args = [args]
        else:
            args = list(args)
            nontuple = list(filterfalse(lambda x: isinstance(x, tuple), args))
            if nontuple:
                raise TypeError(f"Got non-tuple args: {nontuple}")
        # Call the one function once per tuple of arguments.
        funcs = list(repeat(funcs, len(args)))
    else:
        uncallable = list(filterfalse(callable, funcs))
        if uncallable:
            raise TypeError(f"Got uncallable funcs: {uncallable}")
        if isinstance(args, tuple):
            args = list(repeat(args, len(funcs)))
    num_tasks = len(funcs)
    require_equal("len(funcs)", num_tasks, len(args), "len(args)")
    if num_tasks == 0:
        logger.task("No tasks were given to dispatch")
        return
    pool_size = calc_pool_size(num_tasks, num_threads)
    logger.detail(f"Calculated size of thread pool: {pool_size}")
    num_failed = 0
    if pool_size > 1:
        with ThreadPoolExecutor(max_workers=pool_size) as pool:
            logger.task(f"Opened pool of {pool_size} threads")
            futures = [pool.submit(Task(func), *task_args, **kwargs)
                       for func, task_args in zip(funcs, args, strict=True)]
            logger.task(f"Waiting for {num_tasks} tasks to finish")
            for future in (futures if ordered else as_completed(futures)):
                try:
                    yield future.result()
                except Exception as error:
                    if raise_on_error:
                        raise error
                    logger.error(error)
                    num_failed += 1
        logger.task(f"Closed pool of {pool_size} threads")
    else:
        logger.task(f"Began running {num_tasks} task(s) in series")
        for func, task_args in zip(funcs, args, strict=True):
            try:
                yield Task(func)(*task_args, **kwargs)
            except Exception as error:
                if raise_on_error:
                    raise error
                logger.error(error)
                num_failed += 1
        logger.task(f"Ended running {num_tasks} task(s) in series")
    if num_failed:
        message = f"Failed {num_failed} of {num_tasks} task(s)"
        if raise_on_error:
            raise RuntimeError(message)
        logger.warning(message)
    else:
        logger.task(f"All {num_tasks} task(s) completed successfully")


def dispatch(funcs: Callable | list[Callable], *,
             num_threads: int,
             as_list: bool,
             ordered: bool,
             raise_on_error: bool,
             args: tuple | Iterable[tuple] = (),
             kwargs: dict[str, Any] | None = None):
    """ Run one or more tasks in series or in a pool of threads, which
    join before this function returns (if `as_list`) or as the results
    are consumed (otherwise).

    Parameters
    ----------
    funcs: Callable | list[Callable]
        The function(s) to run. If a single function, then it is called
        once for each tuple of positional arguments in `args`.
    num_threads: int
        Number of threads available. Must be ≥ 1.
    as_list: bool
        Return results as a list (if True) or an iterator (if False).
    ordered: bool
        Return results in the same order as they were given in `funcs`
        and/or `args` (if True) or in order of completion (if False).
    raise_on_error: bool
        If any task fails, then raise the exception that it raises (if
        True) or log that exception as an error (if False).
    args: tuple | Iterable[tuple]
        Positional arguments to pass to each function in `funcs`.
    kwargs: dict[str, Any] | None
        Keyword arguments to pass to every function call.
    """
    results = _dispatch(funcs,
                        num_threads=num_threads,
                        ordered=ordered,
                        raise_on_error=raise_on_error,
                        args=args,
                        kwargs=kwargs)
    return list(results) if as_list else iter(results)


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
