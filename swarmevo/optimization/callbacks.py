# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Evaluation sinks which can be provided to the :code:`run` methods of the algorithms.
A sink is called after each evaluation with the number of evaluations consumed so far,
the evaluated point and its fitness.
"""

import json
import datetime
import logging
import warnings
from pathlib import Path
import numpy as np
import swarmevo.common.typing as tp


global_logger = logging.getLogger(__name__)


class EvaluationLogger:
    """Logs each evaluation as a json line into a file.

    Parameters
    ----------
    filepath: str or pathlib.Path
        the path to dump data to
    append: bool
        whether to append the file (otherwise it replaces it)
    name: str
        name of the run, typically the identifier of the algorithm configuration

    Example
    -------

    .. code-block:: python

        logger = EvaluationLogger(filepath, name=swarm.id_string)
        swarm.run(problem, eval_budget=1000, population_size=20, logger=logger)
        list_of_dict_of_data = logger.load()
    """

    def __init__(self, filepath: tp.PathLike, append: bool = True, name: str = "") -> None:
        self._session = datetime.datetime.now().strftime("%y-%m-%d %H:%M:%S")
        self._filepath = Path(filepath)
        self._name = name
        if self._filepath.exists() and not append:
            self._filepath.unlink()
        self._filepath.parent.mkdir(exist_ok=True, parents=True)

    def __call__(self, evaluations: int, x: np.ndarray, fitness: float) -> None:
        data = {
            "#name": self._name,
            "#session": self._session,
            "#evaluations": int(evaluations),
            "#fitness": float(fitness),
            "x": np.asarray(x, dtype=float).tolist(),
        }
        try:  # logging must never interrupt a run
            with self._filepath.open("a") as f:
                f.write(json.dumps(data) + "\n")
        except (OSError, TypeError, ValueError) as e:
            warnings.warn(f"Failing to json data: {e}")

    def load(self) -> tp.List[tp.Dict[str, tp.Any]]:
        """Loads data from the log file"""
        data: tp.List[tp.Dict[str, tp.Any]] = []
        if self._filepath.exists():
            with self._filepath.open("r") as f:
                for line in f.readlines():
                    data.append(json.loads(line))
        return data


class PositionRecorder:
    """Keeps all evaluations in memory, in evaluation order"""

    def __init__(self) -> None:
        self.evaluations: tp.List[int] = []
        self.positions: tp.List[np.ndarray] = []
        self.fitnesses: tp.List[float] = []

    def __call__(self, evaluations: int, x: np.ndarray, fitness: float) -> None:
        self.evaluations.append(int(evaluations))
        self.positions.append(np.array(x, copy=True))
        self.fitnesses.append(float(fitness))

    def __len__(self) -> int:
        return len(self.fitnesses)


class ProgressLogger:
    """Logs the best fitness found so far every log_interval evaluations

    Parameters
    ----------
    logger:
        given logger that callback will use to log
    log_level:
        log level that logger will write to
    log_interval: int
        number of evaluations between two logs
    """

    def __init__(
        self, *, logger: logging.Logger = global_logger, log_level: int = logging.INFO, log_interval: int = 100
    ) -> None:
        assert log_interval > 0
        self._logger = logger
        self._log_level = log_level
        self._log_interval = int(log_interval)
        self.best_fitness = float("inf")

    def __call__(self, evaluations: int, x: np.ndarray, fitness: float) -> None:
        self.best_fitness = min(self.best_fitness, fitness)
        if not evaluations % self._log_interval:
            self._logger.log(self._log_level, "After %s evaluations, best fitness is %s", evaluations, self.best_fitness)
