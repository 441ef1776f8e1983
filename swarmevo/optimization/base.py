# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import Registry
from swarmevo.functions.base import Problem


registry: Registry["ConfiguredAlgorithm"] = Registry("algorithm")
X = tp.TypeVar("X", bound="ConfiguredAlgorithm")


class RunResult(tp.NamedTuple):
    """Outcome of a run"""

    best_position: np.ndarray
    best_fitness: float
    evaluations: int
    iterations: int
    stagnation: int  # number of final iterations without improvement of the best fitness
    population_size: int


class ConfiguredAlgorithm:
    """Base class for configured algorithms, holding the configuration and the random state.

    Parameters
    ----------
    config: dict
        dictionnary of all the configurations (typically :code:`locals()` of the subclass)
    random_state: RandomState (optional)
        random state to pull from. If not provided, a new one is created lazily.
        It can be seeded or replaced through the :code:`random_state` attribute.

    Note
    ----
    This provides a default repr which can be bypassed through set_name
    """

    def __init__(self, config: tp.Dict[str, tp.Any], random_state: tp.Optional[np.random.RandomState] = None) -> None:
        config = dict(config)
        for key in ("self", "__class__", "random_state"):
            config.pop(key, None)  # comes from "locals()"
        self._config = {x: y.value if hasattr(y, "value") else y for x, y in config.items()}
        self._random_state = random_state
        params = ", ".join(f"{x}={y!r}" for x, y in sorted(self._config.items()))
        self.name = f"{self.__class__.__name__}({params})"

    @property
    def random_state(self) -> np.random.RandomState:
        """Random state the algorithm and its strategies pull from.
        It can be seeded/replaced.
        """
        if self._random_state is None:
            self._random_state = np.random.RandomState()
        return self._random_state

    @random_state.setter
    def random_state(self, random_state: np.random.RandomState) -> None:
        self._random_state = random_state

    @property
    def id_string(self) -> str:
        """Short identifier of the configuration, for naming output artifacts"""
        raise NotImplementedError

    def config(self) -> tp.Dict[str, tp.Any]:
        return dict(self._config)

    def set_name(self: X, name: str, register: bool = False) -> X:
        """Set a new representation for the instance"""
        self.name = name
        if register:
            registry.register_name(name, self)
        return self

    def __repr__(self) -> str:
        return self.name

    def __eq__(self, other: tp.Any) -> bool:
        return self.__class__ == other.__class__ and self._config == other._config

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, tuple(sorted(self._config.items()))))

    @staticmethod
    def _check_run_settings(problem: Problem, eval_budget: int, population_size: int) -> None:
        if eval_budget <= 0:
            raise errors.ConfigurationError(f"Evaluation budget must be strictly positive (got {eval_budget})")
        if population_size < 1:
            raise errors.ConfigurationError(f"Population size must be strictly positive (got {population_size})")
        if not problem.dimension:
            raise errors.ConfigurationError("No variable to optimize in this problem")
