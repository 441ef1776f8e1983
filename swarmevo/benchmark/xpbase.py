# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import sys
import copy
import time
import traceback
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.functions import corefuncs
from swarmevo.functions.base import BoundedFunction
from swarmevo.optimization import base as obase
from swarmevo.optimization import particleswarm  # pylint: disable=unused-import
from swarmevo.optimization import differentialevolution  # pylint: disable=unused-import


BOUNDS = (-5.0, 5.0)


class Experiment:
    """Specifies a single seeded trial of a configured algorithm on a test function.

    Parameters
    ----------
    algorithm: str or ConfiguredAlgorithm
        the algorithm, or the name of a registered preset
    function_name: str
        name of a function of :code:`corefuncs.registry`, bounded to [-5, 5]^dimension
    dimension: int
        dimension of the search space
    budget: int (optional)
        evaluation budget, defaults to 10000 * dimension
    population_size: int (optional)
        population size, defaults to 5 * dimension
    seed: int (optional)
        seed of the random state of the algorithm

    Note
    ----
    - "run" method catches runtime errors but forwards stderr so that errors are not completely hidden.
      Configuration errors are raised.
    - "run" method outputs the description of the experiment (settings and results)
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        algorithm: tp.Union[str, obase.ConfiguredAlgorithm],
        function_name: str,
        dimension: int,
        budget: tp.Optional[int] = None,
        population_size: tp.Optional[int] = None,
        seed: tp.Optional[int] = None,
    ) -> None:
        if isinstance(algorithm, str):
            algorithm = obase.registry[algorithm]
        self.algorithm = algorithm
        self.function = BoundedFunction(
            corefuncs.registry[function_name], BOUNDS[0], BOUNDS[1], dimension=dimension, optimum_value=0.0
        )
        self.function_name = function_name
        self.dimension = dimension
        self.budget = 10000 * dimension if budget is None else budget
        self.population_size = 5 * dimension if population_size is None else population_size
        self.seed = seed
        self.result: tp.Dict[str, tp.Any] = {
            "best_fitness": np.nan,
            "evaluations": 0,
            "elapsed_time": np.nan,
            "error": "",
        }

    def __repr__(self) -> str:
        return f"Experiment: {self.algorithm} on {self.function_name} (dim={self.dimension}) with seed {self.seed}"

    def run(self) -> tp.Dict[str, tp.Any]:
        """Run the experiment with the provided settings

        Returns
        -------
        dict
            A dict containing the settings and the results ("best_fitness", "evaluations")
        """
        try:
            self._run_with_error()
        except errors.ConfigurationError as e:
            raise e
        except Exception as e:  # pylint: disable=broad-except
            self.result["error"] = e.__class__.__name__
            print(f"Error when applying {self}:", file=sys.stderr)
            traceback.print_exc()
            print("\n", file=sys.stderr)
        return self.get_description()

    def _run_with_error(self) -> None:
        # presets are shared, seeding must not alter them
        algorithm = copy.copy(self.algorithm)
        algorithm.random_state = np.random.RandomState(self.seed)
        self.function.reset()
        t0 = time.time()
        result = algorithm.run(self.function, self.budget, self.population_size)  # type: ignore
        self.result["elapsed_time"] = time.time() - t0
        self.result["best_fitness"] = result.best_fitness
        self.result["evaluations"] = result.evaluations

    def get_description(self) -> tp.Dict[str, tp.Any]:
        """Return the description of the experiment, as a dict.
        "run" must be called beforehand in order to have non-nan values for the fitness.
        """
        return dict(
            self.result,
            name=self.algorithm.id_string,
            function=self.function_name,
            dimension=self.dimension,
            budget=self.budget,
            population_size=self.population_size,
            seed=-1 if self.seed is None else self.seed,
        )
