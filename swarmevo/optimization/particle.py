# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import swarmevo.common.typing as tp
from swarmevo.functions.base import Problem
from .updates import UpdateSettings


# pylint: disable=too-many-instance-attributes
class Particle:
    """Candidate solution of a particle swarm, with its velocity and best-known positions.

    Parameters
    ----------
    dimension: int
        dimension of the search space
    settings: UpdateSettings
        shared velocity update configuration, including the boundary handler
    random_state: RandomState
        random state of the run
    index: int
        index of the particle in the swarm, used by topologies

    Note
    ----
    :code:`g` is a snapshot of the best personal best among the current informants, as of
    the last call to :code:`update_gbest`. Informants are only known through the topology
    and are never referenced by the particle.
    """

    def __init__(
        self, dimension: int, settings: UpdateSettings, random_state: np.random.RandomState, index: int = 0
    ) -> None:
        self.index = index
        self.x = np.zeros(dimension)
        self.v = np.zeros(dimension)
        self.p = np.zeros(dimension)
        self.g = np.zeros(dimension)
        self.fitness = float("inf")
        self.pbest_fitness = float("inf")
        self.gbest_fitness = float("inf")
        self.informant_bests: tp.List[np.ndarray] = []
        self.random_state = random_state
        self._settings = settings
        self._manager = settings.create_manager(random_state)

    @property
    def dimension(self) -> int:
        return self.x.size

    def randomize(self, lower: np.ndarray, upper: np.ndarray) -> None:
        """Uniform position in the box, and velocity such that x + v is in the box too"""
        self.x = self.random_state.uniform(lower, upper)
        self.v = self.random_state.uniform(lower - self.x, upper - self.x)
        self.p = self.x.copy()
        self.g = self.x.copy()
        self.fitness = self.pbest_fitness = self.gbest_fitness = float("inf")
        self.informant_bests = []

    def evaluate(self, problem: Problem, logger: tp.Optional[tp.EvaluationSink] = None) -> float:
        self.fitness = problem.evaluate(self.x)
        if logger is not None:
            logger(problem.evaluations, self.x.copy(), self.fitness)
        return self.fitness

    def update_pbest(self) -> bool:
        """Stores the current position as personal best if it is strictly better.
        Returns whether it was updated.
        """
        if self.fitness < self.pbest_fitness:
            self.pbest_fitness = self.fitness
            self.p = self.x.copy()
            return True
        return False

    def update_gbest(self, informants: tp.Sequence["Particle"]) -> None:
        """Sets g to the best personal best among the current informants.
        Particles which are no longer informants do not contribute.
        """
        assert informants, "A particle must have at least one informant"
        self.informant_bests = [n.p for n in informants]
        best = min(informants, key=lambda n: n.pbest_fitness)
        self.gbest_fitness = best.pbest_fitness
        self.g = best.p.copy()

    def update_velocity_and_position(self, progress: float) -> None:
        self._manager.update_velocity(self, progress)
        self._manager.update_position(self)
        self._settings.repair.repair(self)

    def __repr__(self) -> str:
        return f"Particle(index={self.index}, fitness={self.fitness}, pbest_fitness={self.pbest_fitness})"
