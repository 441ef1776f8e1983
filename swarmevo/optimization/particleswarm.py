# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import warnings
from enum import Enum
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import to_enum
from swarmevo.functions.base import Problem
from . import base
from . import naming
from .particle import Particle
from .repair import PSORepair
from .repair import PSORepairHandler
from .repair import create_pso_repair
from .topology import Topology
from .topology import TopologyManager
from .topology import create_topology_manager
from .updates import UpdateManagerType
from .updates import UpdateSettings


logger = logging.getLogger(__name__)


class Synchronicity(Enum):
    SYNCHRONOUS = "synchronous"
    ASYNCHRONOUS = "asynchronous"


class ParticleSwarm(base.ConfiguredAlgorithm):
    """`Particle Swarm Optimization <https://en.wikipedia.org/wiki/Particle_swarm_optimization>`_
    with interchangeable velocity update rule, neighborhood topology and boundary handling.

    Parameters
    ----------
    update: str or UpdateManagerType
        velocity update rule: "inertia_weight", "decr_inertia_weight", "vmax",
        "constriction_coefficient", "fips" or "bare_bones"
    topology: str or Topology
        neighborhood topology: "lbest", "gbest", "random_graph", "von_neumann", "wheel",
        "increasing", "decreasing" or "multi_swarm"
    synchronicity: str or Synchronicity
        "synchronous": each phase (evaluation, personal bests, neighborhood bests, moves) is
        completed by the whole swarm before the next one starts.
        "asynchronous": each particle goes through all phases before the next particle,
        which therefore sees the updated bests of the previous ones.
    repair: str or PSORepair
        boundary handling: "reinitialization", "projection", "reflection", "wrapping" or "hyperbolic"
    random_state: RandomState (optional)
        random state of the runs, for reproducibility

    Note
    ----
    The run stops when the budget is exhausted or the optimum is hit, this is checked once
    per iteration, hence the budget may be exceeded by less than the population size.
    """

    # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        update: tp.Union[str, UpdateManagerType] = UpdateManagerType.INERTIA_WEIGHT,
        topology: tp.Union[str, Topology] = Topology.LBEST,
        synchronicity: tp.Union[str, Synchronicity] = Synchronicity.ASYNCHRONOUS,
        repair: tp.Union[str, PSORepair] = PSORepair.REINITIALIZATION,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        self.update_type = to_enum(UpdateManagerType, update)
        self.topology_type = to_enum(Topology, topology)
        self.synchronicity = to_enum(Synchronicity, synchronicity)
        self.repair_type = to_enum(PSORepair, repair)
        config = dict(
            update=self.update_type,
            topology=self.topology_type,
            synchronicity=self.synchronicity,
            repair=self.repair_type,
        )
        super().__init__(config, random_state)
        self.logging = False
        self.particles: tp.List[Particle] = []
        self.topology_manager: tp.Optional[TopologyManager] = None
        self.repair_handler: tp.Optional[PSORepairHandler] = None
        self._started = False

    @property
    def id_string(self) -> str:
        return naming.pso_name(self.update_type, self.topology_type, self.synchronicity)

    def enable_logging(self) -> None:
        """Logs start/end markers and the positions after each iteration (at INFO level)"""
        self.logging = True

    def run(
        self,
        problem: Problem,
        eval_budget: int,
        population_size: int,
        parameters: tp.Optional[tp.Mapping[str, float]] = None,
        logger: tp.Optional[tp.EvaluationSink] = None,
    ) -> base.RunResult:
        """Minimizes the problem

        Parameters
        ----------
        problem: Problem
            the problem to minimize, providing bounds and evaluations
        eval_budget: int
            number of evaluations (as counted by the problem) after which the run stops
        population_size: int
            requested number of particles. It can be rounded to fit the topology.
        parameters: dict (optional)
            coefficients of the velocity update rule (eg: {"w": 0.5}), defaults are used otherwise
        logger: callable (optional)
            sink called after each evaluation, see the callbacks module

        Returns
        -------
        RunResult
            best position and fitness found, and statistics of the run
        """
        self._check_run_settings(problem, eval_budget, population_size)
        try:
            self._setup(problem, population_size, parameters)
            if self.synchronicity == Synchronicity.SYNCHRONOUS:
                return self._run_synchronous(problem, eval_budget, logger)
            return self._run_asynchronous(problem, eval_budget, logger)
        finally:
            self._reset()
            self._log_end()

    def _setup(self, problem: Problem, population_size: int, parameters: tp.Optional[tp.Mapping[str, float]]) -> None:
        rng = self.random_state
        self.particles = []
        self.topology_manager = create_topology_manager(self.topology_type, self.particles, rng)
        size = self.topology_manager.closest_valid_population_size(population_size)
        if size != population_size:
            warnings.warn(
                f"Population size {population_size} was rounded to {size} for topology {self.topology_type.value}",
                errors.PopulationSizeWarning,
            )
        lower, upper = problem.lower_bound, problem.upper_bound
        self.repair_handler = create_pso_repair(self.repair_type, lower, upper, rng)
        settings = UpdateSettings.build(self.update_type, parameters, self.repair_handler)
        for index in range(size):
            particle = Particle(problem.dimension, settings, rng, index=index)
            particle.randomize(lower, upper)
            self.particles.append(particle)
        self._log_start()
        self._log_positions()
        self.topology_manager.initialize()

    def _reset(self) -> None:
        self.topology_manager = None
        self.particles = []
        self.repair_handler = None

    def _run_synchronous(
        self, problem: Problem, eval_budget: int, logger: tp.Optional[tp.EvaluationSink]
    ) -> base.RunResult:
        topology = self.topology_manager
        assert topology is not None
        iterations = 0
        best_fitness = float("inf")
        not_improved = 0
        while problem.evaluations < eval_budget and not problem.hit_optimal():
            improved = False
            for particle in self.particles:
                fitness = particle.evaluate(problem, logger)
                if fitness < best_fitness:
                    improved = True
                    best_fitness = fitness
            for particle in self.particles:
                particle.update_pbest()
            for particle in self.particles:
                particle.update_gbest(topology.informants(particle.index))
            progress = self._progress(problem, eval_budget)
            for particle in self.particles:
                particle.update_velocity_and_position(progress)
            self._log_positions()
            not_improved = 0 if improved else not_improved + 1
            iterations += 1
            topology.update(self._progress(problem, eval_budget))
        return self._result(problem, iterations, not_improved)

    def _run_asynchronous(
        self, problem: Problem, eval_budget: int, logger: tp.Optional[tp.EvaluationSink]
    ) -> base.RunResult:
        topology = self.topology_manager
        assert topology is not None
        iterations = 0
        best_fitness = float("inf")
        not_improved = 0
        while problem.evaluations < eval_budget and not problem.hit_optimal():
            improved = False
            for particle in self.particles:
                fitness = particle.evaluate(problem, logger)
                if fitness < best_fitness:
                    improved = True
                    best_fitness = fitness
                particle.update_pbest()
                particle.update_gbest(topology.informants(particle.index))
                particle.update_velocity_and_position(self._progress(problem, eval_budget))
            self._log_positions()
            not_improved = 0 if improved else not_improved + 1
            iterations += 1
            topology.update(self._progress(problem, eval_budget))
        return self._result(problem, iterations, not_improved)

    @staticmethod
    def _progress(problem: Problem, eval_budget: int) -> float:
        return min(1.0, problem.evaluations / eval_budget)

    def _result(self, problem: Problem, iterations: int, not_improved: int) -> base.RunResult:
        best = min(self.particles, key=lambda p: p.pbest_fitness)
        return base.RunResult(
            best_position=best.p.copy(),
            best_fitness=best.pbest_fitness,
            evaluations=problem.evaluations,
            iterations=iterations,
            stagnation=not_improved,
            population_size=len(self.particles),
        )

    def _log_start(self) -> None:
        self._started = True
        if self.logging:
            logger.info("START %s", self.id_string)

    def _log_end(self) -> None:
        started, self._started = self._started, False
        if self.logging and started:
            logger.info("END %s", self.id_string)

    def _log_positions(self) -> None:
        if self.logging:
            lines = [" ".join(repr(float(v)) for v in particle.x) for particle in self.particles]
            logger.info("Positions:\n%s", "\n".join(lines))


GbestInertiaPSO = ParticleSwarm(
    update="inertia_weight", topology="gbest", synchronicity="synchronous"
).set_name("GbestInertiaPSO", register=True)
LbestInertiaPSO = ParticleSwarm(update="inertia_weight", topology="lbest").set_name(
    "LbestInertiaPSO", register=True
)
LbestConstrictionPSO = ParticleSwarm(update="constriction_coefficient", topology="lbest").set_name(
    "LbestConstrictionPSO", register=True
)
VonNeumannFIPS = ParticleSwarm(update="fips", topology="von_neumann", synchronicity="synchronous").set_name(
    "VonNeumannFIPS", register=True
)
BareBonesPSO = ParticleSwarm(update="bare_bones", topology="gbest").set_name("BareBonesPSO", register=True)
