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
from .adaptation import DEAdaptationType
from .adaptation import create_adaptation_manager
from .repair import DERepair
from .repair import create_de_repair


logger = logging.getLogger(__name__)


class MutationType(Enum):
    RAND_1 = "rand_1"
    BEST_1 = "best_1"
    TTB_1 = "ttb_1"
    BEST_2 = "best_2"
    RAND_2 = "rand_2"
    RAND_2_DIR = "rand_2_dir"
    NSDE = "nsde"
    TRIGONOMETRIC = "trigonometric"
    TTPB_1 = "ttpb_1"


class CrossoverType(Enum):
    BINOMIAL = "binomial"
    EXPONENTIAL = "exponential"


class Mutation:
    """Builds the donor vector of an individual from the population.
    :code:`apply` returns both the donor and the base vector it was built from
    (the latter is used for repairing the trial).

    Parameters
    ----------
    random_state: RandomState
        random state to draw from
    mutation: str or MutationType
        mutation strategy
    """

    # number of random partners required, distinct from each other and from the target
    NUM_PARTNERS = {
        MutationType.RAND_1: 3,
        MutationType.BEST_1: 2,
        MutationType.TTB_1: 2,
        MutationType.BEST_2: 4,
        MutationType.RAND_2: 5,
        MutationType.RAND_2_DIR: 4,
        MutationType.NSDE: 3,
        MutationType.TRIGONOMETRIC: 3,
        MutationType.TTPB_1: 2,
    }
    trigonometric_rate = 0.05
    pbest_fraction = 0.1

    def __init__(self, random_state: np.random.RandomState, mutation: tp.Union[str, MutationType]) -> None:
        self.random_state = random_state
        self.mutation = to_enum(MutationType, mutation)
        self._func = getattr(self, self.mutation.value)
        self._population = np.zeros((0, 0))
        self._fitnesses = np.zeros(0)

    @property
    def min_population_size(self) -> int:
        return self.NUM_PARTNERS[self.mutation] + 1

    def apply(
        self, index: int, population: np.ndarray, fitnesses: np.ndarray, f: float
    ) -> tp.Tuple[np.ndarray, np.ndarray]:
        size = population.shape[0]
        if size < self.min_population_size:
            raise errors.ConfigurationError(
                f"Mutation {self.mutation.value} requires at least {self.min_population_size} individuals"
            )
        candidates = [k for k in range(size) if k != index]
        partners = self.random_state.choice(candidates, size=self.NUM_PARTNERS[self.mutation], replace=False)
        self._population, self._fitnesses = population, fitnesses
        try:
            return self._func(index, [int(k) for k in partners], f)  # type: ignore
        finally:
            self._population, self._fitnesses = np.zeros((0, 0)), np.zeros(0)

    # pylint: disable=unused-argument

    def _best(self) -> np.ndarray:
        return self._population[int(np.argmin(self._fitnesses))]

    def rand_1(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        x = self._population
        return x[r[0]] + f * (x[r[1]] - x[r[2]]), x[r[0]]

    def best_1(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        x, best = self._population, self._best()
        return best + f * (x[r[0]] - x[r[1]]), best

    def ttb_1(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        x, best = self._population, self._best()
        return x[index] + f * (best - x[index]) + f * (x[r[0]] - x[r[1]]), x[index]

    def best_2(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        x, best = self._population, self._best()
        return best + f * (x[r[0]] - x[r[1]]) + f * (x[r[2]] - x[r[3]]), best

    def rand_2(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        x = self._population
        return x[r[0]] + f * (x[r[1]] - x[r[2]]) + f * (x[r[3]] - x[r[4]]), x[r[0]]

    def rand_2_dir(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        """Directed differences: each pair is ordered so that it points toward the better individual"""
        x, fit = self._population, self._fitnesses
        a, b = (r[0], r[1]) if fit[r[0]] <= fit[r[1]] else (r[1], r[0])
        c, d = (r[2], r[3]) if fit[r[2]] <= fit[r[3]] else (r[3], r[2])
        return x[a] + 0.5 * f * (x[a] - x[b] + x[c] - x[d]), x[a]

    def nsde(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        """rand/1 with a scale factor drawn from N(0.5, 0.5) or from a Cauchy distribution (F is ignored)"""
        if self.random_state.uniform() < 0.5:
            scale = self.random_state.normal(0.5, 0.5)
        else:
            scale = self.random_state.standard_cauchy()
        return self.rand_1(index, r, scale)

    def trigonometric(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        """Fitness-weighted trigonometric mutation (Fan and Lampinen), with rand/1 as fallback"""
        weights = np.abs(self._fitnesses[r])
        total = float(np.sum(weights))
        if self.random_state.uniform() >= self.trigonometric_rate or not total or not np.isfinite(total):
            return self.rand_1(index, r, f)
        x1, x2, x3 = (self._population[k] for k in r)
        p1, p2, p3 = weights / total
        donor = (x1 + x2 + x3) / 3.0 + (p2 - p1) * (x1 - x2) + (p3 - p2) * (x2 - x3) + (p1 - p3) * (x3 - x1)
        return donor, x1

    def ttpb_1(self, index: int, r: tp.List[int], f: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        """current-to-pbest/1: attracted by one of the 100 * p% best individuals"""
        x = self._population
        num_top = max(1, int(round(self.pbest_fraction * x.shape[0])))
        top = np.argsort(self._fitnesses, kind="stable")[:num_top]
        pbest = x[int(self.random_state.choice(top))]
        return x[index] + f * (pbest - x[index]) + f * (x[r[0]] - x[r[1]]), x[index]


class Crossover:
    """Mixes the donor with the target vector

    Parameters
    ----------
    random_state: RandomState
        random state to draw from
    crossover: str or CrossoverType
        "binomial": each component comes from the donor with probability Cr (and at least one does)
        "exponential": a run of consecutive components (circularly) comes from the donor, its
        length following a truncated geometric distribution of parameter Cr
    """

    def __init__(self, random_state: np.random.RandomState, crossover: tp.Union[str, CrossoverType]) -> None:
        self.random_state = random_state
        self.crossover = to_enum(CrossoverType, crossover)

    def apply(self, donor: np.ndarray, target: np.ndarray, cr: float) -> np.ndarray:
        if self.crossover == CrossoverType.BINOMIAL:
            return self.binomial(donor, target, cr)
        return self.exponential(donor, target, cr)

    def binomial(self, donor: np.ndarray, target: np.ndarray, cr: float) -> np.ndarray:
        R = self.random_state.randint(donor.size)
        transfer = self.random_state.uniform(0, 1, size=donor.size) <= cr
        transfer[R] = True
        return np.where(transfer, donor, target)

    def exponential(self, donor: np.ndarray, target: np.ndarray, cr: float) -> np.ndarray:
        dim = donor.size
        start = self.random_state.randint(dim)
        length = 1
        while length < dim and self.random_state.uniform(0, 1) < cr:
            length += 1
        trial = np.array(target, dtype=float, copy=True)
        indices = [(start + k) % dim for k in range(length)]
        trial[indices] = donor[indices]
        return trial


class DifferentialEvolution(base.ConfiguredAlgorithm):
    """Differential evolution with interchangeable mutation, crossover,
    control parameter adaptation and boundary handling.

    Parameters
    ----------
    mutation: str or MutationType
        "rand_1", "best_1", "ttb_1" (target-to-best), "best_2", "rand_2", "rand_2_dir" (directed),
        "nsde", "trigonometric" or "ttpb_1" (target-to-pbest)
    crossover: str or CrossoverType
        "binomial" or "exponential"
    adaptation: str or DEAdaptationType
        "jade" (self-adaptive F and Cr) or "no_adaptation" (constant F and Cr)
    repair: str or DERepair
        boundary handling: "rand_base", "midpoint_base", "midpoint_target", "conservatism",
        "projection_midpoint" or "projection_base"
    random_state: RandomState (optional)
        random state of the runs, for reproducibility
    """

    def __init__(
        self,
        mutation: tp.Union[str, MutationType] = MutationType.RAND_1,
        crossover: tp.Union[str, CrossoverType] = CrossoverType.BINOMIAL,
        adaptation: tp.Union[str, DEAdaptationType] = DEAdaptationType.JADE,
        repair: tp.Union[str, DERepair] = DERepair.MIDPOINT_TARGET,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        self.mutation_type = to_enum(MutationType, mutation)
        self.crossover_type = to_enum(CrossoverType, crossover)
        self.adaptation_type = to_enum(DEAdaptationType, adaptation)
        self.repair_type = to_enum(DERepair, repair)
        config = dict(
            mutation=self.mutation_type,
            crossover=self.crossover_type,
            adaptation=self.adaptation_type,
            repair=self.repair_type,
        )
        super().__init__(config, random_state)

    @property
    def id_string(self) -> str:
        return naming.de_name(self.mutation_type, self.crossover_type, self.adaptation_type)

    # pylint: disable=too-many-locals
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
            number of individuals
        parameters: dict (optional)
            parameters of the adaptation manager (eg: {"F": 0.5, "Cr": 0.9} without adaptation,
            or {"mu_f": 0.5, "c": 0.1} for JADE)
        logger: callable (optional)
            sink called after each evaluation, see the callbacks module
        """
        self._check_run_settings(problem, eval_budget, population_size)
        rng = self.random_state
        mutation = Mutation(rng, self.mutation_type)
        if population_size < mutation.min_population_size:
            raise errors.ConfigurationError(
                f"Mutation {self.mutation_type.value} requires a population of at least "
                f"{mutation.min_population_size} individuals (got {population_size})"
            )
        if self.mutation_type == MutationType.NSDE and parameters and {"F", "mu_f"} & set(parameters):
            warnings.warn(
                "NSDE mutation draws its own scale factor, provided F settings are ignored",
                errors.InefficientSettingsWarning,
            )
        crossover = Crossover(rng, self.crossover_type)
        adaptation = create_adaptation_manager(self.adaptation_type, rng, **dict(parameters or {}))
        lower, upper = problem.lower_bound, problem.upper_bound
        repair = create_de_repair(self.repair_type, lower, upper, rng)
        population = rng.uniform(lower, upper, size=(population_size, problem.dimension))
        fitnesses = np.array([self._evaluate(problem, x, logger) for x in population])
        generations = 0
        not_improved = 0
        best_fitness = float(np.min(fitnesses))
        while problem.evaluations < eval_budget and not problem.hit_optimal():
            adaptation.reset()
            fs = adaptation.next_f(population_size)
            crs = adaptation.next_cr(population_size)
            trials = []
            for i in range(population_size):
                donor, base_vector = mutation.apply(i, population, fitnesses, fs[i])
                trial = crossover.apply(donor, population[i], crs[i])
                trials.append(repair.repair(trial, base_vector, population[i]))
            # selection only once all trials are built: the generation is synchronous
            next_population, next_fitnesses = population.copy(), fitnesses.copy()
            for i, trial in enumerate(trials):
                fitness = self._evaluate(problem, trial, logger)
                if fitness <= fitnesses[i]:
                    next_population[i], next_fitnesses[i] = trial, fitness
                    adaptation.successful_index(i)
            population, fitnesses = next_population, next_fitnesses
            adaptation.update()
            generations += 1
            if np.min(fitnesses) < best_fitness:
                best_fitness = float(np.min(fitnesses))
                not_improved = 0
            else:
                not_improved += 1
            self._log_generation(generations, best_fitness, problem.evaluations)
        best = int(np.argmin(fitnesses))
        return base.RunResult(
            best_position=population[best].copy(),
            best_fitness=float(fitnesses[best]),
            evaluations=problem.evaluations,
            iterations=generations,
            stagnation=not_improved,
            population_size=population_size,
        )

    @staticmethod
    def _log_generation(generation: int, best_fitness: float, evaluations: int) -> None:
        logger.debug("Generation %s: best fitness %s after %s evaluations", generation, best_fitness, evaluations)

    @staticmethod
    def _evaluate(problem: Problem, x: np.ndarray, logger: tp.Optional[tp.EvaluationSink]) -> float:
        fitness = problem.evaluate(x)
        if logger is not None:
            logger(problem.evaluations, np.array(x, copy=True), fitness)
        return fitness


ClassicDE = DifferentialEvolution(mutation="rand_1", adaptation="no_adaptation").set_name("ClassicDE", register=True)
JADE = DifferentialEvolution(mutation="ttpb_1", adaptation="jade").set_name("JADE", register=True)
BestDE = DifferentialEvolution(mutation="best_1", adaptation="no_adaptation", repair="projection_base").set_name(
    "BestDE", register=True
)
