# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Boundary-constraint handling: strategies mapping an out-of-bounds candidate back
into the feasible box [lower, upper].

Two disjoint families are provided:
- PSO repairs act in place on a single particle, and correct its velocity
  along with its position so that it does not immediately violate the bound again.
- DE repairs return a corrected copy of a trial vector, relative to the base vector
  of the mutation and/or to the target vector it competes with.
"""

import math
from enum import Enum
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import Registry
from swarmevo.common.decorators import to_enum


class ParticleState(tp.Protocol):
    """State of a particle, as seen by repair handlers and velocity update managers"""

    x: np.ndarray
    v: np.ndarray
    p: np.ndarray
    g: np.ndarray
    informant_bests: tp.List[np.ndarray]


class PSORepair(Enum):
    REINITIALIZATION = "reinitialization"
    PROJECTION = "projection"
    REFLECTION = "reflection"
    WRAPPING = "wrapping"
    HYPERBOLIC = "hyperbolic"


class DERepair(Enum):
    RAND_BASE = "rand_base"
    MIDPOINT_BASE = "midpoint_base"
    MIDPOINT_TARGET = "midpoint_target"
    CONSERVATISM = "conservatism"
    PROJECTION_MIDPOINT = "projection_midpoint"
    PROJECTION_BASE = "projection_base"


pso_repairs: Registry[tp.Type["PSORepairHandler"]] = Registry("PSO repair")
de_repairs: Registry[tp.Type["DERepairHandler"]] = Registry("DE repair")


class RepairHandler:
    """Base class holding the bounds of the feasible box

    Parameters
    ----------
    lower: array-like
        lower bound of each variable
    upper: array-like
        upper bound of each variable
    random_state: RandomState
        random state for the strategies which need to sample
    """

    def __init__(
        self, lower: tp.ArrayLike, upper: tp.ArrayLike, random_state: tp.Optional[np.random.RandomState] = None
    ) -> None:
        self.lower = np.array(lower, dtype=float, copy=True)
        self.upper = np.array(upper, dtype=float, copy=True)
        if self.lower.shape != self.upper.shape or self.lower.ndim != 1:
            raise errors.ConfigurationError(f"Incompatible bounds shapes {self.lower.shape} and {self.upper.shape}")
        if np.any(self.lower > self.upper):
            raise errors.ConfigurationError("Lower bound must be smaller or equal to upper bound")
        self.random_state = np.random.RandomState() if random_state is None else random_state

    @property
    def dimension(self) -> int:
        return self.lower.size

    def is_feasible(self, x: np.ndarray) -> bool:
        return bool(np.all(self.lower <= x) and np.all(x <= self.upper))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimension={self.dimension})"


# # # # # Particle swarm repairs # # # # #


class PSORepairHandler(RepairHandler):
    """Component-wise repair of a particle, in place.
    Subclasses implement :code:`_repair_value`, the velocity of a repaired component
    is then corrected through :code:`repair_velocity`.
    """

    def repair(self, particle: ParticleState) -> None:
        x = particle.x
        for i in np.nonzero(np.logical_not(np.isfinite(x)))[0]:
            x[i] = self.random_state.uniform(self.lower[i], self.upper[i])
            self.repair_velocity(particle, i)
        for i in np.nonzero(np.logical_or(x < self.lower, x > self.upper))[0]:
            value = self._repair_value(i, float(x[i]))
            # rounding residue must not leave the box
            x[i] = min(max(value, self.lower[i]), self.upper[i])
            self.repair_velocity(particle, i)

    def _repair_value(self, i: int, value: float) -> float:
        raise NotImplementedError

    def repair_velocity(self, particle: ParticleState, i: int) -> None:
        """Prevents the velocity from pushing the particle out again at next step"""
        particle.v[i] = 0.0


@pso_repairs.register_as(PSORepair.REINITIALIZATION)
class ReinitializationRepair(PSORepairHandler):
    """Resamples the violating component uniformly in its bounds"""

    def _repair_value(self, i: int, value: float) -> float:
        return float(self.random_state.uniform(self.lower[i], self.upper[i]))


@pso_repairs.register_as(PSORepair.PROJECTION)
class ProjectionRepair(PSORepairHandler):
    """Clamps the violating component to the nearest bound"""

    def _repair_value(self, i: int, value: float) -> float:
        return float(min(max(value, self.lower[i]), self.upper[i]))


@pso_repairs.register_as(PSORepair.REFLECTION)
class ReflectionRepair(PSORepairHandler):
    """Mirrors the violating component across the violated bound, as many times as
    required to land in the box. The successive reflections are periodic with period
    twice the box width, hence computed in closed form.
    """

    def _repair_value(self, i: int, value: float) -> float:
        lower, width = self.lower[i], self.upper[i] - self.lower[i]
        if not width:
            return float(lower)
        offset = (value - lower) % (2 * width)
        return float(lower + offset if offset <= width else lower + 2 * width - offset)

    def repair_velocity(self, particle: ParticleState, i: int) -> None:
        particle.v[i] = -particle.v[i]


@pso_repairs.register_as(PSORepair.WRAPPING)
class WrappingRepair(PSORepairHandler):
    """Wraps the violating component modulo the box width, entering from the opposite side"""

    def _repair_value(self, i: int, value: float) -> float:
        lower, upper = self.lower[i], self.upper[i]
        width = upper - lower
        if not width:
            return float(lower)
        if value < lower:
            return float(upper - math.fmod(lower - value, width))
        return float(lower + math.fmod(value - upper, width))


@pso_repairs.register_as(PSORepair.HYPERBOLIC)
class HyperbolicRepair(PSORepairHandler):
    """Damps the last move of the violating components so that the particle only
    approaches the bound: v <- v / (1 + |v| / distance_to_bound), computed from the
    position before the move (x - v).
    Components which were already infeasible before the move are projected.
    """

    def repair(self, particle: ParticleState) -> None:
        x, v = particle.x, particle.v
        for i in np.nonzero(np.logical_not(np.isfinite(x)))[0]:
            x[i] = self.random_state.uniform(self.lower[i], self.upper[i])
            v[i] = 0.0
        for i in np.nonzero(np.logical_or(x < self.lower, x > self.upper))[0]:
            previous = x[i] - v[i]
            if not self.lower[i] <= previous <= self.upper[i]:
                x[i] = min(max(x[i], self.lower[i]), self.upper[i])
                v[i] = 0.0
                continue
            distance = self.upper[i] - previous if v[i] > 0 else previous - self.lower[i]
            v[i] = v[i] / (1.0 + abs(v[i]) / distance) if distance > 0 else 0.0
            x[i] = min(max(previous + v[i], self.lower[i]), self.upper[i])


def create_pso_repair(
    kind: tp.Union[str, PSORepair],
    lower: tp.ArrayLike,
    upper: tp.ArrayLike,
    random_state: tp.Optional[np.random.RandomState] = None,
) -> PSORepairHandler:
    return pso_repairs[to_enum(PSORepair, kind)](lower, upper, random_state)


# # # # # Differential evolution repairs # # # # #


class DERepairHandler(RepairHandler):
    """Repair of a trial vector relative to the base vector of the mutation and to
    the target vector. Returns a feasible copy, the inputs are left untouched.
    """

    def repair(self, trial: tp.ArrayLike, base: tp.ArrayLike, target: tp.ArrayLike) -> np.ndarray:
        out = np.array(trial, dtype=float, copy=True)
        base, target = (np.asarray(z, dtype=float) for z in (base, target))
        assert out.shape == base.shape == target.shape == self.lower.shape
        above = out > self.upper
        below = out < self.lower
        violated = np.logical_or(above, below)
        if not np.any(violated):
            return out
        bound = np.where(above, self.upper, self.lower)
        out = self._repair(out, base, target, violated, bound)
        return np.clip(out, self.lower, self.upper)

    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        raise NotImplementedError


@de_repairs.register_as(DERepair.RAND_BASE)
class RandBaseRepair(DERepairHandler):
    """x_i <- base_i + U(0, 1) * (bound_i - base_i)"""

    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        weights = self.random_state.uniform(0, 1, size=int(np.sum(violated)))
        trial[violated] = base[violated] + weights * (bound[violated] - base[violated])
        return trial


@de_repairs.register_as(DERepair.MIDPOINT_BASE)
class MidpointBaseRepair(DERepairHandler):
    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        trial[violated] = 0.5 * (base[violated] + bound[violated])
        return trial


@de_repairs.register_as(DERepair.MIDPOINT_TARGET)
class MidpointTargetRepair(DERepairHandler):
    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        trial[violated] = 0.5 * (target[violated] + bound[violated])
        return trial


@de_repairs.register_as(DERepair.CONSERVATISM)
class ConservatismRepair(DERepairHandler):
    """Discards the violating moves entirely"""

    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        trial[violated] = base[violated]
        return trial


class _ProjectionRepair(DERepairHandler):
    """Contracts the whole trial vector toward a reference point with the largest
    factor alpha in [0, 1] making all components feasible at once. This preserves the
    direction of the move, unlike component-wise clamping.
    """

    def _reference(self, base: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _repair(
        self, trial: np.ndarray, base: np.ndarray, target: np.ndarray, violated: np.ndarray, bound: np.ndarray
    ) -> np.ndarray:
        reference = self._reference(base)
        alphas = np.full(trial.shape, np.inf)
        delta = trial[violated] - reference[violated]
        with np.errstate(divide="ignore", invalid="ignore"):
            alphas[violated] = (bound[violated] - reference[violated]) / delta
        alphas[np.logical_not(np.isfinite(alphas))] = np.inf
        alpha = float(np.clip(min(1.0, np.min(alphas)), 0.0, 1.0))
        return alpha * trial + (1.0 - alpha) * reference


@de_repairs.register_as(DERepair.PROJECTION_MIDPOINT)
class ProjectionMidpointRepair(_ProjectionRepair):
    def _reference(self, base: np.ndarray) -> np.ndarray:
        return 0.5 * (self.lower + self.upper)


@de_repairs.register_as(DERepair.PROJECTION_BASE)
class ProjectionBaseRepair(_ProjectionRepair):
    def _reference(self, base: np.ndarray) -> np.ndarray:
        return base


def create_de_repair(
    kind: tp.Union[str, DERepair],
    lower: tp.ArrayLike,
    upper: tp.ArrayLike,
    random_state: tp.Optional[np.random.RandomState] = None,
) -> DERepairHandler:
    return de_repairs[to_enum(DERepair, kind)](lower, upper, random_state)
