# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Velocity update rules of particle swarm optimization.

Each particle owns one update manager, created from the shared read-only
:code:`UpdateSettings` of the run. The coefficients of a manager are resolved once,
at construction, from a sparse override mapping with documented defaults.
"""

import math
from enum import Enum
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import Registry
from swarmevo.common.decorators import to_enum
from . import vectors
from .repair import ParticleState
from .repair import PSORepairHandler


class UpdateManagerType(Enum):
    INERTIA_WEIGHT = "inertia_weight"
    DECR_INERTIA_WEIGHT = "decr_inertia_weight"
    VMAX = "vmax"
    CONSTRICTION_COEFFICIENT = "constriction_coefficient"
    FIPS = "fips"
    BARE_BONES = "bare_bones"


update_managers: Registry[tp.Type["ParticleUpdateManager"]] = Registry("update manager")


def constriction_coefficient(phi: float) -> float:
    """Clerc's constriction coefficient chi = 2 / (phi - 2 + sqrt(phi^2 - 4 phi)),
    only defined for phi > 4
    """
    if not phi > 4:
        raise errors.ConfigurationError(f"Constriction coefficient requires phi > 4 (got phi={phi})")
    return 2.0 / (phi - 2.0 + math.sqrt(phi ** 2 - 4.0 * phi))


class UpdateSettings(tp.NamedTuple):
    """Velocity update configuration of a run, shared by all particles

    Parameters
    ----------
    manager_type: UpdateManagerType
        the velocity update rule
    parameters: dict
        coefficient overrides, by name. Unspecified coefficients take their default values.
    repair: PSORepairHandler
        the boundary-constraint handler applied after each move
    """

    manager_type: UpdateManagerType
    parameters: tp.Mapping[str, float]
    repair: PSORepairHandler

    @classmethod
    def build(
        cls,
        manager_type: tp.Union[str, UpdateManagerType],
        parameters: tp.Optional[tp.Mapping[str, float]],
        repair: PSORepairHandler,
    ) -> "UpdateSettings":
        """Builds the settings, checking the configuration right away"""
        settings = cls(to_enum(UpdateManagerType, manager_type), dict(parameters or {}), repair)
        settings.create_manager(np.random.RandomState(0))  # fails early on invalid configuration
        return settings

    def create_manager(self, random_state: np.random.RandomState) -> "ParticleUpdateManager":
        return update_managers[self.manager_type](self.parameters, random_state, self.repair)


class ParticleUpdateManager:
    """Base class for velocity update rules.

    Parameters
    ----------
    parameters: dict
        coefficient overrides, by name
    random_state: RandomState
        random state to draw from
    repair: PSORepairHandler
        boundary handler of the run (its bounds are available to the managers)
    """

    DEFAULTS: tp.Dict[str, float] = {}

    def __init__(
        self, parameters: tp.Mapping[str, float], random_state: np.random.RandomState, repair: PSORepairHandler
    ) -> None:
        unknown = set(parameters) - set(self.DEFAULTS)
        if unknown:
            raise errors.ConfigurationError(
                f"Unknown coefficient(s) {sorted(unknown)} for {self.__class__.__name__} "
                f"(available: {sorted(self.DEFAULTS)})"
            )
        self._coeffs = {name: float(parameters.get(name, default)) for name, default in self.DEFAULTS.items()}
        self.random_state = random_state
        self.repair = repair

    def coefficient(self, name: str) -> float:
        return self._coeffs[name]

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        """Updates the velocity of the particle in place.

        Parameters
        ----------
        particle: Particle
            the particle to update
        progress: float
            fraction of the evaluation budget consumed so far, in [0, 1]
        """
        raise NotImplementedError

    def update_position(self, particle: ParticleState) -> None:
        particle.x += particle.v

    def _attraction(self, particle: ParticleState, phi1: float, phi2: float) -> np.ndarray:
        """U(0, phi1) o (p - x) + U(0, phi2) o (g - x), with one draw per component"""
        cognitive = vectors.random_mult(vectors.subtract(particle.p, particle.x), 0, phi1, self.random_state)
        social = vectors.random_mult(vectors.subtract(particle.g, particle.x), 0, phi2, self.random_state)
        return vectors.add(cognitive, social)

    def __repr__(self) -> str:
        params = ", ".join(f"{x}={y!r}" for x, y in sorted(self._coeffs.items()))
        return f"{self.__class__.__name__}({params})"


@update_managers.register_as(UpdateManagerType.INERTIA_WEIGHT)
class InertiaWeightManager(ParticleUpdateManager):
    """v <- w v + U(0, phi1) o (p - x) + U(0, phi2) o (g - x)"""

    DEFAULTS = {"w": 0.7298, "phi1": 1.49618, "phi2": 1.49618}

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        c = self._coeffs
        particle.v[:] = vectors.add(vectors.scale(particle.v, c["w"]), self._attraction(particle, c["phi1"], c["phi2"]))


@update_managers.register_as(UpdateManagerType.DECR_INERTIA_WEIGHT)
class DecrInertiaWeightManager(ParticleUpdateManager):
    """Inertia weight linearly decreasing from w_start to w_end along the budget"""

    DEFAULTS = {"w_start": 0.9, "w_end": 0.4, "phi1": 2.0, "phi2": 2.0}

    def __init__(
        self, parameters: tp.Mapping[str, float], random_state: np.random.RandomState, repair: PSORepairHandler
    ) -> None:
        super().__init__(parameters, random_state, repair)
        self.w = self._coeffs["w_start"]

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        c = self._coeffs
        particle.v[:] = vectors.add(vectors.scale(particle.v, self.w), self._attraction(particle, c["phi1"], c["phi2"]))
        # weight for the next update
        self.w = c["w_start"] - progress * (c["w_start"] - c["w_end"])


@update_managers.register_as(UpdateManagerType.VMAX)
class VMaxManager(InertiaWeightManager):
    """Inertia weight update with each velocity component clamped to
    vmax_fraction times the width of the box
    """

    DEFAULTS = {"w": 0.7298, "phi1": 1.49618, "phi2": 1.49618, "vmax_fraction": 0.2}

    def __init__(
        self, parameters: tp.Mapping[str, float], random_state: np.random.RandomState, repair: PSORepairHandler
    ) -> None:
        super().__init__(parameters, random_state, repair)
        if self._coeffs["vmax_fraction"] <= 0:
            raise errors.ConfigurationError("vmax_fraction must be strictly positive")
        self.vmax = self._coeffs["vmax_fraction"] * (repair.upper - repair.lower)

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        super().update_velocity(particle, progress)
        np.clip(particle.v, -self.vmax, self.vmax, out=particle.v)


@update_managers.register_as(UpdateManagerType.CONSTRICTION_COEFFICIENT)
class ConstrictionCoefficientManager(ParticleUpdateManager):
    """v <- chi (v + U(0, phi1) o (p - x) + U(0, phi2) o (g - x))"""

    DEFAULTS = {"phi1": 2.05, "phi2": 2.05}

    def __init__(
        self, parameters: tp.Mapping[str, float], random_state: np.random.RandomState, repair: PSORepairHandler
    ) -> None:
        super().__init__(parameters, random_state, repair)
        self.chi = constriction_coefficient(self._coeffs["phi1"] + self._coeffs["phi2"])

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        c = self._coeffs
        velocity = vectors.add(particle.v, self._attraction(particle, c["phi1"], c["phi2"]))
        particle.v[:] = vectors.scale(velocity, self.chi)


@update_managers.register_as(UpdateManagerType.FIPS)
class FIPSManager(ParticleUpdateManager):
    """Fully informed particle swarm: the particle is attracted by the personal
    bests of all its informants, each pull being scaled by its own U(0, phi) draw,
    and averaged: v <- chi (v + 1/K sum_k U(0, phi) (p_k - x))
    """

    DEFAULTS = {"phi": 4.1}

    def __init__(
        self, parameters: tp.Mapping[str, float], random_state: np.random.RandomState, repair: PSORepairHandler
    ) -> None:
        super().__init__(parameters, random_state, repair)
        self.chi = constriction_coefficient(self._coeffs["phi"])

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        bests = particle.informant_bests if particle.informant_bests else [particle.g]
        total = np.zeros_like(particle.x)
        for best in bests:
            pull = vectors.subtract(best, particle.x)
            total = vectors.add(total, vectors.scale(pull, self.random_state.uniform(0, self._coeffs["phi"])))
        velocity = vectors.add(particle.v, vectors.scale(total, 1.0 / len(bests)))
        particle.v[:] = vectors.scale(velocity, self.chi)


@update_managers.register_as(UpdateManagerType.BARE_BONES)
class BareBonesManager(ParticleUpdateManager):
    """Samples the new position directly: x_i ~ N((g_i + p_i) / 2, |g_i - p_i|).
    Velocity is not used.
    """

    def update_velocity(self, particle: ParticleState, progress: float) -> None:
        center = vectors.midpoint(particle.g, particle.p)
        spread = np.abs(vectors.subtract(particle.g, particle.p))
        particle.x[:] = self.random_state.normal(center, spread)
        particle.v[:] = 0.0

    def update_position(self, particle: ParticleState) -> None:
        pass  # position was sampled during the velocity update


def create_update_manager(
    manager_type: tp.Union[str, UpdateManagerType],
    parameters: tp.Mapping[str, float],
    random_state: np.random.RandomState,
    repair: PSORepairHandler,
) -> ParticleUpdateManager:
    return update_managers[to_enum(UpdateManagerType, manager_type)](parameters, random_state, repair)
