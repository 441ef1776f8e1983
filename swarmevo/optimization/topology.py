# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Neighborhood topologies of particle swarms: for each particle, the set of
particles informing it (itself included, so that it is never empty).
"""

import math
from enum import Enum
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import Registry
from swarmevo.common.decorators import to_enum
from .particle import Particle


class Topology(Enum):
    LBEST = "lbest"
    GBEST = "gbest"
    RANDOM_GRAPH = "random_graph"
    VON_NEUMANN = "von_neumann"
    WHEEL = "wheel"
    INCREASING = "increasing"
    DECREASING = "decreasing"
    MULTI_SWARM = "multi_swarm"


topologies: Registry[tp.Type["TopologyManager"]] = Registry("topology")


def _ring(size: int, radius: int) -> tp.List[tp.List[int]]:
    """Each index is connected to the indices at ring distance up to radius"""
    return [sorted({(i + k) % size for k in range(-radius, radius + 1)}) for i in range(size)]


class TopologyManager:
    """Maintains the informant sets of a swarm.

    Parameters
    ----------
    particles: list of Particle
        container of the particles of the swarm. It is only read, and may be
        populated after the manager creation, but must be filled before :code:`initialize`.
    random_state: RandomState
        random state for the topologies with random structure
    """

    def __init__(
        self, particles: tp.List[Particle], random_state: tp.Optional[np.random.RandomState] = None
    ) -> None:
        self.particles = particles
        self.random_state = np.random.RandomState() if random_state is None else random_state
        self._neighbors: tp.List[tp.List[int]] = []

    @property
    def size(self) -> int:
        return len(self._neighbors)

    def closest_valid_population_size(self, size: int) -> int:
        """Returns the population size closest to the requested one which the topology can realize"""
        if size < 1:
            raise errors.ConfigurationError(f"Population size must be strictly positive (got {size})")
        return int(size)

    def initialize(self) -> None:
        """Builds the initial informant sets, once the particles exist"""
        size = len(self.particles)
        if not size:
            raise errors.SwarmevoRuntimeError("Cannot initialize a topology without particles")
        if self.closest_valid_population_size(size) != size:
            raise errors.ConfigurationError(f"{self.__class__.__name__} does not support {size} particles")
        self._neighbors = self._build(size)

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        raise NotImplementedError

    def update(self, progress: float) -> None:
        """Called once per iteration, with progress the fraction of the budget consumed"""

    def informant_indices(self, index: int) -> tp.List[int]:
        return list(self._neighbors[index])

    def informants(self, index: int) -> tp.List[Particle]:
        return [self.particles[k] for k in self._neighbors[index]]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.size})"


@topologies.register_as(Topology.LBEST)
class LBestTopology(TopologyManager):
    """Ring: each particle is informed by its left and right neighbors"""

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        return _ring(size, 1)


@topologies.register_as(Topology.GBEST)
class GBestTopology(TopologyManager):
    """Fully connected"""

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        return [list(range(size)) for _ in range(size)]


@topologies.register_as(Topology.RANDOM_GRAPH)
class RandomGraphTopology(TopologyManager):
    """Each particle informs itself and a fixed number of randomly chosen particles.
    The graph is rewired each time an iteration did not improve the best known fitness
    of the swarm.
    """

    num_informed = 3

    def __init__(
        self, particles: tp.List[Particle], random_state: tp.Optional[np.random.RandomState] = None
    ) -> None:
        super().__init__(particles, random_state)
        self._best = float("inf")

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        informants: tp.List[tp.Set[int]] = [{i} for i in range(size)]
        for i in range(size):
            for j in self.random_state.randint(size, size=self.num_informed):
                informants[int(j)].add(i)
        return [sorted(s) for s in informants]

    def update(self, progress: float) -> None:
        best = min(p.pbest_fitness for p in self.particles)
        if not best < self._best:
            self._neighbors = self._build(len(self.particles))
        self._best = min(best, self._best)


@topologies.register_as(Topology.VON_NEUMANN)
class VonNeumannTopology(TopologyManager):
    """Square toroidal grid: each particle is informed by its 4 direct neighbors.
    Population size is rounded to the nearest perfect square.
    """

    def closest_valid_population_size(self, size: int) -> int:
        size = super().closest_valid_population_size(size)
        root = math.isqrt(size)
        lower, upper = root ** 2, (root + 1) ** 2
        return lower if size - lower <= upper - size else upper

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        side = math.isqrt(size)
        neighbors = []
        for i in range(size):
            row, col = divmod(i, side)
            cells = [(row, col), ((row - 1) % side, col), ((row + 1) % side, col)]
            cells += [(row, (col - 1) % side), (row, (col + 1) % side)]
            neighbors.append(sorted({r * side + c for r, c in cells}))
        return neighbors


@topologies.register_as(Topology.WHEEL)
class WheelTopology(TopologyManager):
    """Hub and spokes: the hub (particle 0) is connected to all others,
    which are only connected to the hub
    """

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        return [list(range(size))] + [[0, i] for i in range(1, size)]


@topologies.register_as(Topology.MULTI_SWARM)
class MultiSwarmTopology(TopologyManager):
    """Independent fully connected sub-swarms, randomly regrouped every few iterations
    (dynamic multi-swarm). Population size is rounded to a multiple of the sub-swarm size.
    """

    swarm_size = 3
    regroup_period = 5

    def __init__(
        self, particles: tp.List[Particle], random_state: tp.Optional[np.random.RandomState] = None
    ) -> None:
        super().__init__(particles, random_state)
        self._num_updates = 0

    def closest_valid_population_size(self, size: int) -> int:
        size = super().closest_valid_population_size(size)
        return max(self.swarm_size, self.swarm_size * int(round(size / self.swarm_size)))

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        neighbors: tp.List[tp.List[int]] = [[] for _ in range(size)]
        order = self.random_state.permutation(size)
        for start in range(0, size, self.swarm_size):
            group = sorted(int(k) for k in order[start : start + self.swarm_size])
            for k in group:
                neighbors[k] = group
        return neighbors

    def update(self, progress: float) -> None:
        self._num_updates += 1
        if not self._num_updates % self.regroup_period:
            self._neighbors = self._build(len(self.particles))


class _EvolvingRingTopology(TopologyManager):
    """Ring whose radius evolves with progress, between 1 (ring) and
    half the population size (fully connected), reached at progress = final_progress
    """

    final_progress = 0.8

    def _radius(self, progress: float) -> int:
        raise NotImplementedError

    def _max_radius(self) -> int:
        return max(1, len(self.particles) // 2)

    def _fraction(self, progress: float) -> float:
        return min(1.0, max(0.0, progress) / self.final_progress)

    def _build(self, size: int) -> tp.List[tp.List[int]]:
        return _ring(size, self._radius(0.0))

    def update(self, progress: float) -> None:
        self._neighbors = _ring(len(self.particles), self._radius(progress))


@topologies.register_as(Topology.INCREASING)
class IncreasingTopology(_EvolvingRingTopology):
    """Starts as a ring, and ends fully connected"""

    def _radius(self, progress: float) -> int:
        return 1 + int(round(self._fraction(progress) * (self._max_radius() - 1)))


@topologies.register_as(Topology.DECREASING)
class DecreasingTopology(_EvolvingRingTopology):
    """Starts fully connected, and ends as a ring"""

    def _radius(self, progress: float) -> int:
        return self._max_radius() - int(round(self._fraction(progress) * (self._max_radius() - 1)))


def create_topology_manager(
    kind: tp.Union[str, Topology],
    particles: tp.List[Particle],
    random_state: tp.Optional[np.random.RandomState] = None,
) -> TopologyManager:
    return topologies[to_enum(Topology, kind)](particles, random_state)
