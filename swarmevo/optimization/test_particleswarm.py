# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import typing as tp
import pytest
import numpy as np
from swarmevo.common import errors
from swarmevo.common import testing
from swarmevo.functions import BoundedFunction
from swarmevo.functions import corefuncs
from . import base
from . import callbacks
from . import particleswarm as pso
from .repair import PSORepair
from .topology import Topology
from .updates import UpdateManagerType


def _sphere(dimension: int = 2, **kwargs: tp.Any) -> BoundedFunction:
    return BoundedFunction(corefuncs.sphere, -5, 5, dimension=dimension, **kwargs)


def test_id_string() -> None:
    assert pso.ParticleSwarm().id_string == "PILA"
    assert pso.GbestInertiaPSO.id_string == "PIGS"
    swarm = pso.ParticleSwarm(update="fips", topology=Topology.MULTI_SWARM, synchronicity="synchronous")
    assert swarm.id_string == "PFMS"


def test_configuration() -> None:
    swarm = pso.ParticleSwarm(topology="GBEST", repair="reflection")
    assert swarm.topology_type == Topology.GBEST
    assert swarm.config() == {
        "update": "inertia_weight",
        "topology": "gbest",
        "synchronicity": "asynchronous",
        "repair": "reflection",
    }
    assert swarm == pso.ParticleSwarm(topology="gbest", repair=PSORepair.REFLECTION)
    assert swarm != pso.ParticleSwarm(topology="gbest")
    assert repr(swarm).startswith("ParticleSwarm(")
    assert base.registry["LbestInertiaPSO"] == pso.ParticleSwarm()
    with pytest.raises(errors.ConfigurationError):
        pso.ParticleSwarm(topology="blublu")


def test_sphere_convergence() -> None:
    func = _sphere()
    swarm = pso.ParticleSwarm(
        update="inertia_weight", topology="gbest", repair="reinitialization", random_state=np.random.RandomState(12)
    )
    recorder = callbacks.PositionRecorder()
    result = swarm.run(func, eval_budget=2000, population_size=20, logger=recorder)
    assert result.best_fitness < 1e-3
    assert result.best_fitness == min(recorder.fitnesses)
    assert result.evaluations == func.evaluations == len(recorder) == 2000
    assert result.iterations == 100
    assert result.population_size == 20
    for position in recorder.positions:
        testing.assert_within_bounds(position, -5, 5)
    # resources are released after the run
    assert not swarm.particles
    assert swarm.topology_manager is None


def test_synchronous_equals_asynchronous_for_single_particle() -> None:
    results = []
    for synchronicity in pso.Synchronicity:
        swarm = pso.ParticleSwarm(synchronicity=synchronicity, random_state=np.random.RandomState(24))
        recorder = callbacks.PositionRecorder()
        swarm.run(_sphere(3), eval_budget=50, population_size=1, logger=recorder)
        results.append(np.array(recorder.positions))
    np.testing.assert_array_equal(results[0], results[1])


def test_synchronous_and_asynchronous_differ_for_swarms() -> None:
    results = []
    for synchronicity in pso.Synchronicity:
        rng = np.random.RandomState(24)
        swarm = pso.ParticleSwarm(topology="gbest", synchronicity=synchronicity, random_state=rng)
        recorder = callbacks.PositionRecorder()
        swarm.run(_sphere(3), eval_budget=50, population_size=5, logger=recorder)
        results.append(np.array(recorder.positions))
    # same initialization, then later particles of a pass see the bests of the earlier ones
    np.testing.assert_array_equal(results[0][:5], results[1][:5])
    assert np.any(results[0][5:] != results[1][5:])


def test_seeded_runs_are_reproducible() -> None:
    outputs = []
    for _ in range(2):
        swarm = pso.ParticleSwarm(topology="random_graph", random_state=np.random.RandomState(3))
        outputs.append(swarm.run(_sphere(), eval_budget=300, population_size=10).best_fitness)
    assert outputs[0] == outputs[1]


@pytest.mark.parametrize("synchronicity", list(pso.Synchronicity))  # type: ignore
@pytest.mark.parametrize("repair", list(PSORepair))  # type: ignore
@pytest.mark.parametrize("update", list(UpdateManagerType))  # type: ignore
def test_all_configurations(
    update: UpdateManagerType, repair: PSORepair, synchronicity: pso.Synchronicity
) -> None:
    func = BoundedFunction(corefuncs.rastrigin, [-5, -1, 0], [5, 1, 0.5])
    swarm = pso.ParticleSwarm(update, "lbest", synchronicity, repair, random_state=np.random.RandomState(12))
    recorder = callbacks.PositionRecorder()
    result = swarm.run(func, eval_budget=100, population_size=7, logger=recorder)
    assert 100 <= result.evaluations < 107
    for position in recorder.positions:
        testing.assert_within_bounds(position, [-5, -1, 0], [5, 1, 0.5])


@pytest.mark.parametrize("topology", list(Topology))  # type: ignore
def test_all_topologies(topology: Topology) -> None:
    swarm = pso.ParticleSwarm(topology=topology, random_state=np.random.RandomState(12))
    result = swarm.run(_sphere(), eval_budget=400, population_size=9)
    assert result.best_fitness < 1.0


def test_budget_overshoot_is_below_population_size() -> None:
    swarm = pso.ParticleSwarm(random_state=np.random.RandomState(12))
    result = swarm.run(_sphere(), eval_budget=101, population_size=10)
    assert result.evaluations == 110


def test_stops_when_optimum_is_hit() -> None:
    func = _sphere(optimum_value=0.0, tolerance=1e3)
    result = pso.ParticleSwarm(random_state=np.random.RandomState(12)).run(func, 1000, 10)
    assert result.evaluations == 10
    assert result.iterations == 1


def test_population_size_warning() -> None:
    swarm = pso.ParticleSwarm(topology="von_neumann", random_state=np.random.RandomState(12))
    with pytest.warns(errors.PopulationSizeWarning):
        result = swarm.run(_sphere(), eval_budget=100, population_size=10)
    assert result.population_size == 9


def test_invalid_settings() -> None:
    swarm = pso.ParticleSwarm(update="constriction_coefficient")
    with pytest.raises(errors.ConfigurationError):
        swarm.run(_sphere(), 100, 10, parameters={"phi1": 1.0, "phi2": 1.0})
    with pytest.raises(errors.ConfigurationError):
        swarm.run(_sphere(), 100, 10, parameters={"w": 0.5})
    with pytest.raises(errors.ConfigurationError):
        swarm.run(_sphere(), 0, 10)
    with pytest.raises(errors.ConfigurationError):
        swarm.run(_sphere(), 100, 0)
    assert not swarm.particles


def test_parameters_are_used() -> None:
    outputs = []
    for w in [0.7298, 0.3]:
        swarm = pso.ParticleSwarm(random_state=np.random.RandomState(12))
        outputs.append(swarm.run(_sphere(), 200, 10, parameters={"w": w}).best_fitness)
    assert outputs[0] != outputs[1]


def test_enable_logging(caplog: tp.Any) -> None:
    swarm = pso.ParticleSwarm(topology="gbest", random_state=np.random.RandomState(12))
    swarm.enable_logging()
    with caplog.at_level(logging.INFO, logger="swarmevo.optimization.particleswarm"):
        swarm.run(_sphere(), eval_budget=30, population_size=10)
    messages = [record.getMessage() for record in caplog.records]
    assert messages[0] == "START PIGA"
    assert messages[-1] == "END PIGA"
    assert len(messages) == 2 + 1 + 3  # initial positions, then one per pass
    assert len(messages[1].splitlines()) == 11


def test_no_end_marker_when_setup_fails(caplog: tp.Any) -> None:
    swarm = pso.ParticleSwarm(update="constriction_coefficient")
    swarm.enable_logging()
    with caplog.at_level(logging.INFO, logger="swarmevo.optimization.particleswarm"):
        with pytest.raises(errors.ConfigurationError):
            swarm.run(_sphere(), 100, 10, parameters={"w": 0.5})
    assert not [record.getMessage() for record in caplog.records]


def test_logging_does_not_alter_results() -> None:
    fitnesses = []
    for logging_enabled in [False, True]:
        swarm = pso.ParticleSwarm(random_state=np.random.RandomState(12))
        if logging_enabled:
            swarm.enable_logging()
        fitnesses.append(swarm.run(_sphere(), 200, 10).best_fitness)
    assert fitnesses[0] == fitnesses[1]
