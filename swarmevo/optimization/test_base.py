# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from swarmevo.common import errors
from . import base
from .particleswarm import ParticleSwarm
from .differentialevolution import DifferentialEvolution


def test_random_state_is_lazy() -> None:
    algo = ParticleSwarm()
    assert algo._random_state is None
    rng = algo.random_state
    assert isinstance(rng, np.random.RandomState)
    assert algo.random_state is rng
    algo.random_state = np.random.RandomState(12)
    assert algo.random_state is not rng


def test_set_name_and_registry() -> None:
    algo = DifferentialEvolution(mutation="best_2").set_name("MyDE")
    assert repr(algo) == "MyDE"
    assert "MyDE" not in base.registry
    algo.set_name("MyTestDE", register=True)
    try:
        assert base.registry["MyTestDE"] is algo
        with pytest.raises(errors.SwarmevoRuntimeError):
            DifferentialEvolution().set_name("MyTestDE", register=True)
    finally:
        base.registry.unregister("MyTestDE")
    with pytest.raises(errors.UnknownStrategyError):
        base.registry["MyTestDE"]  # pylint: disable=pointless-statement


def test_equality() -> None:
    assert ParticleSwarm(update="fips") == ParticleSwarm(update="fips", random_state=np.random.RandomState(12))
    assert hash(ParticleSwarm(update="fips")) == hash(ParticleSwarm(update="fips"))
    assert ParticleSwarm() != DifferentialEvolution()
    assert repr(DifferentialEvolution()) == (
        "DifferentialEvolution(adaptation='jade', crossover='binomial', mutation='rand_1', repair='midpoint_target')"
    )


def test_presets_are_registered() -> None:
    for name in ["GbestInertiaPSO", "LbestInertiaPSO", "ClassicDE", "JADE"]:
        assert isinstance(base.registry[name], base.ConfiguredAlgorithm)
