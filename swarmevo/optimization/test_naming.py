# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
from enum import Enum
import pytest
from swarmevo.common import errors
from swarmevo.common import testing
from . import naming
from .adaptation import DEAdaptationType
from .differentialevolution import CrossoverType
from .differentialevolution import MutationType
from .particleswarm import Synchronicity
from .topology import Topology
from .updates import UpdateManagerType


def test_names() -> None:
    assert naming.pso_name("inertia_weight", "lbest", "asynchronous") == "PILA"
    assert naming.pso_name(UpdateManagerType.BARE_BONES, Topology.VON_NEUMANN, Synchronicity.SYNCHRONOUS) == "PBNS"
    assert naming.de_name("rand_1", "binomial", "jade") == "DR1BJ"
    assert naming.de_name(MutationType.TTPB_1, CrossoverType.EXPONENTIAL, DEAdaptationType.NO_ADAPTATION) == "DPBEN"


def test_unknown_code() -> None:
    with pytest.raises(errors.ConfigurationError):
        naming.pso_name("inertia_weight", "blublu", "asynchronous")
    with pytest.raises(errors.ConfigurationError):
        naming.de_name("rand_1", "binomial", "blublu")


@testing.parametrized(
    update=(UpdateManagerType, naming.UPDATE_CODES),
    topology=(Topology, naming.TOPOLOGY_CODES),
    synchronicity=(Synchronicity, naming.SYNCHRONICITY_CODES),
    mutation=(MutationType, naming.MUTATION_CODES),
    crossover=(CrossoverType, naming.CROSSOVER_CODES),
    adaptation=(DEAdaptationType, naming.ADAPTATION_CODES),
)
def test_codes_cover_all_strategies(enum_cls: tp.Type[Enum], table: tp.Dict[str, str]) -> None:
    testing.assert_set_equal(table, [x.value for x in enum_cls])
    assert len(set(table.values())) == len(table), "Codes must be unique"
