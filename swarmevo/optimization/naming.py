# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Short identifiers of algorithm configurations, used for naming output files.
These codes are persisted in outputs: never change an existing entry.
"""

from enum import Enum
import swarmevo.common.typing as tp
from swarmevo.common import errors


UPDATE_CODES = {
    "inertia_weight": "I",
    "decr_inertia_weight": "D",
    "vmax": "V",
    "constriction_coefficient": "C",
    "fips": "F",
    "bare_bones": "B",
}

TOPOLOGY_CODES = {
    "lbest": "L",
    "gbest": "G",
    "random_graph": "R",
    "von_neumann": "N",
    "wheel": "W",
    "increasing": "I",
    "decreasing": "D",
    "multi_swarm": "M",
}

SYNCHRONICITY_CODES = {"synchronous": "S", "asynchronous": "A"}

MUTATION_CODES = {
    "rand_1": "R1",
    "best_1": "B1",
    "ttb_1": "T1",
    "best_2": "B2",
    "rand_2": "R2",
    "rand_2_dir": "RD",
    "nsde": "NS",
    "trigonometric": "TR",
    "ttpb_1": "PB",
}

CROSSOVER_CODES = {"binomial": "B", "exponential": "E"}

ADAPTATION_CODES = {"jade": "J", "no_adaptation": "N"}


def _code(table: tp.Dict[str, str], value: tp.Union[str, Enum]) -> str:
    key = str(value.value) if isinstance(value, Enum) else value
    if key not in table:
        raise errors.ConfigurationError(f'No identifier code for "{key}"')
    return table[key]


def pso_name(update: tp.Union[str, Enum], topology: tp.Union[str, Enum], synchronicity: tp.Union[str, Enum]) -> str:
    """Eg: "PILA" for inertia weight, lbest topology, asynchronous updates"""
    return (
        "P"
        + _code(UPDATE_CODES, update)
        + _code(TOPOLOGY_CODES, topology)
        + _code(SYNCHRONICITY_CODES, synchronicity)
    )


def de_name(mutation: tp.Union[str, Enum], crossover: tp.Union[str, Enum], adaptation: tp.Union[str, Enum]) -> str:
    """Eg: "DR1BJ" for rand/1 mutation, binomial crossover and JADE adaptation"""
    return (
        "D"
        + _code(MUTATION_CODES, mutation)
        + _code(CROSSOVER_CODES, crossover)
        + _code(ADAPTATION_CODES, adaptation)
    )
