# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
import pytest
import numpy as np
from swarmevo.common import errors
from swarmevo.common import testing
from . import repair


class _State:
    def __init__(self, x: tp.Any, v: tp.Any) -> None:
        self.x = np.array(x, dtype=float)
        self.v = np.array(v, dtype=float)
        self.p = self.x.copy()
        self.g = self.x.copy()
        self.informant_bests: tp.List[np.ndarray] = []


LOWER = [-1.0, -1.0, 0.0, 2.0]
UPPER = [1.0, 1.0, 0.0, 3.0]


@pytest.mark.parametrize("kind", list(repair.PSORepair))  # type: ignore
def test_pso_repairs_stay_in_bounds(kind: repair.PSORepair) -> None:
    handler = repair.create_pso_repair(kind, LOWER, UPPER, np.random.RandomState(12))
    for x in ([1e12, -1e12, 1e-3, 2.5], [1.0, -1.0, 0.0, 3.0], [np.nan, np.inf, -np.inf, 1e300]):
        state = _State(x, [1e12, -1e12, 1e-3, 0.5])
        handler.repair(state)
        testing.assert_within_bounds(state.x, LOWER, UPPER, err_msg=f"Failed for {kind} on {x}")
        assert handler.is_feasible(state.x)


@testing.parametrized(
    projection=("projection", [3.5, -1.25], [1.0, -1.0], [0.0, 0.0]),
    reflection=("reflection", [3.5, -1.25], [-0.5, -0.75], [-2.5, 0.25]),
    wrapping=("wrapping", [1.5, -1.25], [-0.5, 0.75], [0.0, 0.0]),
    hyperbolic=("hyperbolic", [1.5, 0.5], [0.5 + 1.0 / 3, 0.5], [1.0 / 3, 0.0]),
)
def test_pso_repair_values(
    kind: str, x: tp.List[float], expected_x: tp.List[float], expected_v: tp.List[float]
) -> None:
    v = [1.0, 0.0] if kind == "hyperbolic" else [2.5, -0.25]
    state = _State(x, v)
    repair.create_pso_repair(kind, [-1, -1], [1, 1]).repair(state)
    np.testing.assert_almost_equal(state.x, expected_x)
    np.testing.assert_almost_equal(state.v, expected_v)


def test_pso_feasible_particle_is_untouched() -> None:
    state = _State([0.5, -0.2], [3.0, 4.0])
    repair.create_pso_repair("reinitialization", [-1, -1], [1, 1]).repair(state)
    np.testing.assert_array_equal(state.x, [0.5, -0.2])
    np.testing.assert_array_equal(state.v, [3.0, 4.0])


def test_reinitialization_resets_velocity() -> None:
    state = _State([0.5, 7.0], [3.0, 4.0])
    repair.create_pso_repair("reinitialization", [-1, -1], [1, 1], np.random.RandomState(1)).repair(state)
    assert -1 <= state.x[1] <= 1
    np.testing.assert_array_equal(state.v, [3.0, 0.0])


def test_wrong_bounds() -> None:
    with pytest.raises(errors.ConfigurationError):
        repair.create_pso_repair("projection", [1, 1], [0, 2])
    with pytest.raises(errors.ConfigurationError):
        repair.create_de_repair("rand_base", [1, 1], [2, 2, 2])
    with pytest.raises(errors.UnknownStrategyError):
        repair.create_de_repair("blublu", [1, 1], [2, 2])


@testing.parametrized(
    midpoint_base=("midpoint_base", [0.5, 0.25]),
    midpoint_target=("midpoint_target", [0.75, 0.25]),
    conservatism=("conservatism", [0.0, 0.25]),
    projection_base=("projection_base", [1.0, 0.125]),
    projection_midpoint=("projection_midpoint", [1.0, 0.125]),
)
def test_de_repair_values(kind: str, expected: tp.List[float]) -> None:
    handler = repair.create_de_repair(kind, [-1, -1], [1, 1])
    trial = np.array([2.0, 0.25])
    output = handler.repair(trial, [0.0, 0.0], [0.5, 0.5])
    np.testing.assert_almost_equal(output, expected)
    np.testing.assert_array_equal(trial, [2.0, 0.25])  # input is untouched


def test_de_rand_base_is_between_base_and_bound() -> None:
    handler = repair.create_de_repair("rand_base", [-1, -1], [1, 1], np.random.RandomState(12))
    for _ in range(20):
        output = handler.repair([-4.0, 0.25], [0.5, 0.0], [0.0, 0.0])
        assert -1 <= output[0] <= 0.5
        assert output[1] == 0.25


@pytest.mark.parametrize("kind", list(repair.DERepair))  # type: ignore
def test_de_repairs_stay_in_bounds(kind: repair.DERepair) -> None:
    lower, upper = np.array([-5.0, -5.0, 0.0]), np.array([5.0, 5.0, 1e-3])
    handler = repair.create_de_repair(kind, lower, upper, np.random.RandomState(12))
    rng = np.random.RandomState(0)
    for _ in range(50):
        base, target = (rng.uniform(lower, upper) for _ in range(2))
        trial = rng.normal(0, 1e8, size=3)
        testing.assert_within_bounds(handler.repair(trial, base, target), lower, upper)


def test_de_projection_stays_on_segment() -> None:
    handler = repair.create_de_repair("projection_base", [-1, -1, -1], [1, 1, 1])
    base = np.array([0.2, -0.4, 0.0])
    trial = np.array([4.0, -3.0, 0.5])
    output = handler.repair(trial, base, base)
    alphas = (output - base) / (trial - base)
    np.testing.assert_almost_equal(alphas, alphas[0] * np.ones(3))  # same direction as the move
    assert 0 < alphas[0] < 1
    assert np.max(np.abs(output)) == pytest.approx(1.0)
