# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from swarmevo.common import errors
from . import adaptation


def _jade(**kwargs: float) -> adaptation.JADEManager:
    manager = adaptation.create_adaptation_manager("jade", np.random.RandomState(12), **kwargs)
    assert isinstance(manager, adaptation.JADEManager)
    return manager


def test_jade_update() -> None:
    manager = _jade()
    manager.successful_values(0.4, 0.2)
    manager.successful_values(0.6, 0.8)
    np.testing.assert_almost_equal(manager.lehmer_mean(), 0.52)
    manager.update()
    np.testing.assert_almost_equal(manager.mu_f, 0.56)
    np.testing.assert_almost_equal(manager.mu_cr, 0.5)
    manager.reset()
    assert not manager.successful_fs
    manager.update()  # no success: nothing changes
    np.testing.assert_almost_equal(manager.mu_f, 0.56)


def test_lehmer_mean() -> None:
    manager = _jade()
    for f in [0.5, 0.5]:
        manager.successful_values(f, 0.1)
    np.testing.assert_almost_equal(manager.lehmer_mean(), 0.5)
    manager.reset()
    for f in [0.2, 0.8]:
        manager.successful_values(f, 0.9)
    np.testing.assert_almost_equal(manager.lehmer_mean(), 0.68)
    manager.reset()
    assert manager.lehmer_mean() == 0.0


def test_jade_bounds() -> None:
    manager = _jade(c=1.0)
    for _ in range(3):
        manager.successful_values(100.0, 5.0)
    manager.update()
    assert manager.mu_f == 1.2
    assert manager.mu_cr == 1.0
    manager.reset()
    manager.successful_values(1e-9, -5.0)
    manager.update()
    assert manager.mu_f == 0.01
    assert manager.mu_cr == 0.01


def test_jade_sampling() -> None:
    manager = _jade()
    fs = manager.next_f(30)
    crs = manager.next_cr(30)
    assert fs.shape == crs.shape == (30,)
    assert np.all(fs >= 0) and np.all(fs <= 1.2)
    assert np.sum(fs >= 0.6) >= 20  # two thirds are drawn from U(mu_f, 1)
    assert np.all(crs >= 0)
    manager.successful_index(3)
    assert manager.successful_fs == [fs[3]]
    assert manager.successful_crs == [crs[3]]


def test_jade_success_before_sampling() -> None:
    with pytest.raises(errors.SwarmevoRuntimeError):
        _jade().successful_index(0)


def test_no_adaptation() -> None:
    manager = adaptation.create_adaptation_manager("no_adaptation")
    np.testing.assert_array_equal(manager.next_f(3), [0.9, 0.9, 0.9])
    np.testing.assert_array_equal(manager.next_cr(2), [0.6, 0.6])
    manager.successful_index(1)
    manager.update()
    np.testing.assert_array_equal(manager.next_f(1), [0.9])
    manager = adaptation.create_adaptation_manager("no_adaptation", F=0.5, Cr=0.1)
    np.testing.assert_array_equal(manager.next_cr(1), [0.1])


def test_invalid_parameters() -> None:
    with pytest.raises(errors.ConfigurationError):
        adaptation.create_adaptation_manager("no_adaptation", mu_f=0.5)
    with pytest.raises(errors.ConfigurationError):
        _jade(c=2.0)
    with pytest.raises(errors.ConfigurationError):
        adaptation.create_adaptation_manager("blublu")
