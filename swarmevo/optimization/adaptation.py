# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Control parameters (scale factor F and crossover rate Cr) of differential evolution,
either constant or self-adapted from the values of successful trials.
"""

from enum import Enum
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors
from swarmevo.common.decorators import Registry
from swarmevo.common.decorators import to_enum


class DEAdaptationType(Enum):
    JADE = "jade"
    NO_ADAPTATION = "no_adaptation"


adaptation_managers: Registry[tp.Type["DEAdaptationManager"]] = Registry("adaptation manager")


class DEAdaptationManager:
    """Provides F and Cr for each individual of a generation, and learns from
    the individuals which survived selection.

    Typical generation:

    .. code-block:: python

        manager.reset()
        fs, crs = manager.next_f(size), manager.next_cr(size)
        ...  # for each individual i surviving the selection
        manager.successful_index(i)
        ...
        manager.update()
    """

    def __init__(self, random_state: tp.Optional[np.random.RandomState] = None) -> None:
        self.random_state = np.random.RandomState() if random_state is None else random_state

    def next_f(self, size: int) -> np.ndarray:
        raise NotImplementedError

    def next_cr(self, size: int) -> np.ndarray:
        raise NotImplementedError

    def successful_index(self, index: int) -> None:
        """Reports that the individual at this index survived selection"""

    def successful_values(self, f: float, cr: float) -> None:
        """Reports a pair of successful control parameters"""

    def update(self) -> None:
        """Updates the distributions at the end of a generation"""

    def reset(self) -> None:
        """Clears the successes, at the start of a generation"""


@adaptation_managers.register_as(DEAdaptationType.NO_ADAPTATION)
class NoAdaptationManager(DEAdaptationManager):
    """Constant control parameters, successes are ignored"""

    def __init__(
        self, random_state: tp.Optional[np.random.RandomState] = None, F: float = 0.9, Cr: float = 0.6
    ) -> None:
        super().__init__(random_state)
        self.F = F
        self.Cr = Cr

    def next_f(self, size: int) -> np.ndarray:
        return np.full(size, self.F)

    def next_cr(self, size: int) -> np.ndarray:
        return np.full(size, self.Cr)


@adaptation_managers.register_as(DEAdaptationType.JADE)
class JADEManager(DEAdaptationManager):
    """JADE adaptation (Zhang and Sanderson, 2009).

    - Cr is drawn from N(mu_cr, 0.1), and mu_cr moves toward the arithmetic mean of the
      successful Cr values.
    - For one third of the population (randomly chosen), F is drawn from U(0, 1.2),
      otherwise from U(mu_f, 1). mu_f moves toward the Lehmer mean of the successful F,
      which favors large values so as not to collapse the mutation strength too quickly.

    Parameters
    ----------
    random_state: RandomState
        random state to draw from
    mu_cr: float
        initial location of the crossover rate distribution
    mu_f: float
        initial location of the scale factor distribution
    c: float
        learning rate of the locations
    """

    F_BOUNDS = (0.01, 1.2)
    CR_BOUNDS = (0.01, 1.0)

    def __init__(
        self,
        random_state: tp.Optional[np.random.RandomState] = None,
        mu_cr: float = 0.5,
        mu_f: float = 0.6,
        c: float = 0.5,
    ) -> None:
        super().__init__(random_state)
        if not 0 <= c <= 1:
            raise errors.ConfigurationError(f"Learning rate c must be in [0, 1] (got {c})")
        self.mu_cr = mu_cr
        self.mu_f = mu_f
        self.c = c
        self.successful_fs: tp.List[float] = []
        self.successful_crs: tp.List[float] = []
        self._previous_fs: tp.Optional[np.ndarray] = None
        self._previous_crs: tp.Optional[np.ndarray] = None

    def next_f(self, size: int) -> np.ndarray:
        third = size // 3
        explorers = self.random_state.permutation(size)[:third]
        fs = self.random_state.uniform(self.mu_f, 1.0, size=size)
        fs[explorers] = self.random_state.uniform(0.0, 1.2, size=third)
        fs = np.maximum(fs, 0.0)
        self._previous_fs = fs.copy()
        return fs

    def next_cr(self, size: int) -> np.ndarray:
        crs = np.maximum(self.random_state.normal(self.mu_cr, 0.1, size=size), 0.0)
        self._previous_crs = crs.copy()
        return crs

    def successful_index(self, index: int) -> None:
        if self._previous_fs is None or self._previous_crs is None:
            raise errors.SwarmevoRuntimeError("Successes can only be reported after sampling F and Cr")
        self.successful_values(float(self._previous_fs[index]), float(self._previous_crs[index]))

    def successful_values(self, f: float, cr: float) -> None:
        self.successful_fs.append(f)
        self.successful_crs.append(cr)

    def lehmer_mean(self) -> float:
        """Sum of squares over sum of the successful F values"""
        fs = np.asarray(self.successful_fs, dtype=float)
        total = np.sum(fs)
        return float(np.sum(fs ** 2) / total) if total > 0 else 0.0

    def update(self) -> None:
        if self.successful_crs:
            mu_cr = (1.0 - self.c) * self.mu_cr + self.c * float(np.mean(self.successful_crs))
            self.mu_cr = float(np.clip(mu_cr, *self.CR_BOUNDS))
        if self.successful_fs:
            mu_f = (1.0 - self.c) * self.mu_f + self.c * self.lehmer_mean()
            self.mu_f = float(np.clip(mu_f, *self.F_BOUNDS))

    def reset(self) -> None:
        self.successful_fs = []
        self.successful_crs = []


def create_adaptation_manager(
    kind: tp.Union[str, DEAdaptationType], random_state: tp.Optional[np.random.RandomState] = None, **kwargs: float
) -> DEAdaptationManager:
    try:
        return adaptation_managers[to_enum(DEAdaptationType, kind)](random_state, **kwargs)  # type: ignore
    except TypeError as e:
        raise errors.ConfigurationError(f"Invalid parameters for {kind} adaptation: {e}") from e
