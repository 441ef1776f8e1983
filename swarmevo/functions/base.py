# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numbers
import numpy as np
import swarmevo.common.typing as tp
from swarmevo.common import errors


@tp.runtime_checkable
class Problem(tp.Protocol):
    """Narrow interface the optimization algorithms use to interact with an objective function.
    Evaluating consumes one unit of budget.
    """

    # pylint: disable=pointless-statement

    @property
    def dimension(self) -> int:
        ...

    @property
    def lower_bound(self) -> np.ndarray:
        ...

    @property
    def upper_bound(self) -> np.ndarray:
        ...

    @property
    def evaluations(self) -> int:
        ...

    def evaluate(self, x: tp.ArrayLike) -> float:
        ...

    def hit_optimal(self) -> bool:
        ...


def _as_bound(value: tp.Union[float, tp.ArrayLike], dimension: tp.Optional[int], name: str) -> np.ndarray:
    if isinstance(value, numbers.Real):
        if dimension is None:
            raise errors.ConfigurationError(f"A dimension must be provided along with scalar {name} bound")
        return np.full(dimension, float(value))
    array = np.array(value, dtype=float, copy=True)
    if array.ndim != 1 or (dimension is not None and array.size != dimension):
        raise errors.ConfigurationError(f"Wrong shape {array.shape} for {name} bound (dimension={dimension})")
    return array


# pylint: disable=too-many-instance-attributes
class BoundedFunction:
    """Box-constrained objective function, counting evaluations and tracking the best value found

    Parameters
    ----------
    function: callable
        function to minimize, taking a 1d numpy array as input and returning a float
    lower: float or array-like
        lower bound of each decision variable
    upper: float or array-like
        upper bound of each decision variable
    dimension: int (optional)
        dimension of the space, required only if both bounds are scalars
    optimum_value: float (optional)
        known value of the global optimum. If provided, :code:`hit_optimal` becomes True
        once a value within :code:`tolerance` of it was found.
    tolerance: float
        precision required to consider the optimum as hit
    """

    def __init__(
        self,
        function: tp.Callable[[np.ndarray], float],
        lower: tp.Union[float, tp.ArrayLike],
        upper: tp.Union[float, tp.ArrayLike],
        dimension: tp.Optional[int] = None,
        optimum_value: tp.Optional[float] = None,
        tolerance: float = 1e-8,
    ) -> None:
        assert callable(function)
        if dimension is None and not isinstance(lower, numbers.Real):
            dimension = len(lower)  # type: ignore
        elif dimension is None and not isinstance(upper, numbers.Real):
            dimension = len(upper)  # type: ignore
        self._lower = _as_bound(lower, dimension, "lower")
        self._upper = _as_bound(upper, dimension, "upper")
        if not self._lower.size:
            raise errors.ConfigurationError("No variable to optimize")
        if np.any(self._lower > self._upper):
            raise errors.ConfigurationError(f"Lower bound {self._lower} is above upper bound {self._upper}")
        self._function = function
        self.optimum_value = optimum_value
        self.tolerance = tolerance
        self._evaluations = 0
        self.best_value = float("inf")
        self.best_position: tp.Optional[np.ndarray] = None
        name = function.__name__ if hasattr(function, "__name__") else function.__class__.__name__
        self._descriptors: tp.Dict[str, tp.Any] = dict(function=name, dimension=self.dimension)

    @property
    def dimension(self) -> int:
        return self._lower.size

    @property
    def lower_bound(self) -> np.ndarray:
        return self._lower.copy()

    @property
    def upper_bound(self) -> np.ndarray:
        return self._upper.copy()

    @property
    def evaluations(self) -> int:
        """int: Number of evaluations consumed so far"""
        return self._evaluations

    def evaluate(self, x: tp.ArrayLike) -> float:
        """Evaluates the function on x, consuming one unit of budget"""
        x = np.asarray(x, dtype=float)
        assert x.shape == (self.dimension,), f"Expected shape {(self.dimension,)} but got {x.shape}"
        value = float(self._function(x))
        self._evaluations += 1
        if value < self.best_value:
            self.best_value = value
            self.best_position = np.array(x, copy=True)
        return value

    def __call__(self, x: tp.ArrayLike) -> float:
        return self.evaluate(x)

    def hit_optimal(self) -> bool:
        if self.optimum_value is None:
            return False
        return self.best_value - self.optimum_value <= self.tolerance

    def reset(self) -> None:
        """Resets the evaluation counter and best value, for independent repetitions"""
        self._evaluations = 0
        self.best_value = float("inf")
        self.best_position = None

    def __repr__(self) -> str:
        params = [f"{x}={repr(y)}" for x, y in sorted(self._descriptors.items())]
        return "Instance of {}({})".format(self.__class__.__name__, ", ".join(params))
