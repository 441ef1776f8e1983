# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.


# base classes


class SwarmevoError(Exception):
    """Base class for error raised by swarmevo"""


class SwarmevoWarning(Warning):
    pass


# errors
# pylint: disable=too-many-ancestors


class SwarmevoRuntimeError(RuntimeError, SwarmevoError):
    """Runtime error raised by swarmevo"""


class SwarmevoValueError(ValueError, SwarmevoError):
    """Value error raised by swarmevo"""


class ConfigurationError(SwarmevoValueError):
    """Invalid algorithm configuration (unknown strategy, degenerate coefficients,
    unrealizable population size...). Always raised before any evaluation takes place.
    """


class UnknownStrategyError(ConfigurationError, KeyError):
    """Raised by factories when no strategy is registered under the requested name"""

    def __str__(self) -> str:  # KeyError would otherwise add quotes around the message
        return str(self.args[0]) if self.args else ""


# warnings


class SwarmevoRuntimeWarning(RuntimeWarning, SwarmevoWarning):
    """Runtime warning raised by swarmevo"""


class PopulationSizeWarning(SwarmevoRuntimeWarning):
    """The requested population size was rounded to fit the topology"""


class InefficientSettingsWarning(SwarmevoRuntimeWarning):
    """Optimization settings are not optimal for the algorithm"""
