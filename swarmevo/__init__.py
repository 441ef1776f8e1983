# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .common import typing as typing
from .functions import BoundedFunction
from .optimization import particleswarm as particleswarm
from .optimization import differentialevolution as differentialevolution
from .optimization import callbacks as callbacks
from .optimization.base import registry as algorithms
from .optimization.particleswarm import ParticleSwarm
from .optimization.differentialevolution import DifferentialEvolution


__all__ = [
    "BoundedFunction",
    "ParticleSwarm",
    "DifferentialEvolution",
    "algorithms",
    "callbacks",
    "particleswarm",
    "differentialevolution",
    "typing",
]


__version__ = "0.1.0"
