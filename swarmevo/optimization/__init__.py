# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .base import ConfiguredAlgorithm  # abstract class, for type checking
from .base import RunResult
from .base import registry
from . import particleswarm
from . import differentialevolution
