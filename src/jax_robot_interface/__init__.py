"""
JAX Robot Interface: read-only introspection of a robot's kinematic
description and live state for motion-planning clients.

Structural queries come from an immutable, shared RobotModel; state queries
come from a lazily started monitor fed by a StateFeed.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from . import core
from . import io
from .config import InterfaceConfig
from .exceptions import ModelLoadError, RobotInterfaceError
from .monitor import CurrentStateMonitor, LocalStateFeed, StateFeed
from .msgs import JointState, LinkPose
from .robot_interface import RobotInterface

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "io",
    "CurrentStateMonitor",
    "InterfaceConfig",
    "JointState",
    "LinkPose",
    "LocalStateFeed",
    "ModelLoadError",
    "RobotInterface",
    "RobotInterfaceError",
    "StateFeed",
]
