"""Core data structures for the robot interface.

The immutable structural model shared between interfaces and the immutable
state snapshots published by the state monitor.
"""

from .robot_model import RobotModel
from .robot_state import RobotState

__all__ = ["RobotModel", "RobotState"]
