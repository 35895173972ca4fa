"""Exceptions raised by the robot interface.

Only construction can fail: every query degrades to an empty result and a
log entry instead of raising.
"""


class RobotInterfaceError(Exception):
    """Base class for robot interface errors."""


class ModelLoadError(RobotInterfaceError, ValueError):
    """The robot description could not be resolved, read or parsed."""
