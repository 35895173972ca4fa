"""Immutable snapshot of the monitored robot state."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, FrozenSet, Mapping, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .robot_model import RobotModel


@dataclass(frozen=True, eq=False)
class RobotState:
    """Point-in-time view of the variables observed since the monitor started.

    A snapshot is never mutated after it is published. Link transforms are
    derived lazily from this snapshot's own ``values``, so a transform can
    never reflect an update the snapshot does not contain.

    Attributes:
        robot: Model the values belong to.
        values: Variable name -> position for every observed variable.
        stamp: ``time.monotonic()`` of the update that produced the snapshot.
        is_complete: Every model variable has been observed.
    """

    robot: RobotModel
    values: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    stamp: Optional[float] = None
    is_complete: bool = False

    @classmethod
    def empty(cls, robot: RobotModel) -> RobotState:
        return cls(robot=robot, is_complete=robot.variable_count == 0)

    def updated(self, updates: Dict[str, float], stamp: float) -> RobotState:
        """New snapshot with ``updates`` applied on top of this one."""
        values = dict(self.values)
        values.update(updates)
        complete = self.is_complete or len(values) == self.robot.variable_count
        return RobotState(self.robot, MappingProxyType(values), stamp, complete)

    @cached_property
    def _known_links(self) -> FrozenSet[str]:
        observed = self.values.keys()
        return frozenset(
            link for link, deps in self.robot.link_dependencies.items() if deps.issubset(observed)
        )

    @cached_property
    def _link_transforms(self) -> NDArray[np.float64]:
        from ..chain import forward_kinematics_world, variable_vector

        q = variable_vector(self.robot, self.values)
        return np.asarray(forward_kinematics_world(self.robot, q))

    def get_joint_values(self, joint_name: str) -> Tuple[float, ...]:
        """Values of a joint's variables, or () unless all of them are known."""
        variables = self.robot.get_joint_variable_names(joint_name)
        if not variables or any(v not in self.values for v in variables):
            return ()
        return tuple(self.values[v] for v in variables)

    def get_link_transform(self, link_name: str) -> Optional[NDArray[np.float64]]:
        """4x4 pose of a link in the model frame.

        None for unknown links and for links whose chain from the root still
        has unobserved variables.
        """
        idx = self.robot.link_index(link_name)
        if idx is None or link_name not in self._known_links:
            return None
        return self._link_transforms[idx]
