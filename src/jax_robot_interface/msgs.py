"""Messages delivered by a state feed.

Poses are flat ``[x, y, z, qx, qy, qz, qw]`` sequences, quaternion last.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Sequence


@dataclass(frozen=True)
class JointState:
    """Positions of a subset of the robot's variables.

    Attributes:
        name: Variable names; single-DOF joints use the joint name.
        position: One position per name.
        stamp: Source time in seconds.
    """

    name: Sequence[str]
    position: Sequence[float]
    stamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class LinkPose:
    """Pose of a link relative to its parent link.

    For the root link the parent is the model frame. Only links driven by a
    planar or floating joint can be resolved into joint variables.

    Attributes:
        link: Child link name.
        pose: ``[x, y, z, qx, qy, qz, qw]``.
        stamp: Source time in seconds.
    """

    link: str
    pose: Sequence[float]
    stamp: float = field(default_factory=time.time)
