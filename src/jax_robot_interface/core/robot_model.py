"""RobotModel PyTree data structure for the structural robot description.

This module defines the immutable description of a robot shared by every
interface built from the same description: names, per-joint variables and
limits, planning groups, and the flattened link tree used by forward
kinematics.
"""

from functools import cached_property
from typing import Dict, FrozenSet, Optional, Tuple

from flax import struct
from jax import Array

# Most variables a single joint can contribute (a floating joint).
MAX_JOINT_DOF = 6

Limits = Tuple[Tuple[float, float], ...]


@struct.dataclass
class RobotModel:
    """Immutable PyTree representation of a robot's kinematic structure.

    Name and semantic data are static fields; the link tree is stored in JAX
    arrays indexed by link position in ``link_names`` so that forward
    kinematics can run under ``jit``. Links are ordered breadth-first from
    the root, so every parent precedes its children.

    All lookups by name are total: unknown names give an empty tuple or
    ``None``.

    Attributes:
        name: Robot name from the description.
        model_frame: Frame all link poses are expressed in.
        link_names: All links, breadth-first from the root link.
        joint_names: All joints (fixed ones and any virtual joint included),
            ordered by the position of their child link.
        joint_types: URDF/SRDF type of each joint, aligned with joint_names.
        joint_variables: Variable names of each joint, aligned with joint_names.
        joint_limits: (min, max) per variable of each joint.
        variable_names: Flat tuple of every scalar variable of the model.
        link_parent_joints: Joint whose child is each link (None for a root
            without a virtual joint), aligned with link_names.
        group_names: Planning groups in declaration order.
        group_joints: Joints of each group, in model joint order.
        parent_indices: Array of shape (num_links,) with the parent link index
            of each link; -1 for the root.
        joint_transforms: Array of shape (num_links, 4, 4) with the fixed
            origin transform from each link's parent to the link.
        joint_axes: Array of shape (num_links, MAX_JOINT_DOF, 6) with one
            unit twist [vx,vy,vz,wx,wy,wz] per variable slot of the link's
            parent joint; unused slots are zero.
        variable_indices: Array of shape (num_links, MAX_JOINT_DOF) mapping each
            slot to its index in variable_names, -1 for unused slots.
    """
    name: str = struct.field(pytree_node=False)
    model_frame: str = struct.field(pytree_node=False)
    link_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_types: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_variables: Tuple[Tuple[str, ...], ...] = struct.field(pytree_node=False)
    joint_limits: Tuple[Limits, ...] = struct.field(pytree_node=False)
    variable_names: Tuple[str, ...] = struct.field(pytree_node=False)
    link_parent_joints: Tuple[Optional[str], ...] = struct.field(pytree_node=False)
    group_names: Tuple[str, ...] = struct.field(pytree_node=False)
    group_joints: Tuple[Tuple[str, ...], ...] = struct.field(pytree_node=False)
    parent_indices: Array
    joint_transforms: Array
    joint_axes: Array
    variable_indices: Array

    @cached_property
    def _joint_index(self) -> Dict[str, int]:
        return {name: i for i, name in enumerate(self.joint_names)}

    @cached_property
    def _link_index(self) -> Dict[str, int]:
        return {name: i for i, name in enumerate(self.link_names)}

    @cached_property
    def _group_index(self) -> Dict[str, int]:
        return {name: i for i, name in enumerate(self.group_names)}

    @cached_property
    def _variable_joint(self) -> Dict[str, str]:
        return {
            variable: joint
            for joint, variables in zip(self.joint_names, self.joint_variables)
            for variable in variables
        }

    @cached_property
    def link_dependencies(self) -> Dict[str, FrozenSet[str]]:
        """Variables that must be known to place each link in the model frame."""
        deps: Dict[str, FrozenSet[str]] = {}
        for i, link in enumerate(self.link_names):
            parent = int(self.parent_indices[i])
            inherited = deps[self.link_names[parent]] if parent >= 0 else frozenset()
            joint = self.link_parent_joints[i]
            own = self.get_joint_variable_names(joint) if joint is not None else ()
            deps[link] = inherited | frozenset(own)
        return deps

    @property
    def root_link(self) -> str:
        return self.link_names[0]

    @property
    def variable_count(self) -> int:
        return len(self.variable_names)

    def has_variable(self, name: str) -> bool:
        return name in self._variable_joint

    def link_index(self, name: str) -> Optional[int]:
        return self._link_index.get(name)

    def get_joint_type(self, name: str) -> Optional[str]:
        idx = self._joint_index.get(name)
        return None if idx is None else self.joint_types[idx]

    def get_joint_variable_names(self, name: str) -> Tuple[str, ...]:
        idx = self._joint_index.get(name)
        return () if idx is None else self.joint_variables[idx]

    def get_joint_limits(self, name: str) -> Limits:
        """(min_position, max_position) for each variable of a joint.

        Empty if the joint is unknown or contributes no variables.
        """
        idx = self._joint_index.get(name)
        return () if idx is None else self.joint_limits[idx]

    def get_link_parent_joint(self, link_name: str) -> Optional[str]:
        idx = self._link_index.get(link_name)
        return None if idx is None else self.link_parent_joints[idx]

    def get_group_joint_names(self, name: str) -> Tuple[str, ...]:
        idx = self._group_index.get(name)
        return () if idx is None else self.group_joints[idx]

    def get_group_variable_count(self, name: str) -> int:
        return sum(len(self.get_joint_variable_names(j)) for j in self.get_group_joint_names(name))

    def group_has_joint(self, group_name: str, joint_name: str) -> bool:
        return joint_name in self.get_group_joint_names(group_name)

    def find_min_containing_group(self, joint_name: str) -> Optional[str]:
        """Smallest group, by variable count, that contains ``joint_name``.

        Groups are visited in ``group_names`` order and a later group only
        replaces the current one when it has strictly fewer variables, so the
        first group seen wins ties.
        """
        best: Optional[str] = None
        best_count = 0
        for group in self.group_names:
            if not self.group_has_joint(group, joint_name):
                continue
            count = self.get_group_variable_count(group)
            if best is None or best_count > count:
                best, best_count = group, count
        return best
