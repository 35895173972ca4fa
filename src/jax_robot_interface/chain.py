"""Forward kinematics over the flattened link tree.

Link transforms in the model frame are computed from a full vector of
variable values with a single ``jax.lax.scan`` over the breadth-first link
order, so each parent is placed before its children.
"""

from typing import Dict

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

from .core.robot_model import MAX_JOINT_DOF, RobotModel
from .transforms import se3


def forward_kinematics(robot: RobotModel, q: Array) -> Dict[str, Array]:
    """Compute forward kinematics for all links in the robot.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        q: Variable values of shape (num_variables,), ordered as
           ``robot.variable_names``

    Returns:
        Dictionary mapping link names to their 4x4 SE(3) poses in
        ``robot.model_frame``
    """
    world_transforms = forward_kinematics_world(robot, q)
    return {name: world_transforms[i] for i, name in enumerate(robot.link_names)}


@jax.jit
def forward_kinematics_world(robot: RobotModel, q: Array) -> Array:
    """Internal FK function returning array of model-frame transforms.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        q: Variable values of shape (num_variables,)

    Returns:
        Array of shape (num_links, 4, 4) with poses for all links
    """
    num_links = len(robot.link_names)

    # Index -1 marks an unused slot and lands on the trailing zero.
    q_padded = jnp.concatenate([jnp.asarray(q, dtype=jnp.float64), jnp.zeros(1)])
    slot_values = q_padded[robot.variable_indices]

    # Joint motion of every link: product of one exponential per slot.
    slot_motions = se3.exp(robot.joint_axes * slot_values[..., None])
    motion = slot_motions[:, 0]
    for k in range(1, MAX_JOINT_DOF):
        motion = se3.multiply(motion, slot_motions[:, k])
    local_transforms = se3.multiply(robot.joint_transforms, motion)

    # Slot 0 holds the model frame, link i lives in slot i + 1.
    transforms = jnp.identity(4)[None].repeat(num_links + 1, axis=0)

    def scan_body(carry, i):
        T_model_to_parent = carry[robot.parent_indices[i] + 1]
        carry = carry.at[i + 1].set(se3.multiply(T_model_to_parent, local_transforms[i]))
        return carry, None

    final_transforms, _ = jax.lax.scan(scan_body, transforms, jnp.arange(num_links))

    return final_transforms[1:]


def variable_vector(robot: RobotModel, values) -> np.ndarray:
    """Dense variable vector from a name -> value mapping; missing entries are 0."""
    return np.array([float(values.get(name, 0.0)) for name in robot.variable_names], dtype=np.float64)
