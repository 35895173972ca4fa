"""Rigid-body transforms as homogeneous 4x4 matrices.

Twists are ordered [vx, vy, vz, wx, wy, wz]. Pose vectors exchanged with
clients and state feeds are [x, y, z, qx, qy, qz, qw], quaternion last.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array

_SMALL_ANGLE = 1e-6


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """(..., 3) position and (..., 3, 3) rotation -> (..., 4, 4) transform."""
    batch = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    top = jnp.concatenate(
        [jnp.broadcast_to(R, batch + (3, 3)), jnp.broadcast_to(p, batch + (3,))[..., None]],
        axis=-1,
    )
    bottom = jnp.broadcast_to(jnp.array([0.0, 0.0, 0.0, 1.0], dtype=top.dtype), batch + (1, 4))
    return jnp.concatenate([top, bottom], axis=-2)


def exp(twist: Array) -> Array:
    """
    Transform reached by following a constant twist for unit time.

    The translation is V @ v with V = I + b K + c K^2, where K = hat(w),
    b = (1 - cos t) / t^2 and c = (t - sin t) / t^3 for t = |w|. Series
    expansions replace b and c near t = 0.

    Args:
        twist: (..., 6) twists

    Returns:
        (..., 4, 4) transforms
    """
    v, omega = twist[..., :3], twist[..., 3:]
    theta = jnp.linalg.norm(omega, axis=-1)[..., None, None]
    small = theta < _SMALL_ANGLE
    safe = jnp.where(small, 1.0, theta)

    b = jnp.where(small, 0.5 - theta**2 / 24.0, (1.0 - jnp.cos(safe)) / safe**2)
    c = jnp.where(small, 1.0 / 6.0 - theta**2 / 120.0, (safe - jnp.sin(safe)) / safe**3)

    K = so3.hat(omega)
    V = jnp.eye(3, dtype=K.dtype) + b * K + c * (K @ K)
    translation = (V @ v[..., None])[..., 0]
    return from_position_and_rotation(translation, so3.exp(omega))


def multiply(T1: Array, T2: Array) -> Array:
    """Compose two transforms, T1 @ T2."""
    return jnp.matmul(T1, T2)


def get_position(T: Array) -> Array:
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    return T[..., :3, :3]


def to_pose_vector(T: Array) -> Array:
    """(4, 4) transform -> [x, y, z, qx, qy, qz, qw]."""
    w, x, y, z = so3.to_quaternion(get_rotation(T))
    return jnp.concatenate([get_position(T), jnp.stack([x, y, z, w])])


def from_pose_vector(pose: Array) -> Array:
    """[x, y, z, qx, qy, qz, qw] -> (4, 4) transform."""
    pose = jnp.asarray(pose, dtype=jnp.float64)
    qx, qy, qz, qw = pose[3], pose[4], pose[5], pose[6]
    rotation = so3.from_quaternion(jnp.stack([qw, qx, qy, qz]))
    return from_position_and_rotation(pose[:3], rotation)
