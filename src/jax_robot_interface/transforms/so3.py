"""Rotation helpers for 3x3 matrices.

Quaternions are (w, x, y, z) throughout this module. Functions broadcast over
leading batch dimensions unless noted otherwise.
"""

import jax
import jax.numpy as jnp

Array = jax.Array

_SMALL_ANGLE = 1e-8


def hat(omega: Array) -> Array:
    """(..., 3) vector -> (..., 3, 3) matrix K such that K @ v == cross(omega, v)."""
    wx, wy, wz = omega[..., 0], omega[..., 1], omega[..., 2]
    zero = jnp.zeros_like(wx)
    rows = [
        jnp.stack([zero, -wz, wy], axis=-1),
        jnp.stack([wz, zero, -wx], axis=-1),
        jnp.stack([-wy, wx, zero], axis=-1),
    ]
    return jnp.stack(rows, axis=-2)


def exp(omega: Array) -> Array:
    """
    Rotation matrix of an axis-angle vector (Rodrigues).

    Args:
        omega: (..., 3) rotation axis scaled by the angle in radians

    Returns:
        (..., 3, 3) rotation matrices
    """
    theta = jnp.linalg.norm(omega, axis=-1)[..., None, None]
    small = theta < _SMALL_ANGLE
    # Keeps both where() branches finite at zero
    safe = jnp.where(small, 1.0, theta)

    sinc = jnp.where(small, 1.0 - theta**2 / 6.0, jnp.sin(safe) / safe)
    cosc = jnp.where(small, 0.5 - theta**2 / 24.0, (1.0 - jnp.cos(safe)) / safe**2)

    K = hat(omega)
    return jnp.eye(3, dtype=K.dtype) + sinc * K + cosc * (K @ K)


def from_rpy(rpy: Array) -> Array:
    """URDF ``rpy`` (fixed-axis roll, pitch, yaw) to R = R_z(yaw) R_y(pitch) R_x(roll)."""
    rpy = jnp.asarray(rpy, dtype=jnp.float64)
    axes = jnp.eye(3, dtype=jnp.float64)
    return exp(axes[2] * rpy[2]) @ exp(axes[1] * rpy[1]) @ exp(axes[0] * rpy[0])


def from_quaternion(quaternion: Array) -> Array:
    """(..., 4) quaternion (w, x, y, z), normalized first, to (..., 3, 3)."""
    q = quaternion / jnp.linalg.norm(quaternion, axis=-1, keepdims=True)
    w, v = q[..., :1, None], q[..., 1:]

    # R = (w^2 - |v|^2) I + 2 v v^T + 2 w [v]x
    outer = v[..., :, None] * v[..., None, :]
    vv = jnp.sum(v * v, axis=-1)[..., None, None]
    return (w**2 - vv) * jnp.eye(3, dtype=q.dtype) + 2.0 * outer + 2.0 * w * hat(v)


def to_quaternion(matrix: Array) -> Array:
    """
    Unit quaternion (w, x, y, z) of a rotation matrix, with w >= 0.

    Each of the four candidates below is 4 * q_i * q for a different
    component i; the one with the largest q_i is the best conditioned.

    Args:
        matrix: (..., 3, 3) rotation matrices

    Returns:
        (..., 4) quaternions
    """
    m = matrix
    trace = m[..., 0, 0] + m[..., 1, 1] + m[..., 2, 2]
    candidates = jnp.stack(
        [
            jnp.stack(
                [1.0 + trace, m[..., 2, 1] - m[..., 1, 2], m[..., 0, 2] - m[..., 2, 0], m[..., 1, 0] - m[..., 0, 1]],
                axis=-1,
            ),
            jnp.stack(
                [
                    m[..., 2, 1] - m[..., 1, 2],
                    1.0 + m[..., 0, 0] - m[..., 1, 1] - m[..., 2, 2],
                    m[..., 0, 1] + m[..., 1, 0],
                    m[..., 0, 2] + m[..., 2, 0],
                ],
                axis=-1,
            ),
            jnp.stack(
                [
                    m[..., 0, 2] - m[..., 2, 0],
                    m[..., 0, 1] + m[..., 1, 0],
                    1.0 - m[..., 0, 0] + m[..., 1, 1] - m[..., 2, 2],
                    m[..., 1, 2] + m[..., 2, 1],
                ],
                axis=-1,
            ),
            jnp.stack(
                [
                    m[..., 1, 0] - m[..., 0, 1],
                    m[..., 0, 2] + m[..., 2, 0],
                    m[..., 1, 2] + m[..., 2, 1],
                    1.0 - m[..., 0, 0] - m[..., 1, 1] + m[..., 2, 2],
                ],
                axis=-1,
            ),
        ],
        axis=-2,
    )

    best = jnp.argmax(jnp.diagonal(candidates, axis1=-2, axis2=-1), axis=-1)
    pick = jax.nn.one_hot(best, 4, dtype=candidates.dtype)
    q = jnp.einsum("...i,...ij->...j", pick, candidates)
    q = q / jnp.linalg.norm(q, axis=-1, keepdims=True)
    return jnp.where(q[..., :1] < 0, -q, q)


def to_euler_xyz(R: Array) -> Array:
    """
    Decompose R = R_x(a) R_y(b) R_z(c) into [a, b, c].

    Floating joint rotations are applied about the moving x, then y, then z
    axis, so this recovers their rot_x, rot_y, rot_z variables. Only defined
    for a single (3, 3) matrix.
    """
    b = jnp.arcsin(jnp.clip(R[0, 2], -1.0, 1.0))
    a = jnp.arctan2(-R[1, 2], R[2, 2])
    c = jnp.arctan2(-R[0, 1], R[0, 0])
    return jnp.stack([a, b, c])


def yaw(R: Array) -> Array:
    """Heading of a rotation about the z axis, in radians."""
    return jnp.arctan2(R[..., 1, 0], R[..., 0, 0])
