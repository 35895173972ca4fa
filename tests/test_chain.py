"""Tests for forward kinematics."""

from pathlib import Path

import jax
import jax.numpy as jnp
import numpy as np

from jax_robot_interface.chain import forward_kinematics, forward_kinematics_world, variable_vector
from jax_robot_interface.io import load_urdf
from jax_robot_interface.transforms import se3

FIXTURES = Path(__file__).parent / "fixtures"


def test_fk_planar_arm_zero():
    """Test forward kinematics on the planar arm at the zero configuration."""
    robot = load_urdf(str(FIXTURES / "planar_arm.urdf"))
    poses = forward_kinematics(robot, jnp.zeros(2))

    assert set(poses) == set(robot.link_names)
    np.testing.assert_allclose(se3.get_position(poses["base_link"]), [0.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(se3.get_position(poses["link2"]), [1.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(se3.get_position(poses["tool"]), [2.0, 0.0, 0.0], atol=1e-12)


def test_fk_planar_arm_known_configuration():
    robot = load_urdf(str(FIXTURES / "planar_arm.urdf"))

    # Shoulder up, elbow bent back down
    poses = forward_kinematics(robot, jnp.array([jnp.pi / 2, -jnp.pi / 2]))

    np.testing.assert_allclose(se3.get_position(poses["link2"]), [0.0, 1.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(se3.get_position(poses["tool"]), [1.0, 1.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(se3.get_rotation(poses["tool"]), jnp.eye(3), atol=1e-9)


def test_fk_transforms_are_valid_se3():
    robot = load_urdf(str(FIXTURES / "two_arm.urdf"), str(FIXTURES / "two_arm.srdf"))
    q = jnp.array([0.3, 0.1, -0.2, 0.7])
    world_transforms = forward_kinematics_world(robot, q)

    assert world_transforms.shape == (len(robot.link_names), 4, 4)
    for i in range(len(robot.link_names)):
        T = world_transforms[i]
        np.testing.assert_allclose(T[3, :], jnp.array([0, 0, 0, 1]), rtol=1e-6, atol=1e-6)
        R = T[:3, :3]
        np.testing.assert_allclose(jnp.matmul(R, R.T), jnp.eye(3), rtol=1e-6, atol=1e-6)


def test_fk_planar_joint():
    """Planar joints translate in x and y, then rotate about z."""
    robot = load_urdf(str(FIXTURES / "two_arm.urdf"), str(FIXTURES / "two_arm.srdf"))

    q = variable_vector(robot, {"j1": 0.0, "j2/x": 0.1, "j2/y": 0.2, "j2/theta": jnp.pi / 2})
    poses = forward_kinematics(robot, q)

    # l2 sits at the j2 origin (0.5, 0, 0.1) shifted by (0.1, 0.2)
    np.testing.assert_allclose(se3.get_position(poses["l2"]), [0.6, 0.2, 0.1], atol=1e-9)
    # l3 is 0.2 along l2's x axis, which now points along +y
    np.testing.assert_allclose(se3.get_position(poses["l3"]), [0.6, 0.4, 0.1], atol=1e-9)


def test_fk_planar_virtual_joint_moves_root():
    robot = load_urdf(str(FIXTURES / "mobile_base.urdf"), str(FIXTURES / "mobile_base.srdf"))

    q = variable_vector(
        robot, {"odom_joint/x": 2.0, "odom_joint/y": -1.0, "odom_joint/theta": 0.0, "arm_joint": 0.3}
    )
    poses = forward_kinematics(robot, q)

    np.testing.assert_allclose(se3.get_position(poses["base_link"]), [2.0, -1.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(se3.get_position(poses["arm_link"]), [2.0, -1.0, 0.5], atol=1e-9)


def test_variable_vector_fills_missing_with_zero():
    robot = load_urdf(str(FIXTURES / "two_arm.urdf"), str(FIXTURES / "two_arm.srdf"))

    q = variable_vector(robot, {"j2/y": 0.5, "unknown": 3.0})

    np.testing.assert_array_equal(q, [0.0, 0.0, 0.5, 0.0])


def test_fk_jit_compatibility():
    """forward_kinematics_world composes with jit and vmap."""
    robot = load_urdf(str(FIXTURES / "planar_arm.urdf"))

    batched = jax.vmap(lambda q: forward_kinematics_world(robot, q))
    qs = jnp.array([[0.0, 0.0], [jnp.pi, 0.0]])
    transforms = batched(qs)

    assert transforms.shape == (2, len(robot.link_names), 4, 4)
    np.testing.assert_allclose(transforms[1, robot.link_index("tool"), :3, 3], [-2.0, 0.0, 0.0], atol=1e-9)
