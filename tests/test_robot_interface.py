"""Tests for the RobotInterface query facade."""

import math
import time

import numpy as np
import pytest
from conftest import logged

from jax_robot_interface import InterfaceConfig, JointState, ModelLoadError, RobotInterface

FAST = InterfaceConfig(state_wait_timeout=0.2)

TWO_ARM_VARIABLES = ["j1", "j2/x", "j2/y", "j2/theta"]


@pytest.fixture
def interface(two_arm_urdf, feed, capturing_logger):
    robot_interface = RobotInterface(two_arm_urdf, feed, config=FAST, logger=capturing_logger)
    yield robot_interface
    robot_interface.shutdown()


def test_structural_queries(interface):
    assert interface.get_joint_names() == ["world_joint", "j1", "j2", "sensor_joint", "j3"]
    assert interface.get_link_names() == ["base_link", "l1", "l2", "sensor", "l3"]
    assert interface.get_group_names() == ["armB", "armA", "twin", "arm_with_tool"]
    assert interface.get_planning_frame() == "world"
    assert interface.find_min_containing_group("j1") == "armA"
    assert interface.find_min_containing_group("sensor_joint") is None


def test_joint_limits_format(interface):
    assert interface.get_joint_limits("j1") == [[-1.5, 1.5]]
    assert interface.get_joint_limits("j2") == [
        [-math.inf, math.inf],
        [-math.inf, math.inf],
        [-math.pi, math.pi],
    ]
    assert interface.get_joint_limits("j3") == []
    assert interface.get_joint_limits("nonexistent_joint") == []


def test_structural_queries_do_not_start_monitor(interface):
    interface.get_joint_names()
    interface.get_joint_limits("j1")
    interface.find_min_containing_group("j2")

    assert not interface.monitor.is_active()


def test_default_timeout_without_updates(two_arm_urdf, feed, capturing_logger):
    """With a silent feed, a state query waits about a second and returns empty."""
    robot_interface = RobotInterface(
        two_arm_urdf, feed, config=InterfaceConfig(state_wait_timeout=1.0), logger=capturing_logger
    )
    try:
        start = time.monotonic()
        assert robot_interface.get_current_joint_values("j1") == []
        elapsed = time.monotonic() - start
    finally:
        robot_interface.shutdown()

    assert 0.9 <= elapsed < 3.0
    warnings = logged(capturing_logger, "warning")
    assert len(warnings) == 1
    assert "full state is not known" in warnings[0]
    assert logged(capturing_logger, "error") == []


def test_complete_state_returns_all_variables(interface, feed, capturing_logger):
    feed.publish(JointState(name=TWO_ARM_VARIABLES, position=[0.1, 0.2, 0.3, 0.4]))

    values = interface.get_current_variable_values()

    assert values == {"j1": 0.1, "j2/x": 0.2, "j2/y": 0.3, "j2/theta": 0.4}
    assert interface.get_current_joint_values("j2") == [0.2, 0.3, 0.4]
    assert interface.get_current_joint_values("j3") == []
    assert logged(capturing_logger, "warning") == []


def test_state_published_later_is_picked_up(interface, feed):
    assert interface.get_current_variable_values() == {}

    feed.publish(JointState(name=TWO_ARM_VARIABLES, position=[0.0, 0.0, 0.0, 0.0]))
    assert len(interface.get_current_variable_values()) == len(TWO_ARM_VARIABLES)
    assert interface.monitor.has_complete_state()


def test_joint_values_wait_only_when_monitor_starts(interface, feed, capturing_logger):
    """A variable that is never published stalls the first query only."""
    feed.publish(JointState(name=["j1"], position=[0.3]))

    durations = []
    for _ in range(3):
        start = time.monotonic()
        assert interface.get_current_joint_values("j1") == [0.3]
        durations.append(time.monotonic() - start)

    assert durations[0] >= 0.15
    assert max(durations[1:]) < 0.1
    assert interface.get_link_pose("l3") == []
    assert len(logged(capturing_logger, "warning")) == 1


def test_variable_values_wait_on_every_call(interface, feed, capturing_logger):
    feed.publish(JointState(name=["j1"], position=[0.3]))

    assert interface.get_current_variable_values() == {"j1": 0.3}
    start = time.monotonic()
    assert interface.get_current_variable_values() == {"j1": 0.3}
    assert time.monotonic() - start >= 0.15

    assert len(logged(capturing_logger, "warning")) == 2


def test_unknown_names_return_empty(interface, feed):
    feed.publish(JointState(name=TWO_ARM_VARIABLES, position=[0.0, 0.0, 0.0, 0.0]))

    assert interface.get_current_joint_values("nonexistent_joint") == []
    assert interface.get_link_pose("nonexistent_link") == []


def test_link_pose(interface, feed):
    feed.publish(JointState(name=TWO_ARM_VARIABLES, position=[math.pi / 2, 0.0, 0.0, 0.0]))

    pose = interface.get_link_pose("l3")

    s = math.sqrt(0.5)
    np.testing.assert_allclose(pose, [0.0, 0.7, 0.1, 0.0, 0.0, s, s], atol=1e-9)


def test_link_pose_unknown_until_chain_observed(interface, feed):
    feed.publish(JointState(name=["j1"], position=[0.0]))

    assert interface.get_link_pose("l3") == []
    np.testing.assert_allclose(interface.get_link_pose("sensor")[:3], [0.0, 0.0, 0.15], atol=1e-9)


def test_no_feed_logs_error(two_arm_urdf, capturing_logger):
    robot_interface = RobotInterface(two_arm_urdf, config=FAST, logger=capturing_logger)

    assert robot_interface.monitor is None
    assert robot_interface.ensure_current_state() is False
    assert robot_interface.get_current_joint_values("j1") == []
    assert robot_interface.get_current_variable_values() == {}
    assert robot_interface.get_link_pose("l1") == []
    # Structural queries still work
    assert robot_interface.get_planning_frame() == "world"

    errors = logged(capturing_logger, "error")
    assert len(errors) == 4
    assert all("no state monitor" in event for event in errors)


def test_monitor_start_failure_is_logged(two_arm_urdf, capturing_logger):
    class UnavailableFeed:
        def subscribe(self, robot, sink):
            raise ConnectionError("feed unavailable")

    robot_interface = RobotInterface(
        two_arm_urdf, UnavailableFeed(), config=FAST, logger=capturing_logger
    )

    assert robot_interface.get_current_joint_values("j1") == []
    assert not robot_interface.monitor.is_active()
    assert logged(capturing_logger, "exception") == ["Unable to start the current state monitor"]


def test_unresolvable_description_raises():
    with pytest.raises(ModelLoadError):
        RobotInterface("/nonexistent/robot.urdf", config=FAST)


def test_interfaces_share_model_and_agree(two_arm_urdf, feed, capturing_logger):
    first = RobotInterface(two_arm_urdf, config=FAST, logger=capturing_logger)
    second = RobotInterface(two_arm_urdf, config=FAST, logger=capturing_logger)

    assert first.robot is second.robot
    assert first.get_joint_names() == second.get_joint_names()
    assert first.get_group_names() == second.get_group_names()
    for joint in first.get_joint_names():
        assert first.find_min_containing_group(joint) == second.find_min_containing_group(joint)


def test_planar_base_pose(mobile_base_urdf, feed, capturing_logger):
    robot_interface = RobotInterface(mobile_base_urdf, feed, config=FAST, logger=capturing_logger)
    try:
        assert robot_interface.get_planning_frame() == "odom"
        feed.publish(
            JointState(
                name=["odom_joint/x", "odom_joint/y", "odom_joint/theta", "arm_joint"],
                position=[1.0, 0.5, 0.0, 0.25],
            )
        )
        pose = robot_interface.get_link_pose("arm_link")
    finally:
        robot_interface.shutdown()

    np.testing.assert_allclose(pose[:3], [1.0, 0.5, 0.45], atol=1e-9)
