"""Shared fixtures for the robot interface tests."""

from pathlib import Path

import pytest
from structlog.testing import CapturingLogger

from jax_robot_interface import LocalStateFeed

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def two_arm_urdf():
    return str(FIXTURES / "two_arm.urdf")


@pytest.fixture
def planar_arm_urdf():
    return str(FIXTURES / "planar_arm.urdf")


@pytest.fixture
def mobile_base_urdf():
    return str(FIXTURES / "mobile_base.urdf")


@pytest.fixture
def free_body_urdf():
    return str(FIXTURES / "free_body.urdf")


@pytest.fixture
def feed():
    local_feed = LocalStateFeed()
    yield local_feed
    local_feed.shutdown()


@pytest.fixture
def capturing_logger():
    return CapturingLogger()


def logged(logger: CapturingLogger, method_name: str):
    """Events recorded by ``logger`` at one level."""
    return [call.args[0] for call in logger.calls if call.method_name == method_name]
