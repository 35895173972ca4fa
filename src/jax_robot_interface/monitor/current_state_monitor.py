"""
Current State Monitor

Bridges an asynchronous state feed to synchronous snapshot reads.

Example:
    monitor = CurrentStateMonitor(robot, feed)
    monitor.start()
    if not monitor.wait_for_complete_state(1.0):
        print("missing:", monitor.missing_variables())
    state = monitor.get_current_state()
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from jax_robot_interface.core.robot_state import RobotState
from jax_robot_interface.transforms import se3, so3
from jax_robot_interface.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from jax_robot_interface.core.robot_model import RobotModel
    from jax_robot_interface.monitor.feed import StateFeed, Subscription
    from jax_robot_interface.msgs import JointState, LinkPose


class CurrentStateMonitor:
    """Accumulates feed updates into the best known robot state.

    ## States

    Inactive -> Active/Incomplete -> Active/Complete. ``start()`` opens the
    subscription with an empty snapshot; the state becomes complete once
    every model variable has been observed and stays complete until the next
    start.

    ## Thread Safety

    Feed callbacks may run on any thread. Each update replaces the current
    ``RobotState`` with a new immutable snapshot under the monitor lock, so
    readers always get a fully applied state. Variables the model does not
    define are ignored.
    """

    def __init__(self, robot: RobotModel, feed: StateFeed, logger: Optional[Any] = None):
        """Create a state monitor.

        Args:
            robot: Model whose variables are tracked.
            feed: Source of joint states and link poses.
            logger: structlog-style logger; defaults to the module logger.
        """
        self._robot = robot
        self._feed = feed
        self._logger = logger if logger is not None else setup_logger()

        self._lock = threading.RLock()
        self._state_changed = threading.Condition(self._lock)
        self._subscription: Optional[Subscription] = None
        self._active = False
        self._state = RobotState.empty(robot)

    @property
    def robot(self) -> RobotModel:
        return self._robot

    def is_active(self) -> bool:
        """Check if the monitor is subscribed to the feed."""
        with self._lock:
            return self._active

    def start(self) -> None:
        """Subscribe to the feed with an empty state. No-op when already active."""
        with self._lock:
            if self._active:
                return
            self._state = RobotState.empty(self._robot)
            self._active = True
            try:
                self._subscription = self._feed.subscribe(self._robot, self)
            except Exception:
                self._active = False
                raise
        self._logger.info("Current state monitor started", robot=self._robot.name)

    def stop(self) -> None:
        """Close the subscription and wake any waiter."""
        with self._lock:
            if not self._active:
                return
            subscription, self._subscription = self._subscription, None
            self._active = False
            self._state_changed.notify_all()
        if subscription is not None:
            subscription.close()
        self._logger.info("Current state monitor stopped", robot=self._robot.name)

    def wait_for_complete_state(self, timeout: float) -> bool:
        """Wait until every variable has been observed.

        Does not start the monitor; returns False immediately when inactive.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if the state is complete, False on timeout
        """
        with self._state_changed:
            if not self._active:
                return False
            self._state_changed.wait_for(
                lambda: self._state.is_complete or not self._active,
                timeout=max(timeout, 0.0),
            )
            return self._active and self._state.is_complete

    def get_current_state(self) -> RobotState:
        """Latest snapshot, complete or not."""
        with self._lock:
            return self._state

    def get_current_state_values(self) -> Dict[str, float]:
        return dict(self.get_current_state().values)

    def has_complete_state(self) -> bool:
        return self.get_current_state().is_complete

    def missing_variables(self) -> List[str]:
        """Model variables not observed since the monitor started."""
        values = self.get_current_state().values
        return [name for name in self._robot.variable_names if name not in values]

    def state_age(self) -> Optional[float]:
        """Seconds since the last applied update, None if there was none."""
        stamp = self.get_current_state().stamp
        return None if stamp is None else time.monotonic() - stamp

    def on_joint_state(self, msg: JointState) -> None:
        """Apply the positions of every known variable in ``msg``."""
        updates = {
            name: float(position)
            for name, position in zip(msg.name, msg.position)
            if self._robot.has_variable(name)
        }
        self._apply(updates)

    def on_link_pose(self, msg: LinkPose) -> None:
        """Resolve the pose of a planar/floating joint's child link into its variables."""
        joint = self._robot.get_link_parent_joint(msg.link)
        joint_type = self._robot.get_joint_type(joint) if joint is not None else None
        if joint_type not in ("planar", "floating"):
            return

        T_parent_child = np.asarray(se3.from_pose_vector(np.asarray(msg.pose, dtype=np.float64)))
        origin = np.asarray(self._robot.joint_transforms[self._robot.link_index(msg.link)])
        motion = np.linalg.solve(origin, T_parent_child)

        variables = self._robot.get_joint_variable_names(joint)
        if joint_type == "planar":
            values = [motion[0, 3], motion[1, 3], float(so3.yaw(motion[:3, :3]))]
        else:
            values = [*motion[:3, 3], *np.asarray(so3.to_euler_xyz(motion[:3, :3]))]
        self._apply({name: float(v) for name, v in zip(variables, values)})

    def _apply(self, updates: Dict[str, float]) -> None:
        if not updates:
            return
        with self._lock:
            if not self._active:
                return
            was_complete = self._state.is_complete
            self._state = self._state.updated(updates, time.monotonic())
            became_complete = self._state.is_complete and not was_complete
            if became_complete:
                self._state_changed.notify_all()
        if became_complete:
            self._logger.debug("Complete robot state received", robot=self._robot.name)
