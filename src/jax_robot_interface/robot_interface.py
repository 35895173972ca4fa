"""Query facade over a robot's structural model and its live state.

Structural queries read the shared RobotModel and never block. State queries
pass through ``ensure_current_state``, which starts the monitor on first use
and waits a bounded time for a complete state. Right after construction a
state query may therefore take up to ``state_wait_timeout`` and still return
empty or partial values while the feed catches up.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from jax_robot_interface.config import InterfaceConfig
from jax_robot_interface.io.loader import load_model
from jax_robot_interface.monitor.current_state_monitor import CurrentStateMonitor
from jax_robot_interface.transforms import se3
from jax_robot_interface.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from jax_robot_interface.core.robot_model import RobotModel
    from jax_robot_interface.monitor.feed import StateFeed


class RobotInterface:
    """Read-only introspection of a robot for motion-planning clients.

    Every query is total: failures produce an empty result and a log entry.
    Only construction raises, with ``ModelLoadError`` when the description
    cannot be loaded.
    """

    def __init__(
        self,
        robot_description: str,
        feed: Optional[StateFeed] = None,
        *,
        config: Optional[InterfaceConfig] = None,
        logger: Optional[Any] = None,
    ):
        """Create a robot interface.

        Args:
            robot_description: URDF path, or a name searched for in
                ``config.description_path``
            feed: Live state source. Without one, state queries return empty
                results.
            config: Settings; read from the environment when omitted
            logger: structlog-style logger receiving diagnostics
        """
        self._config = config if config is not None else InterfaceConfig()
        self._logger = logger if logger is not None else setup_logger()
        self._robot = load_model(robot_description, self._config)
        self._monitor = (
            CurrentStateMonitor(self._robot, feed, logger=self._logger) if feed is not None else None
        )

    @property
    def robot(self) -> RobotModel:
        return self._robot

    @property
    def monitor(self) -> Optional[CurrentStateMonitor]:
        return self._monitor

    # Structural queries

    def get_joint_names(self) -> List[str]:
        return list(self._robot.joint_names)

    def get_link_names(self) -> List[str]:
        return list(self._robot.link_names)

    def get_group_names(self) -> List[str]:
        return list(self._robot.group_names)

    def get_joint_limits(self, name: str) -> List[List[float]]:
        """[min, max] for each variable of joint ``name``; [] if unknown."""
        return [[lower, upper] for lower, upper in self._robot.get_joint_limits(name)]

    def get_planning_frame(self) -> str:
        return self._robot.model_frame

    def find_min_containing_group(self, joint_name: str) -> Optional[str]:
        return self._robot.find_min_containing_group(joint_name)

    # State queries

    def ensure_current_state(self) -> bool:
        """Start the monitor if needed, waiting for a complete state on start.

        Only the call that activates the monitor waits; later calls return at
        once with whatever state is known. Returns False only when no monitor
        is available or it cannot be started.
        """
        if self._monitor is None:
            self._logger.error("Unable to get current robot state: no state monitor")
            return False

        if not self._monitor.is_active():
            try:
                self._monitor.start()
            except Exception:
                self._logger.exception("Unable to start the current state monitor")
                return False
            self._wait_for_current_state()
        return True

    def _wait_for_current_state(self) -> None:
        """Bounded wait for a complete state; a timeout is logged, not raised."""
        timeout = self._config.state_wait_timeout
        if not self._monitor.wait_for_complete_state(timeout):
            self._logger.warning(
                "Joint values for monitored state are requested but the full state is not known",
                timeout=timeout,
                missing=len(self._monitor.missing_variables()),
            )

    def get_current_joint_values(self, joint_name: str) -> List[float]:
        """Current values of every variable of ``joint_name``, in model order."""
        if not self.ensure_current_state():
            return []
        return list(self._monitor.get_current_state().get_joint_values(joint_name))

    def get_current_variable_values(self) -> Dict[str, float]:
        """Every variable observed so far, possibly partial.

        Unlike the other state queries this waits for a complete state on
        every call, not only when the monitor starts.
        """
        was_active = self._monitor is not None and self._monitor.is_active()
        if not self.ensure_current_state():
            return {}
        if was_active:
            self._wait_for_current_state()
        return self._monitor.get_current_state_values()

    def get_link_pose(self, link_name: str) -> List[float]:
        """Pose of a link as [x, y, z, qx, qy, qz, qw] in the planning frame.

        Empty when the link is unknown or its pose is not known yet.
        """
        if not self.ensure_current_state():
            return []
        transform = self._monitor.get_current_state().get_link_transform(link_name)
        if transform is None:
            return []
        return [float(v) for v in se3.to_pose_vector(transform)]

    def shutdown(self) -> None:
        """Stop the state monitor, if one is running."""
        if self._monitor is not None:
            self._monitor.stop()
