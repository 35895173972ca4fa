"""State feed protocols and an in-process feed.

A feed delivers joint states and link poses to subscribed sinks on its own
thread. The monitor only depends on the protocols; ``LocalStateFeed`` is a
queue-backed implementation for single-process use and tests.
"""

from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, List, Optional, Protocol, Union, runtime_checkable

from jax_robot_interface.msgs import JointState, LinkPose
from jax_robot_interface.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from jax_robot_interface.core.robot_model import RobotModel

logger = setup_logger()

StateMessage = Union[JointState, LinkPose]


@runtime_checkable
class StateSink(Protocol):
    """Receiver of state updates. Called from the feed's delivery thread."""

    def on_joint_state(self, msg: JointState) -> None: ...

    def on_link_pose(self, msg: LinkPose) -> None: ...


@runtime_checkable
class Subscription(Protocol):
    def close(self) -> None:
        """Stop delivering to the sink. Safe to call more than once."""
        ...


@runtime_checkable
class StateFeed(Protocol):
    """Source of live robot state."""

    def subscribe(self, robot: RobotModel, sink: StateSink) -> Subscription:
        """Start delivering updates for ``robot`` to ``sink``."""
        ...


class _LocalSubscription:
    def __init__(self, feed: LocalStateFeed, sink: StateSink):
        self._feed = feed
        self.sink = sink

    def close(self) -> None:
        self._feed._remove(self)


class LocalStateFeed:
    """In-process state feed with asynchronous delivery.

    Published messages are queued and dispatched to every open subscription
    by a daemon worker thread, in publication order. An exception raised by a
    sink is logged and does not stop delivery to other sinks.

    Example:
        feed = LocalStateFeed()
        sub = feed.subscribe(robot, monitor)
        feed.publish(JointState(name=["joint1"], position=[0.3]))
    """

    _STOP = object()

    def __init__(self, name: str = "local_state_feed"):
        self._name = name
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._subscriptions: List[_LocalSubscription] = []
        self._worker: Optional[threading.Thread] = None

    def subscribe(self, robot: RobotModel, sink: StateSink) -> Subscription:
        subscription = _LocalSubscription(self, sink)
        with self._lock:
            self._subscriptions.append(subscription)
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._worker.start()
        logger.debug("State feed subscription opened", feed=self._name, robot=robot.name)
        return subscription

    def publish(self, msg: StateMessage) -> None:
        """Queue a message for delivery to every open subscription."""
        self._queue.put(msg)

    def join(self, timeout: Optional[float] = None) -> None:
        """Block until every message published so far has been dispatched."""
        with self._lock:
            if self._worker is None:
                return
        done = threading.Event()
        self._queue.put(done)
        done.wait(timeout)

    def shutdown(self) -> None:
        """Stop the worker thread. Queued messages are discarded."""
        with self._lock:
            worker, self._worker = self._worker, None
            self._subscriptions.clear()
        if worker is not None:
            self._queue.put(self._STOP)
            worker.join()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove(self, subscription: _LocalSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _run(self) -> None:
        while True:
            msg = self._queue.get()
            if msg is self._STOP:
                return
            if isinstance(msg, threading.Event):
                msg.set()
                continue

            with self._lock:
                sinks = [s.sink for s in self._subscriptions]

            for sink in sinks:
                try:
                    if isinstance(msg, LinkPose):
                        sink.on_link_pose(msg)
                    else:
                        sink.on_joint_state(msg)
                except Exception:
                    logger.exception("State sink raised during delivery", feed=self._name)
