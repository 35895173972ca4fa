"""
State Monitor Module

Keeps an immutable snapshot of the live robot state, fed asynchronously by a
StateFeed.

## Components

- CurrentStateMonitor: Lazily subscribed monitor with a bounded wait for a
  complete state
- StateFeed / StateSink / Subscription: Protocols between feeds and monitors
- LocalStateFeed: In-process feed delivering on a worker thread
"""

from jax_robot_interface.monitor.current_state_monitor import CurrentStateMonitor
from jax_robot_interface.monitor.feed import LocalStateFeed, StateFeed, StateSink, Subscription

__all__ = [
    "CurrentStateMonitor",
    "LocalStateFeed",
    "StateFeed",
    "StateSink",
    "Subscription",
]
