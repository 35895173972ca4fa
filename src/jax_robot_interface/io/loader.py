"""Resolve description identifiers and share loaded models between consumers.

Models are kept in a weak registry keyed by the resolved URDF path: every
interface built from the same description gets the same RobotModel for as
long as one of them holds it.
"""

from pathlib import Path
import threading
from typing import Optional
import weakref

from jax_robot_interface.config import InterfaceConfig
from jax_robot_interface.core.robot_model import RobotModel
from jax_robot_interface.exceptions import ModelLoadError
from jax_robot_interface.io.srdf_parser import find_srdf
from jax_robot_interface.io.urdf_parser import load_urdf
from jax_robot_interface.utils.logging_config import setup_logger

logger = setup_logger()

_model_cache: "weakref.WeakValueDictionary[str, RobotModel]" = weakref.WeakValueDictionary()
_cache_lock = threading.Lock()


def resolve_description(description: str, config: Optional[InterfaceConfig] = None) -> Path:
    """Path of the URDF named by ``description``.

    The identifier is used as a path when it names an existing file,
    otherwise ``<description>.urdf`` is looked up in ``config.description_path``.
    """
    if not description:
        raise ModelLoadError("Empty robot description identifier")

    direct = Path(description).expanduser()
    if direct.is_file():
        return direct.resolve()

    config = config or InterfaceConfig()
    for directory in config.description_path:
        candidate = Path(directory).expanduser() / f"{description}.urdf"
        if candidate.is_file():
            return candidate.resolve()

    raise ModelLoadError(
        f"Robot description '{description}' not found "
        f"(search path: {[str(p) for p in config.description_path]})"
    )


def load_model(description: str, config: Optional[InterfaceConfig] = None) -> RobotModel:
    """Load the RobotModel for a description, reusing a live one when possible.

    Raises:
        ModelLoadError: If the description cannot be resolved or parsed.
    """
    urdf_path = resolve_description(description, config)
    key = str(urdf_path)

    with _cache_lock:
        robot = _model_cache.get(key)
        if robot is not None:
            return robot

        srdf_path = find_srdf(urdf_path)
        robot = load_urdf(str(urdf_path), str(srdf_path) if srdf_path is not None else None)
        _model_cache[key] = robot

    logger.info(
        "Loaded robot model",
        robot=robot.name,
        urdf=key,
        srdf=str(srdf_path) if srdf_path is not None else None,
        joints=len(robot.joint_names),
        variables=robot.variable_count,
    )
    return robot
