"""Loading robot descriptions into RobotModel structures.

URDF provides the kinematic tree; an optional SRDF next to it provides
planning groups and the virtual joint to the model frame.
"""

from .loader import load_model, resolve_description
from .srdf_parser import load_srdf
from .urdf_parser import load_urdf

__all__ = ["load_model", "resolve_description", "load_srdf", "load_urdf"]
