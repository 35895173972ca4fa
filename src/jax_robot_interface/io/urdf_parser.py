"""URDF parser for loading robot models into JAX-native data structures.

This module parses a URDF file, together with an optional SRDF for groups and
the virtual joint, and converts them into a RobotModel PyTree.
"""

from collections import deque
import math
from typing import Dict, List, Optional, Set, Tuple

import jax.numpy as jnp
from lxml import etree
import numpy as np

from jax_robot_interface.core.robot_model import MAX_JOINT_DOF, RobotModel
from jax_robot_interface.exceptions import ModelLoadError
from jax_robot_interface.io.srdf_parser import SemanticDescription, load_srdf
from jax_robot_interface.transforms import se3, so3

SUPPORTED_JOINT_TYPES = ("revolute", "continuous", "prismatic", "fixed", "planar", "floating")

_UNBOUNDED = (-math.inf, math.inf)
_ANGLE = (-math.pi, math.pi)

# Unit twists [vx, vy, vz, wx, wy, wz] for multi-DOF joints
_X, _Y, _Z = np.eye(3)
_ZERO3 = np.zeros(3)


def load_urdf(urdf_path: str, srdf_path: Optional[str] = None) -> RobotModel:
    """Load a URDF file and convert it to a RobotModel PyTree.

    Args:
        urdf_path: Path to the URDF file to load.
        srdf_path: Optional path to the matching SRDF file.

    Returns:
        RobotModel: A JAX-native robot representation.

    Raises:
        ModelLoadError: If either file cannot be read or describes an
            invalid robot.
    """
    try:
        root = etree.parse(str(urdf_path)).getroot()
    except (OSError, etree.XMLSyntaxError) as e:
        raise ModelLoadError(f"Cannot read URDF '{urdf_path}': {e}") from e
    if root.tag != "robot":
        raise ModelLoadError(f"'{urdf_path}' is not a URDF: root element is <{root.tag}>")

    semantic = load_srdf(srdf_path) if srdf_path is not None else SemanticDescription()

    # First pass: topology
    all_links: List[str] = []
    for link in root.findall("link"):
        link_name = link.get("name")
        if not link_name or link_name in all_links:
            raise ModelLoadError(f"Missing or duplicate link name '{link_name}' in '{urdf_path}'")
        all_links.append(link_name)

    joints_info = []
    joint_by_child: Dict[str, dict] = {}
    for joint in root.findall("joint"):
        info = _parse_joint(joint, all_links)
        if info["child"] in joint_by_child:
            raise ModelLoadError(f"Link '{info['child']}' has more than one parent joint")
        if any(other["name"] == info["name"] for other in joints_info):
            raise ModelLoadError(f"Duplicate joint name '{info['name']}'")
        joints_info.append(info)
        joint_by_child[info["child"]] = info

    # Find root link (not a child of any joint)
    root_links = [name for name in all_links if name not in joint_by_child]
    if len(root_links) != 1:
        raise ModelLoadError(f"Expected exactly one root link, found: {root_links}")
    root_link = root_links[0]

    virtual_joint = semantic.virtual_joint
    if virtual_joint is not None:
        if virtual_joint.child_link != root_link:
            raise ModelLoadError(
                f"Virtual joint '{virtual_joint.name}' must attach the root link '{root_link}', "
                f"not '{virtual_joint.child_link}'"
            )
        joint_by_child[root_link] = {
            "name": virtual_joint.name,
            "type": virtual_joint.type,
            "parent": None,
            "child": root_link,
            "joint_elem": None,
        }
    model_frame = virtual_joint.parent_frame if virtual_joint is not None else root_link

    # Order links using breadth-first traversal from root
    ordered_links = []
    queue = deque([root_link])
    while queue:
        current_link = queue.popleft()
        ordered_links.append(current_link)
        queue.extend(info["child"] for info in joints_info if info["parent"] == current_link)

    if len(ordered_links) != len(all_links):
        unreachable = sorted(set(all_links) - set(ordered_links))
        raise ModelLoadError(f"Links not connected to root '{root_link}': {unreachable}")

    link_map = {name: i for i, name in enumerate(ordered_links)}

    # Second pass: joints in child-link order, their variables and limits
    joint_names: List[str] = []
    joint_types: List[str] = []
    joint_variables: List[Tuple[str, ...]] = []
    joint_limits: List[Tuple[Tuple[float, float], ...]] = []
    link_parent_joints: List[Optional[str]] = []
    joint_twists: Dict[str, List[np.ndarray]] = {}

    for link_name in ordered_links:
        info = joint_by_child.get(link_name)
        if info is None:
            link_parent_joints.append(None)
            continue
        variables, limits, twists = _joint_variables(info)
        joint_names.append(info["name"])
        joint_types.append(info["type"])
        joint_variables.append(variables)
        joint_limits.append(limits)
        joint_twists[info["name"]] = twists
        link_parent_joints.append(info["name"])

    variable_names = tuple(v for variables in joint_variables for v in variables)
    variable_map = {name: i for i, name in enumerate(variable_names)}

    # Third pass: populate data arrays
    num_links = len(ordered_links)
    parent_indices_list = []
    joint_transforms_list = []
    joint_axes = np.zeros((num_links, MAX_JOINT_DOF, 6))
    variable_indices = np.full((num_links, MAX_JOINT_DOF), -1, dtype=np.int32)

    for i, link_name in enumerate(ordered_links):
        info = joint_by_child.get(link_name)
        if info is None or info["parent"] is None:
            parent_indices_list.append(-1)
        else:
            parent_indices_list.append(link_map[info["parent"]])

        if info is None:
            joint_transforms_list.append(jnp.eye(4))
            continue

        joint_transforms_list.append(_parse_origin(info["joint_elem"]))
        variables = joint_variables[joint_names.index(info["name"])]
        for k, (variable, twist) in enumerate(zip(variables, joint_twists[info["name"]])):
            joint_axes[i, k] = twist
            variable_indices[i, k] = variable_map[variable]

    group_joints = _resolve_groups(semantic, joint_names, ordered_links, joint_by_child)

    return RobotModel(
        name=root.get("name", ""),
        model_frame=model_frame,
        link_names=tuple(ordered_links),
        joint_names=tuple(joint_names),
        joint_types=tuple(joint_types),
        joint_variables=tuple(joint_variables),
        joint_limits=tuple(joint_limits),
        variable_names=variable_names,
        link_parent_joints=tuple(link_parent_joints),
        group_names=tuple(group.name for group in semantic.groups),
        group_joints=tuple(group_joints[group.name] for group in semantic.groups),
        parent_indices=jnp.array(parent_indices_list, dtype=jnp.int32),
        joint_transforms=jnp.stack(joint_transforms_list),
        joint_axes=jnp.asarray(joint_axes),
        variable_indices=jnp.asarray(variable_indices),
    )


def _parse_joint(joint: etree._Element, links: List[str]) -> dict:
    joint_name = joint.get("name")
    joint_type = joint.get("type")
    parent_elem = joint.find("parent")
    child_elem = joint.find("child")

    if not joint_name or parent_elem is None or child_elem is None:
        raise ModelLoadError(f"Joint on line {joint.sourceline} needs a name, <parent> and <child>")
    if joint_type not in SUPPORTED_JOINT_TYPES:
        raise ModelLoadError(f"Joint '{joint_name}' has unsupported type '{joint_type}'")

    parent_name = parent_elem.get("link")
    child_name = child_elem.get("link")
    for link_name in (parent_name, child_name):
        if link_name not in links:
            raise ModelLoadError(f"Joint '{joint_name}' references unknown link '{link_name}'")

    return {
        "name": joint_name,
        "type": joint_type,
        "parent": parent_name,
        "child": child_name,
        "joint_elem": joint,
    }


def _parse_origin(joint_elem: Optional[etree._Element]):
    """Fixed transform from the parent link to the joint frame."""
    origin_elem = joint_elem.find("origin") if joint_elem is not None else None
    if origin_elem is None:
        return jnp.eye(4)

    xyz = _floats(origin_elem.get("xyz", "0 0 0"), 3, "origin xyz")
    rpy = _floats(origin_elem.get("rpy", "0 0 0"), 3, "origin rpy")
    return se3.from_position_and_rotation(jnp.array(xyz), so3.from_rpy(jnp.array(rpy)))


def _parse_axis(joint_elem: etree._Element) -> np.ndarray:
    axis_elem = joint_elem.find("axis")
    # URDF default axis is x
    axis = _floats(axis_elem.get("xyz", "1 0 0"), 3, "axis") if axis_elem is not None else _X
    norm = np.linalg.norm(axis)
    if norm < 1e-9:
        raise ModelLoadError(f"Joint '{joint_elem.get('name')}' has a zero axis")
    return np.asarray(axis) / norm


def _parse_limits(joint_elem: etree._Element) -> Tuple[float, float]:
    limit_elem = joint_elem.find("limit")
    if limit_elem is None:
        raise ModelLoadError(f"Joint '{joint_elem.get('name')}' requires a <limit> element")
    lower = _floats(limit_elem.get("lower", "0"), 1, "limit lower")[0]
    upper = _floats(limit_elem.get("upper", "0"), 1, "limit upper")[0]
    return (float(lower), float(upper))


def _floats(text: str, count: int, what: str) -> np.ndarray:
    try:
        values = np.array([float(x) for x in text.split()])
    except ValueError as e:
        raise ModelLoadError(f"Invalid {what} '{text}'") from e
    if values.shape != (count,):
        raise ModelLoadError(f"Expected {count} values for {what}, got '{text}'")
    return values


def _joint_variables(info: dict):
    """Variable names, limits and unit twists contributed by a joint.

    Multi-DOF joints apply their variables in order: planar translates along
    x and y then rotates about z; floating translates along x, y, z then
    rotates about the moving x, y and z axes.
    """
    name, joint_type, joint_elem = info["name"], info["type"], info["joint_elem"]

    if joint_type == "fixed":
        return (), (), []
    if joint_type in ("revolute", "continuous"):
        axis = _parse_axis(joint_elem)
        limits = _parse_limits(joint_elem) if joint_type == "revolute" else _ANGLE
        return (name,), (limits,), [np.concatenate([_ZERO3, axis])]
    if joint_type == "prismatic":
        axis = _parse_axis(joint_elem)
        return (name,), (_parse_limits(joint_elem),), [np.concatenate([axis, _ZERO3])]
    if joint_type == "planar":
        variables = (f"{name}/x", f"{name}/y", f"{name}/theta")
        twists = [np.concatenate([_X, _ZERO3]), np.concatenate([_Y, _ZERO3]), np.concatenate([_ZERO3, _Z])]
        return variables, (_UNBOUNDED, _UNBOUNDED, _ANGLE), twists

    # floating
    suffixes = ("trans_x", "trans_y", "trans_z", "rot_x", "rot_y", "rot_z")
    variables = tuple(f"{name}/{suffix}" for suffix in suffixes)
    twists = [np.eye(6)[k] for k in range(6)]
    return variables, (_UNBOUNDED,) * 3 + (_ANGLE,) * 3, twists


def _resolve_groups(
    semantic: SemanticDescription,
    joint_names: List[str],
    ordered_links: List[str],
    joint_by_child: Dict[str, dict],
) -> Dict[str, Tuple[str, ...]]:
    """Expand every group into its joints, listed in model joint order."""
    specs = {group.name: group for group in semantic.groups}
    resolved: Dict[str, Set[str]] = {}

    def parent_joint(link: str) -> Optional[dict]:
        if link not in ordered_links:
            raise ModelLoadError(f"Group references unknown link '{link}'")
        return joint_by_child.get(link)

    def resolve(group_name: str, stack: Tuple[str, ...]) -> Set[str]:
        if group_name in resolved:
            return resolved[group_name]
        if group_name not in specs:
            raise ModelLoadError(f"Group '{stack[-1]}' includes unknown group '{group_name}'")
        if group_name in stack:
            raise ModelLoadError(f"Group '{group_name}' includes itself")

        spec = specs[group_name]
        members: Set[str] = set()
        for joint in spec.joints:
            if joint not in joint_names:
                raise ModelLoadError(f"Group '{group_name}' references unknown joint '{joint}'")
            members.add(joint)
        for link in spec.links:
            info = parent_joint(link)
            if info is not None:
                members.add(info["name"])
        for base, tip in spec.chains:
            parent_joint(base)
            link = tip
            while link != base:
                info = parent_joint(link)
                if info is None or info["parent"] is None:
                    raise ModelLoadError(f"Group '{group_name}': '{base}' is not an ancestor of '{tip}'")
                members.add(info["name"])
                link = info["parent"]
        for subgroup in spec.subgroups:
            members |= resolve(subgroup, stack + (group_name,))

        resolved[group_name] = members
        return members

    return {
        name: tuple(j for j in joint_names if j in resolve(name, ()))
        for name in specs
    }
