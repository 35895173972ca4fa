"""SRDF parser for the semantic part of a robot description.

Only the elements the interface uses are read: the virtual joint attaching
the robot to the model frame, and planning groups.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from lxml import etree

from jax_robot_interface.exceptions import ModelLoadError

SUPPORTED_VIRTUAL_JOINT_TYPES = ("fixed", "planar", "floating")


@dataclass(frozen=True)
class VirtualJoint:
    name: str
    type: str
    parent_frame: str
    child_link: str


@dataclass(frozen=True)
class GroupSpec:
    """Members of a planning group exactly as declared.

    Attributes:
        name: Group name.
        joints: Joint names.
        links: Link names; each contributes the joint that has it as child.
        chains: (base_link, tip_link) pairs.
        subgroups: Names of groups whose joints are included.
    """

    name: str
    joints: Tuple[str, ...] = ()
    links: Tuple[str, ...] = ()
    chains: Tuple[Tuple[str, str], ...] = ()
    subgroups: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SemanticDescription:
    virtual_joint: Optional[VirtualJoint] = None
    groups: Tuple[GroupSpec, ...] = field(default_factory=tuple)


def _required(elem: etree._Element, attr: str) -> str:
    value = elem.get(attr)
    if not value:
        raise ModelLoadError(f"<{elem.tag}> on line {elem.sourceline} is missing '{attr}'")
    return value


def load_srdf(srdf_path: str) -> SemanticDescription:
    """Load the semantic description from an SRDF file.

    Args:
        srdf_path: Path to the SRDF file to load.

    Returns:
        SemanticDescription with the virtual joint (if any) and the groups in
        declaration order.
    """
    try:
        root = etree.parse(str(srdf_path)).getroot()
    except (OSError, etree.XMLSyntaxError) as e:
        raise ModelLoadError(f"Cannot read SRDF '{srdf_path}': {e}") from e

    virtual_joint = None
    for elem in root.findall("virtual_joint"):
        vj_type = _required(elem, "type")
        if vj_type not in SUPPORTED_VIRTUAL_JOINT_TYPES:
            raise ModelLoadError(f"Unsupported virtual joint type '{vj_type}' in '{srdf_path}'")
        if virtual_joint is not None:
            raise ModelLoadError(f"More than one virtual joint declared in '{srdf_path}'")
        virtual_joint = VirtualJoint(
            name=_required(elem, "name"),
            type=vj_type,
            parent_frame=_required(elem, "parent_frame"),
            child_link=_required(elem, "child_link"),
        )

    groups: List[GroupSpec] = []
    seen = set()
    for elem in root.findall("group"):
        name = _required(elem, "name")
        if name in seen:
            raise ModelLoadError(f"Group '{name}' is declared twice in '{srdf_path}'")
        seen.add(name)
        groups.append(
            GroupSpec(
                name=name,
                joints=tuple(_required(e, "name") for e in elem.findall("joint")),
                links=tuple(_required(e, "name") for e in elem.findall("link")),
                chains=tuple(
                    (_required(e, "base_link"), _required(e, "tip_link")) for e in elem.findall("chain")
                ),
                subgroups=tuple(_required(e, "name") for e in elem.findall("group")),
            )
        )

    return SemanticDescription(virtual_joint=virtual_joint, groups=tuple(groups))


def find_srdf(urdf_path: Path) -> Optional[Path]:
    """Semantic description stored next to a URDF, if there is one."""
    candidate = urdf_path.with_suffix(".srdf")
    return candidate if candidate.is_file() else None
