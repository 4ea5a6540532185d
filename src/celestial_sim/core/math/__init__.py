"""Math utilities namespace."""

from .pool import VectorPool  # noqa: F401
from .quat import (  # noqa: F401
    IDENTITY,
    quat_from_axis_angle,
    quat_mul,
    quat_normalize,
    quat_rotate,
    spin_angle,
    spin_quaternion,
)
from .vector import as_vec3, distance, unit, vec3  # noqa: F401
