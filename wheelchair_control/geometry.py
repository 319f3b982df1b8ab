"""Pose representation and interpolation helpers.

Conventions:
- Right-handed world frame, z axis up.
- Quaternions are numpy arrays ordered [w, x, y, z].
- The vehicle's forward axis is its local +x; positive yaw turns it
  counter-clockwise when seen from above.
"""

import math
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from .model import MotionOffset

FORWARD_AXIS = np.array([1.0, 0.0, 0.0])
"""Vehicle forward direction in its own frame."""

# Below this angle slerp falls back to a normalized lerp
_SLERP_DOT_THRESHOLD = 0.9995


def yaw_quaternion(yaw: float) -> npt.NDArray[np.float64]:
    """Quaternion for a rotation of `yaw` radians about the z axis."""
    half = yaw / 2.0
    return np.array([math.cos(half), 0.0, 0.0, math.sin(half)])


def quaternion_multiply(
    q1: npt.NDArray[np.float64], q2: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """Hamilton product q1 * q2 (apply q2 first, then q1)."""
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ]
    )


def rotate_vector(
    q: npt.NDArray[np.float64], v: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """Rotate vector v by unit quaternion q."""
    w = q[0]
    u = q[1:]
    # v' = v + 2w(u x v) + 2u x (u x v)
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def quaternion_yaw(q: npt.NDArray[np.float64]) -> float:
    """Extract the rotation about z (radians, wrapped to [-pi, pi])."""
    w, x, y, z = q
    return math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))


def lerp(
    a: npt.NDArray[np.float64], b: npt.NDArray[np.float64], t: float
) -> npt.NDArray[np.float64]:
    """Linear interpolation between two vectors, t clamped to [0, 1]."""
    t = min(max(t, 0.0), 1.0)
    return a + (b - a) * t


def slerp(
    q1: npt.NDArray[np.float64], q2: npt.NDArray[np.float64], t: float
) -> npt.NDArray[np.float64]:
    """Spherical linear interpolation between unit quaternions.

    Takes the shortest arc and clamps t to [0, 1], so the result always lies
    between the two endpoint orientations.

    Args:
        q1: Start orientation [w, x, y, z]
        q2: End orientation [w, x, y, z]
        t: Interpolation parameter

    Returns:
        Unit quaternion between q1 (t=0) and q2 (t=1)
    """
    t = min(max(t, 0.0), 1.0)
    q1 = np.asarray(q1, dtype=float)
    q2 = np.asarray(q2, dtype=float)
    if t == 0.0 or np.array_equal(q1, q2):
        return q1.copy()
    if t == 1.0:
        return q2.copy()

    dot = float(np.dot(q1, q2))
    if dot < 0.0:
        q2 = -q2
        dot = -dot

    if dot > _SLERP_DOT_THRESHOLD:
        result = q1 + (q2 - q1) * t
        return result / np.linalg.norm(result)

    theta_0 = math.acos(dot)
    theta = theta_0 * t
    sin_theta_0 = math.sin(theta_0)
    s1 = math.sin(theta_0 - theta) / sin_theta_0
    s2 = math.sin(theta) / sin_theta_0
    return s1 * q1 + s2 * q2


@dataclass
class Pose:
    """Placement of the vehicle in the world.

    Attributes:
        position: World position (meters), shape (3,)
        rotation: Orientation quaternion [w, x, y, z], shape (4,)
    """

    position: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    rotation: npt.NDArray[np.float64] = field(
        default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0])
    )

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).reshape(3)
        self.rotation = np.asarray(self.rotation, dtype=float).reshape(4)

    @classmethod
    def from_planar(cls, x: float = 0.0, y: float = 0.0, yaw: float = 0.0) -> "Pose":
        """Build a pose on the ground plane from x, y and heading."""
        return cls(np.array([x, y, 0.0]), yaw_quaternion(yaw))

    @property
    def yaw(self) -> float:
        return quaternion_yaw(self.rotation)

    def forward(self) -> npt.NDArray[np.float64]:
        """Unit vector the vehicle currently faces."""
        return rotate_vector(self.rotation, FORWARD_AXIS)

    def copy(self) -> "Pose":
        return Pose(self.position.copy(), self.rotation.copy())

    def is_close(self, other: "Pose", atol: float = 1e-9) -> bool:
        """Compare positions and orientations (q and -q are the same orientation)."""
        same_position = np.allclose(self.position, other.position, atol=atol)
        same_rotation = np.allclose(self.rotation, other.rotation, atol=atol) or np.allclose(
            self.rotation, -other.rotation, atol=atol
        )
        return bool(same_position and same_rotation)

    def to_dict(self) -> dict:
        return {
            "position": self.position.tolist(),
            "rotation": self.rotation.tolist(),
            "yaw": self.yaw,
        }


def apply_offset(pose: Pose, offset: MotionOffset) -> Pose:
    """Return the pose reached by moving along `pose`'s forward axis and turning in place.

    The translation uses the heading before the turn; the yaw is composed in the
    vehicle's local frame.
    """
    position = pose.position + pose.forward() * offset.forward
    rotation = quaternion_multiply(pose.rotation, yaw_quaternion(offset.yaw))
    return Pose(position, rotation)


def interpolate_pose(initial: Pose, target: Pose, t: float) -> Pose:
    """Blend two poses: lerp on position, slerp on rotation."""
    return Pose(
        lerp(initial.position, target.position, t),
        slerp(initial.rotation, target.rotation, t),
    )
