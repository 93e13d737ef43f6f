"""Rotation modes and the mirror-angle relation."""
from enum import Enum
from typing import Union


class RotationMode(Enum):
    """Angle increments for pre-drawn rotations.

    Values are the names used in project documents.
    """
    DEG_45 = "Deg45"      # 8 rotations: 0, 45, 90, ... 315
    DEG_22_5 = "Deg22_5"  # 16 rotations: 0, 22, 45, 67, ... 337

    @classmethod
    def parse(cls, value: Union[str, "RotationMode", None]) -> "RotationMode":
        """Accept a serialized name, an enum member, or None (the default mode)."""
        if value is None:
            return cls.DEG_45
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown rotation mode: {value!r}") from None

    def angles(self) -> list[int]:
        """Fixed, ordered set of integer-degree angles for this mode.

        The fine mode stores 22.5 degree steps truncated to whole degrees.
        """
        if self is RotationMode.DEG_45:
            return [0, 45, 90, 135, 180, 225, 270, 315]
        return [(i * 225) // 10 for i in range(16)]

    def step(self) -> int:
        return 45 if self is RotationMode.DEG_45 else 22

    @staticmethod
    def mirror_angle(angle: int) -> int:
        """Angle whose artwork is the horizontal mirror of ``angle``.

        0 and 180 face along the axis and have no counterpart.
        """
        if angle == 0 or angle == 180:
            return angle
        return 360 - angle


def mirror_angle(angle: int) -> int:
    return RotationMode.mirror_angle(angle)
