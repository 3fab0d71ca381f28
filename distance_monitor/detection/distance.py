"""
Distance heuristic for Screen Distance Monitor

Estimates how far the user sits from the screen from the size of their
bounding box, and derives the "safe" distance threshold from the size of
the screen.

Formula: D = (s_pixel * S_known) / S_reference
where:
    s_pixel = apparent size of the person (bounding box width, pixels)
    S_known = assumed real size of a person (72 in)
    S_reference = reference size supplied by the user (inches)

This is a proportionality heuristic, not a calibrated measurement. It does
not model focal length, sensor size or lens distortion, so the result is
only meaningful relative to the safe distance computed the same way.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional


# Assumed average person height in inches
KNOWN_SIZE = 72.0

# Half angle of view in degrees (60 degree total field of view)
VIEW_HALF_ANGLE = 30.0

# Fraction of the reference size that should fill the view at the safe boundary
SAFE_FRACTION = 0.75


def parse_reference_size(value: Any) -> float:
    """
    Convert a raw reference-size input into a number.

    Numbers and numeric strings are returned as floats. Anything that does
    not parse to a finite number returns 0.0, which downstream code treats
    as "no reference size".

    Args:
        value: Raw value from the UI or configuration

    Returns:
        Parsed reference size
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _is_positive(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def estimate_distance(
    apparent_size: float,
    reference_size: float,
    known_size: float = KNOWN_SIZE
) -> Optional[float]:
    """
    Estimate the distance to a detected person.

    Args:
        apparent_size: Bounding box width in pixels
        reference_size: User supplied reference size in inches
        known_size: Assumed real size of the detected class in inches

    Returns:
        Estimated distance, or None when reference_size is not a positive
        number and the estimate is unknown
    """
    if not _is_positive(reference_size):
        return None
    return apparent_size * known_size / reference_size


def calculate_safe_distance(
    reference_size: float,
    half_angle: float = VIEW_HALF_ANGLE,
    fraction: float = SAFE_FRACTION
) -> int:
    """
    Calculate the recommended minimum distance for a reference size.

    Args:
        reference_size: User supplied reference size in inches
        half_angle: Half angle of view in degrees
        fraction: Fraction of the reference size filling the view

    Returns:
        Safe distance rounded to a whole number, 0 for an invalid size
    """
    if not _is_positive(reference_size):
        return 0
    return round((reference_size * fraction) / math.tan(math.radians(half_angle)))


@dataclass(frozen=True)
class DistanceEstimator:
    """
    Distance heuristic with its policy constants.

    Attributes:
        known_size: Assumed real size of the target class (inches)
        half_angle: Half angle of view for the safe distance (degrees)
        fraction: Fraction of the reference size at the safe boundary
    """
    known_size: float = KNOWN_SIZE
    half_angle: float = VIEW_HALF_ANGLE
    fraction: float = SAFE_FRACTION

    @classmethod
    def from_config(cls, config) -> "DistanceEstimator":
        """Build an estimator from a Config instance."""
        return cls(
            known_size=config.known_size,
            half_angle=config.view_half_angle,
            fraction=config.safe_fraction
        )

    def estimate_distance(self, apparent_size: float, reference_size: float) -> Optional[float]:
        return estimate_distance(apparent_size, reference_size, self.known_size)

    def calculate_safe_distance(self, reference_size: float) -> int:
        return calculate_safe_distance(reference_size, self.half_angle, self.fraction)

    def is_too_close(self, distance: Optional[float], reference_size: float) -> bool:
        """True when a known distance is below the safe distance."""
        if distance is None:
            return False
        return distance < self.calculate_safe_distance(reference_size)
