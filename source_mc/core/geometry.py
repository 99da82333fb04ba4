"""
Box geometry of the source problem.

Four axis-aligned boxes, all centred on the vertical (z) axis:

    world     = ground + air, stacked along z
    ground    slab at the bottom of the world
    air       above the ground, centred at z = ground_z / 2
    detector  inside the air, resting `clearance` above the ground

All lengths are stored in metres (see source_mc.core.units).
"""

import numpy as np
import numba
from typing import NamedTuple, Sequence, Tuple

from source_mc.core.errors import InvalidGeometry
from source_mc.core import units


class BoxPlacement(NamedTuple):
    """Placement of one box in world coordinates [m]."""
    name: str
    size: Tuple[float, float, float]
    center: Tuple[float, float, float]
    material: str


@numba.njit(cache=True)
def outside_box(x: float, y: float, z: float,
                half_x: float, half_y: float, half_z: float,
                center_z: float) -> bool:
    """True if (x, y, z) lies strictly outside a z-offset, axis-aligned box."""
    return (abs(x) > half_x) or (abs(y) > half_y) or (abs(z - center_z) > half_z)


def _as_size(value: Sequence[float], name: str) -> np.ndarray:
    size = np.asarray(value, dtype=np.float64)
    if size.shape != (3,):
        raise InvalidGeometry(f"{name} must have 3 components, got shape {size.shape}")
    if not np.all(np.isfinite(size)) or np.any(size <= 0.0):
        raise InvalidGeometry(f"{name} must be finite and positive, got {size.tolist()}")
    size.setflags(write=False)
    return size


class GeometryExtents:
    """
    Immutable extents of the world, air, ground and detector boxes.

    Example:
        extents = GeometryExtents.from_layout(
            air_size=(2000.0, 2000.0, 1000.0),
            ground_thickness=1.0,
            detector_size=(20.0, 20.0, 10.0))
    """

    def __init__(self, world_size: Sequence[float], air_size: Sequence[float],
                 ground_size: Sequence[float], detector_size: Sequence[float],
                 detector_offset: float):
        """
        Parameters:
            world_size: World box size [m]
            air_size: Air box size [m]
            ground_size: Ground box size [m]
            detector_size: Detector box size [m]
            detector_offset: z of the detector centre, world coordinates [m]

        Raises:
            InvalidGeometry: if the boxes are inconsistent, in particular if the
                             detector is not strictly contained in the air
        """
        self._world_size = _as_size(world_size, "world_size")
        self._air_size = _as_size(air_size, "air_size")
        self._ground_size = _as_size(ground_size, "ground_size")
        self._detector_size = _as_size(detector_size, "detector_size")
        self._detector_offset = float(detector_offset)
        self._validate()

    @classmethod
    def from_layout(cls, air_size: Sequence[float], ground_thickness: float,
                    detector_size: Sequence[float],
                    clearance: float = 5.0 * units.CM) -> "GeometryExtents":
        """
        Derive world, ground and detector offset from the air box.

        The ground shares the horizontal extent of the air, the world stacks
        both, and the detector sits `clearance` above the ground surface.
        """
        air = np.asarray(air_size, dtype=np.float64)
        detector = np.asarray(detector_size, dtype=np.float64)
        if air.shape != (3,) or detector.shape != (3,):
            raise InvalidGeometry("air_size and detector_size must have 3 components")
        ground = np.array([air[0], air[1], ground_thickness])
        world = np.array([air[0], air[1], air[2] + ground_thickness])
        offset = 0.5 * (-air[2] + detector[2] + ground_thickness) + clearance
        return cls(world, air, ground, detector, offset)

    @classmethod
    def default(cls) -> "GeometryExtents":
        """20 m x 20 m x 10 m detector in a 2 km x 2 km x 1 km air volume above 1 m of ground."""
        return cls.from_layout(
            air_size=(2.0 * units.KM, 2.0 * units.KM, 1.0 * units.KM),
            ground_thickness=1.0 * units.M,
            detector_size=(20.0 * units.M, 20.0 * units.M, 10.0 * units.M),
        )

    def _validate(self):
        air, det = self._air_size, self._detector_size

        if np.any(det >= air):
            raise InvalidGeometry(
                f"Detector {det.tolist()} must fit strictly inside air {air.tolist()}")

        air_low, air_high = self.air_z_range
        det_low = self._detector_offset - 0.5 * det[2]
        det_high = self._detector_offset + 0.5 * det[2]
        if not (det_low > air_low and det_high < air_high):
            raise InvalidGeometry(
                f"Detector z-range [{det_low}, {det_high}] m is not inside "
                f"air z-range [{air_low}, {air_high}] m")

        ground, world = self._ground_size, self._world_size
        if not np.allclose(ground[:2], air[:2]):
            raise InvalidGeometry("Ground and air must share their horizontal extent")
        expected_world = np.array([air[0], air[1], air[2] + ground[2]])
        if not np.allclose(world, expected_world):
            raise InvalidGeometry(
                f"World {world.tolist()} must stack ground and air, "
                f"expected {expected_world.tolist()}")

    # ------------------------------------------------------------------
    # Extents
    # ------------------------------------------------------------------

    @property
    def world_size(self) -> np.ndarray:
        return self._world_size

    @property
    def air_size(self) -> np.ndarray:
        return self._air_size

    @property
    def ground_size(self) -> np.ndarray:
        return self._ground_size

    @property
    def detector_size(self) -> np.ndarray:
        return self._detector_size

    @property
    def detector_offset(self) -> float:
        """z of the detector centre in world coordinates [m]."""
        return self._detector_offset

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def air_offset(self) -> float:
        """z of the air centre in world coordinates [m]."""
        return 0.5 * float(self._ground_size[2])

    @property
    def air_z_range(self) -> Tuple[float, float]:
        half = 0.5 * float(self._air_size[2])
        return self.air_offset - half, self.air_offset + half

    @property
    def detector_center(self) -> np.ndarray:
        return np.array([0.0, 0.0, self._detector_offset])

    @property
    def air_volume(self) -> float:
        """[m³]"""
        return float(np.prod(self._air_size))

    @property
    def detector_volume(self) -> float:
        """[m³]"""
        return float(np.prod(self._detector_size))

    @property
    def source_volume(self) -> float:
        """Air volume minus detector volume [m³]."""
        return self.air_volume - self.detector_volume

    @property
    def detector_surface_area(self) -> float:
        """Total surface of the detector box [m²]."""
        dx, dy, dz = self._detector_size
        return float(2.0 * (dx * dy + dy * dz + dz * dx))

    def inside_detector(self, point: Sequence[float]) -> bool:
        """True if a point [m] lies inside the detector box, boundary included."""
        half = 0.5 * self._detector_size
        return not outside_box(float(point[0]), float(point[1]), float(point[2]),
                               half[0], half[1], half[2], self._detector_offset)

    def contains_in_air(self, point: Sequence[float]) -> bool:
        """True if a point [m] lies in the air box, boundary included."""
        half = 0.5 * self._air_size
        return not outside_box(float(point[0]), float(point[1]), float(point[2]),
                               half[0], half[1], half[2], self.air_offset)

    def placements(self) -> Tuple[BoxPlacement, ...]:
        """Describe the four boxes in world coordinates, outermost first."""
        def _t(v):
            return tuple(float(c) for c in v)

        return (
            BoxPlacement("World", _t(self._world_size), (0.0, 0.0, 0.0), "G4_AIR"),
            BoxPlacement("Air", _t(self._air_size), (0.0, 0.0, self.air_offset), "G4_AIR"),
            BoxPlacement("Ground", _t(self._ground_size),
                         (0.0, 0.0, -0.5 * float(self._air_size[2])),
                         "G4_CALCIUM_CARBONATE"),
            BoxPlacement("Detector", _t(self._detector_size),
                         _t(self.detector_center), "G4_AIR"),
        )

    def __repr__(self) -> str:
        return (f"GeometryExtents(air={self._air_size.tolist()} m, "
                f"detector={self._detector_size.tolist()} m, "
                f"offset={self._detector_offset:.4f} m)")
