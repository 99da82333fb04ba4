"""
Unit constants and conversions.

Geometry is held in metres internally. Sampled states leave the package
in centimetres, matching the state record of the transport engine.
Energies are in MeV throughout.
"""

import numpy as np

# Lengths, expressed in metres
M = 1.0
CM = 1.0e-2
MM = 1.0e-3
UM = 1.0e-6
KM = 1.0e3

# Conversion factors to the output unit system
M_TO_CM = 100.0
M2_TO_CM2 = M_TO_CM**2
M3_TO_CM3 = M_TO_CM**3


def to_cm(length_m):
    """Convert a length (scalar or array) from metres to centimetres."""
    return np.multiply(length_m, M_TO_CM)


def to_cm2(area_m2: float) -> float:
    """Convert an area from m² to cm²."""
    return area_m2 * M2_TO_CM2


def to_cm3(volume_m3: float) -> float:
    """Convert a volume from m³ to cm³."""
    return volume_m3 * M3_TO_CM3
