from .math_tools import MathTools
from .pace_calculator import PaceCalculator
from .unit_converter import UnitConverter

__all__ = ["MathTools", "PaceCalculator", "UnitConverter"]
