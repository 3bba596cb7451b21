import math


class UnitConverter:
    """Utility for converting between weight and distance units."""

    KG_TO_LBS = 2.20462
    METERS_IN = {
        "km": 1000.0,
        "mi": 1609.34,
        "m": 1.0,
        "yd": 0.9144,
    }

    @staticmethod
    def _usable(value) -> bool:
        if not value:
            return False
        try:
            return math.isfinite(value)
        except TypeError:
            return False

    @staticmethod
    def kg_to_lbs(kg: float) -> float:
        if not UnitConverter._usable(kg):
            return 0.0
        return kg * UnitConverter.KG_TO_LBS

    @staticmethod
    def lbs_to_kg(lbs: float) -> float:
        if not UnitConverter._usable(lbs):
            return 0.0
        return lbs / UnitConverter.KG_TO_LBS

    @staticmethod
    def convert_distance(value: float, from_unit: str, to_unit: str) -> float:
        """Convert ``value`` between km, mi, m and yd via meters."""
        if not UnitConverter._usable(value):
            return 0.0
        if from_unit == to_unit:
            return value
        meters = value * UnitConverter.METERS_IN[from_unit]
        return meters / UnitConverter.METERS_IN[to_unit]

    @staticmethod
    def from_display_weight(value: float, unit: str) -> float:
        """Return ``value`` entered in ``unit`` as kilograms."""
        if unit == "lbs":
            return UnitConverter.lbs_to_kg(value)
        return value

    @staticmethod
    def to_display_weight(kg: float, unit: str) -> float:
        if unit == "lbs":
            return UnitConverter.kg_to_lbs(kg)
        return kg


kg_to_lbs = UnitConverter.kg_to_lbs
lbs_to_kg = UnitConverter.lbs_to_kg
convert_distance = UnitConverter.convert_distance
