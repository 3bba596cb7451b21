import re
from typing import Iterable

NUMBER_PREFIX = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0
    DEFAULT_REST_SECONDS: int = 60

    @staticmethod
    def epley_1rm(weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Epley formula."""
        if reps == 1:
            return weight
        if reps == 0 or weight == 0:
            return 0.0
        return weight * (1 + reps / MathTools.EPLEY_DIVISOR)

    @staticmethod
    def volume(sets: Iterable[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def parse_number(value, default: float = 0.0) -> float:
        """Parse the leading number of user input such as ``"100lbs"``.

        Falls back to ``default`` when no finite number leads the input.
        """
        if value is None or isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            match = NUMBER_PREFIX.match(str(value))
            if not match:
                return default
            number = float(match.group(0))
        if number != number or number in (float("inf"), float("-inf")):
            return default
        return number

    @staticmethod
    def parse_rest_seconds(rest: str | None, default: int = DEFAULT_REST_SECONDS) -> int:
        """Return the leading integer of a rest string such as ``"90s"``."""
        match = re.match(r"\s*([+-]?\d+)", rest or "")
        if not match:
            return default
        seconds = int(match.group(1))
        return seconds if seconds > 0 else default
