class PaceCalculator:
    """Helpers for cardio pace, distance and time calculations."""

    @staticmethod
    def parse_time_to_seconds(time_str: str) -> int:
        """Parse ``HH:MM:SS``, ``MM:SS`` or ``SS`` into total seconds."""
        if not time_str:
            return 0
        try:
            parts = [int(p) for p in time_str.strip().split(":")]
        except ValueError:
            return 0
        if len(parts) == 3:
            return parts[0] * 3600 + parts[1] * 60 + parts[2]
        if len(parts) == 2:
            return parts[0] * 60 + parts[1]
        if len(parts) == 1:
            return parts[0]
        return 0

    @staticmethod
    def format_seconds_to_time(total_seconds: float) -> str:
        """Format seconds as ``HH:MM:SS`` dropping a zero hour part."""
        if total_seconds is None or total_seconds != total_seconds or total_seconds <= 0:
            return ""
        total = int(total_seconds)
        hours = total // 3600
        minutes = (total % 3600) // 60
        seconds = total % 60
        if hours > 0:
            return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:02d}:{seconds:02d}"

    @staticmethod
    def calculate_pace(distance: float, time_seconds: float) -> float:
        """Return seconds per unit of distance."""
        if distance <= 0 or time_seconds <= 0:
            return 0.0
        return time_seconds / distance

    @staticmethod
    def calculate_distance(time_seconds: float, pace_seconds: float) -> float:
        if time_seconds <= 0 or pace_seconds <= 0:
            return 0.0
        return time_seconds / pace_seconds

    @staticmethod
    def calculate_time(distance: float, pace_seconds: float) -> float:
        if distance <= 0 or pace_seconds <= 0:
            return 0.0
        return distance * pace_seconds
