from netspeed import glyphs

SPEED_UNITS: list[str] = ["B/s", "KB/s", "MB/s", "GB/s"]


def pad_float(number: float = 0.0, places: int = 1) -> str:
    """
    Pad a float to the given number of decimal places.
    """
    return f"{number:.{places}f}"


def format_speed(number: float = 0.0) -> str:
    """
    Scale a rate in bytes/second to the largest unit where the value is
    below 1024. GB/s is the largest unit.
    """
    unit_index = 0
    while number >= 1024 and unit_index < len(SPEED_UNITS) - 1:
        number = number / 1024
        unit_index += 1

    return f"{pad_float(number=number)} {SPEED_UNITS[unit_index]}"


def compose_speed(download: str, upload: str) -> str:
    return f"{glyphs.arrow_down} {download} {glyphs.arrow_up} {upload}"
