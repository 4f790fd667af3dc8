"""Threshold rules that judge a current-conditions reading."""

from wxrelay.api.models import ConditionReading
from wxrelay.records import Classification, WeatherLevel

_RANK: dict[str, int] = {"good": 0, "fair": 1, "bad": 2, "severe": 3}

SEVERE_KEYWORDS = ("thunderstorm", "storm")
EXTREME_KEYWORDS = ("tornado", "hurricane")
OBSCURED_KEYWORDS = ("fog", "mist", "haze")


def _fmt(value: float) -> str:
    """Render 97.0 as ``97`` and 0.625 as ``0.63``."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def classify(reading: ConditionReading) -> Classification:
    """Derive good/fair/bad/severe from a reading.

    The final level is the most severe band any rule triggered; reasons are
    listed in evaluation order.
    """
    reasons: list[str] = []
    level: WeatherLevel = "good"

    def raise_to(candidate: WeatherLevel) -> None:
        nonlocal level
        if _RANK[candidate] > _RANK[level]:
            level = candidate

    temp = reading.temp
    feels_like = reading.feels_like

    if temp > 95:
        reasons.append(f"Very hot ({_fmt(temp)}°F)")
        raise_to("bad")
    elif temp < 32:
        reasons.append(f"Freezing ({_fmt(temp)}°F)")
        raise_to("bad")
    elif temp < 40 or temp > 90:
        reasons.append(f"Uncomfortable temperature ({_fmt(temp)}°F)")
        raise_to("fair")

    if abs(feels_like - temp) > 10 and (feels_like > 100 or feels_like < 25):
        reasons.append(f"Feels like {_fmt(feels_like)}°F")
        raise_to("bad")

    if reading.wind_speed > 25:
        reasons.append(f"Strong winds ({_fmt(reading.wind_speed)} mph)")
        raise_to("bad")
    elif reading.wind_speed > 15:
        reasons.append(f"Windy ({_fmt(reading.wind_speed)} mph)")
        raise_to("fair")

    if reading.rain > 0.5:
        reasons.append(f"Heavy rain ({_fmt(reading.rain)} inches)")
        raise_to("bad")
    elif reading.rain > 0:
        reasons.append(f"Light rain ({_fmt(reading.rain)} inches)")
        raise_to("fair")

    if reading.snow > 0:
        reasons.append(f"Snow ({_fmt(reading.snow)} inches)")
        raise_to("bad")

    if reading.humidity > 85:
        reasons.append(f"Very humid ({_fmt(reading.humidity)}%)")
        raise_to("fair")

    if reading.visibility is not None and reading.visibility < 1:
        reasons.append(f"Poor visibility ({_fmt(reading.visibility)} miles)")
        raise_to("bad")

    description = (reading.description or "").lower()
    if any(keyword in description for keyword in SEVERE_KEYWORDS):
        reasons.append("Thunderstorm conditions")
        raise_to("severe")
    elif any(keyword in description for keyword in EXTREME_KEYWORDS):
        reasons.append("Severe weather")
        raise_to("severe")
    elif any(keyword in description for keyword in OBSCURED_KEYWORDS):
        reasons.append("Reduced visibility conditions")
        raise_to("fair")

    if reasons:
        summary = f"{level.upper()} WEATHER: {', '.join(reasons)}"
    else:
        summary = "GOOD WEATHER: Pleasant conditions"

    return Classification(level=level, reasons=reasons, summary=summary)
