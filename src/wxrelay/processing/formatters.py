"""Build outbound condition and forecast records."""

import time

from wxrelay.api.models import ConditionReading, ForecastPeriod, RawForecast
from wxrelay.records import Classification, ConditionRecord, ForecastRecord, Location, utcnow
from wxrelay.utils.timestamps import to_utc_datetime

# level -> (record type, priority)
_CONDITION_TYPES = {
    "severe": ("SEVERE_WEATHER", "high"),
    "bad": ("BAD_WEATHER", "medium"),
    "fair": ("FAIR_WEATHER", "low"),
    "good": ("GOOD_WEATHER", "low"),
}


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def build_condition_record(
    reading: ConditionReading,
    classification: Classification,
    location: Location,
) -> ConditionRecord:
    """Condition report with a plain-text description for SMS-style consumers."""
    record_type, priority = _CONDITION_TYPES[classification.level]
    place = location.name or location.zip_code

    description = f"Current Weather for {place}:\n\n"
    description += f"Temperature: {_num(reading.temp)}°F (Feels like {_num(reading.feels_like)}°F)\n"
    description += f"Conditions: {reading.description[:1].upper()}{reading.description[1:]}\n"
    description += f"Wind: {_num(reading.wind_speed)} mph\n"
    description += f"Humidity: {_num(reading.humidity)}%\n"
    if reading.rain > 0:
        description += f"Rain: {reading.rain:.2f} inches\n"
    if reading.snow > 0:
        description += f"Snow: {reading.snow:.2f} inches\n"
    if reading.visibility is not None:
        description += f"Visibility: {_num(reading.visibility)} miles\n"

    description += f"\nStatus: {classification.summary}"
    if classification.reasons:
        description += "\n\nWeather Factors:\n"
        description += "".join(f"  - {reason}\n" for reason in classification.reasons)

    return ConditionRecord(
        id=f"COND-{location.id}-{int(time.time() * 1000)}",
        type=record_type,
        classification=classification.level,
        event=f"{classification.level.upper()} Weather Alert",
        headline=classification.summary,
        description=description,
        severity=priority,
        location=place,
        location_id=location.id,
        coordinates={"latitude": location.latitude, "longitude": location.longitude},
        weather={
            "temperature": reading.temp,
            "feels_like": reading.feels_like,
            "conditions": reading.description,
            "humidity": reading.humidity,
            "wind_speed": reading.wind_speed,
            "rain": reading.rain,
            "snow": reading.snow,
        },
        observation_time=reading.timestamp,
        is_good_weather=classification.is_good,
        is_bad_weather=classification.is_bad,
    )


def build_forecast_summary(period: ForecastPeriod, location_name: str) -> str:
    """One-sentence forecast with a short piece of advice."""
    parts = []
    if period.maxTempF is not None and period.minTempF is not None:
        parts.append(f"High of {_num(period.maxTempF)}°F, low of {_num(period.minTempF)}°F")
    elif period.tempF is not None:
        parts.append(f"Temperature around {_num(period.tempF)}°F")

    if period.weather:
        parts.append(period.weather.lower())
    if period.pop and period.pop > 20:
        parts.append(f"{_num(period.pop)}% chance of precipitation")
    if period.windSpeedMaxMPH and period.windSpeedMaxMPH > 15:
        parts.append(f"winds up to {_num(period.windSpeedMaxMPH)} mph")

    if not parts:
        return f"Weather conditions for {location_name}."

    summary = f"Expect {', '.join(parts)}."
    if period.pop and period.pop > 50:
        summary += " Bring an umbrella!"
    elif period.maxTempF is not None and period.maxTempF > 90:
        summary += " Stay hydrated!"
    elif period.maxTempF is not None and period.maxTempF < 32:
        summary += " Bundle up!"
    return summary


def _forecast_date(period: ForecastPeriod) -> str:
    if period.dateTimeISO:
        return period.dateTimeISO.split("T")[0]
    parsed = to_utc_datetime(period.timestamp) or utcnow()
    return parsed.date().isoformat()


def build_forecast_record(forecast: RawForecast, location: Location) -> ForecastRecord | None:
    """Daily forecast record from the first period, or None if there is none."""
    if not forecast.periods:
        return None

    today = forecast.periods[0]
    place = location.name or forecast.place.get("name") or "Your Area"

    return ForecastRecord(
        forecast_id=f"FORECAST-{location.id}-{_forecast_date(today)}",
        location=place,
        location_id=location.id,
        date=today.dateTimeISO or (str(today.timestamp) if today.timestamp is not None else None),
        high_temp=today.maxTempF if today.maxTempF is not None else today.tempF,
        low_temp=today.minTempF,
        weather=today.weather or "Partly Cloudy",
        weather_short=today.weatherPrimary or today.weather or "Partly Cloudy",
        weather_code=today.weatherPrimaryCoded or "",
        precipitation_chance=today.pop or 0,
        precipitation_amount=today.precipIN or 0,
        humidity=today.humidity or today.avgHumidity or 0,
        wind_speed=today.windSpeedMaxMPH or today.windSpeedMPH or 0,
        wind_direction=today.windDir or "",
        uv_index=today.uvi or 0,
        summary=build_forecast_summary(today, place),
        sunrise=today.sunriseISO,
        sunset=today.sunsetISO,
    )
