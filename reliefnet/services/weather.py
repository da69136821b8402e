"""Current weather for a city via Open-Meteo (no API key needed)."""

import logging
import requests

logger = logging.getLogger(__name__)

GEOCODING_URL = 'https://geocoding-api.open-meteo.com/v1/search'
FORECAST_URL = 'https://api.open-meteo.com/v1/forecast'
WEATHER_TIMEOUT = 5


def get_weather_condition(code):
    """Describe a WMO weather interpretation code (0-99)."""
    if code == 0:
        return 'Clear sky'
    if 1 <= code <= 3:
        return 'Partly cloudy'
    if 45 <= code <= 48:
        return 'Foggy'
    if 51 <= code <= 55:
        return 'Drizzle'
    if 61 <= code <= 65:
        return 'Rain'
    if 71 <= code <= 77:
        return 'Snow'
    if 95 <= code <= 99:
        return 'Thunderstorm'
    return 'Overcast'


def fetch_weather(city):
    """Return current weather for city, or None if it cannot be determined."""
    try:
        geo = requests.get(
            GEOCODING_URL,
            params={'name': city, 'count': 1, 'language': 'en', 'format': 'json'},
            timeout=WEATHER_TIMEOUT,
        )
        geo.raise_for_status()
        results = geo.json().get('results') or []
        if not results:
            logger.info(f"Weather: city not found: {city}")
            return None

        latitude = results[0]['latitude']
        longitude = results[0]['longitude']

        forecast = requests.get(
            FORECAST_URL,
            params={'latitude': latitude, 'longitude': longitude, 'current_weather': 'true'},
            timeout=WEATHER_TIMEOUT,
        )
        forecast.raise_for_status()
        current = forecast.json()['current_weather']

        return {
            'temperature': current['temperature'],
            'wind_speed': current['windspeed'],
            'condition_code': current['weathercode'],
            'condition_text': get_weather_condition(current['weathercode']),
        }
    except requests.Timeout:
        logger.warning(f"Weather lookup timeout for {city}")
    except Exception as e:
        logger.warning(f"Weather lookup error for {city}: {e}")

    return None
