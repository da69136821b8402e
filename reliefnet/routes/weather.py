"""Current weather widget route."""

from flask import Blueprint, request, jsonify
from reliefnet.services.weather import fetch_weather

weather_bp = Blueprint('weather', __name__)


@weather_bp.route('', methods=['GET'])
def get_weather():
    city = (request.args.get('city') or '').strip()
    if not city:
        return jsonify({'error': 'city is required'}), 400

    weather = fetch_weather(city)
    if weather is None:
        return jsonify({'error': 'Weather unavailable'}), 404
    return jsonify({'city': city, **weather}), 200
