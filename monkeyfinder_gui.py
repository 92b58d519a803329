#!/usr/bin/env python3
"""
MonkeyFinder GUI - Web front end for MonkeyFinder
A small JSON API over the monkey cache and the rating store, meant to be
driven by a browser or a hybrid app shell.
"""

import argparse
import logging
import os
import threading
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

import monkeyfinder
from finder.models import Monkey
from finder.services import MonkeyNotFoundError

load_dotenv()

# Initialize logging early so service logs are captured
log_level = os.getenv('MONKEYFINDER_LOG_LEVEL', 'INFO')
monkeyfinder.setup_logging(log_level)
gui_logger = logging.getLogger('monkeyfinder.gui')

app = Flask(__name__)

# Global state
finder: Optional[monkeyfinder.MonkeyFinder] = None
finder_lock = threading.Lock()

# Bumped by the rating observer; clients poll /api/status to notice changes
ratings_version = 0
ratings_version_lock = threading.Lock()


def _on_rating_changed():
    global ratings_version
    with ratings_version_lock:
        ratings_version += 1


def initialize_finder(config_path: str = 'config.json'):
    """Initialize the monkey finder and warm the monkey cache"""
    global finder
    with finder_lock:
        finder = monkeyfinder.MonkeyFinder(config_path=config_path)
        finder.rating_service.subscribe(_on_rating_changed)
        monkeys = finder.monkey_service.get_monkeys()
    if monkeys:
        gui_logger.info("Loaded %d monkeys", len(monkeys))
        return True, f"Loaded {len(monkeys)} monkeys"
    gui_logger.warning("No monkeys loaded at startup")
    return False, "Failed to fetch monkeys"


def _monkey_payload(monkey: Monkey) -> dict:
    data = monkey.to_dict()
    data['rating'] = finder.rating_service.get_rating(monkey)
    data['map_url'] = monkey.map_url
    return data


def _not_ready():
    return jsonify({'error': 'MonkeyFinder not initialized'}), 503


@app.route('/api/status')
def api_status():
    """Get application status"""
    if finder is None:
        return jsonify({'ready': False, 'message': 'Loading monkeys...'})

    # Polled endpoint: report what is cached, never trigger a fetch
    monkeys = finder.monkey_service.cached_monkeys
    with ratings_version_lock:
        version = ratings_version
    return jsonify({
        'ready': bool(monkeys),
        'total_monkeys': len(monkeys),
        'rated': sum(1 for m in monkeys if finder.rating_service.get_rating(m) > 0),
        'ratings_version': version,
    })


@app.route('/api/monkeys', methods=['GET'])
def api_list_monkeys():
    """List all monkeys with their ratings"""
    if finder is None:
        return _not_ready()
    monkeys = finder.monkey_service.get_monkeys()
    return jsonify([_monkey_payload(m) for m in monkeys])


@app.route('/api/monkeys', methods=['POST'])
def api_add_monkey():
    """Add a monkey to the in-memory list"""
    if finder is None:
        return _not_ready()

    data = request.get_json(silent=True)
    try:
        monkey = Monkey.from_dict(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    monkeys = finder.monkey_service.add_monkey(monkey)
    gui_logger.info("Added monkey %r via API", monkey.name)
    return jsonify({'success': True, 'total_monkeys': len(monkeys),
                    'monkey': _monkey_payload(monkey)}), 201


@app.route('/api/monkeys/closest')
def api_closest_monkey():
    """Find the monkey closest to ?lat=&lon="""
    if finder is None:
        return _not_ready()

    coords = monkeyfinder.parse_coordinates(
        f"{request.args.get('lat', '')},{request.args.get('lon', '')}")
    if coords is None:
        return jsonify({'error': 'lat and lon must be valid coordinates'}), 400

    monkey = finder.monkey_service.get_closest_monkey(*coords)
    if monkey is None:
        return jsonify({'error': 'No monkeys available'}), 404

    payload = _monkey_payload(monkey)
    payload['distance_km'] = round(monkeyfinder.haversine_km(
        coords[0], coords[1], monkey.latitude, monkey.longitude), 1)
    return jsonify(payload)


@app.route('/api/monkeys/<path:name>')
def api_get_monkey(name):
    """Get one monkey by name (names may contain ``/``).

    A monkey literally named ``closest`` is shadowed by
    :func:`api_closest_monkey`; its rating is still reachable under
    ``/api/ratings/closest``.
    """
    if finder is None:
        return _not_ready()
    try:
        monkey = finder.monkey_service.find_monkey_by_name(name)
    except MonkeyNotFoundError:
        return jsonify({'error': f'Monkey not found: {name}'}), 404
    return jsonify(_monkey_payload(monkey))


@app.route('/api/ratings/<path:name>', methods=['GET', 'PUT', 'POST'])
def api_monkey_rating(name):
    """Read or set the star rating of a monkey"""
    if finder is None:
        return _not_ready()
    try:
        monkey = finder.monkey_service.find_monkey_by_name(name)
    except MonkeyNotFoundError:
        return jsonify({'error': f'Monkey not found: {name}'}), 404

    if request.method == 'GET':
        return jsonify({'name': monkey.name,
                        'rating': finder.rating_service.get_rating(monkey)})

    data = request.get_json(silent=True) or {}
    raw = data.get('rating')
    if isinstance(raw, bool) or not isinstance(raw, int):
        return jsonify({'error': 'rating must be an integer'}), 400

    stored = finder.rating_service.set_rating(monkey, raw)
    return jsonify({'success': True, 'name': monkey.name, 'rating': stored})


def main():
    """Main entry point for GUI"""
    parser = argparse.ArgumentParser(description='MonkeyFinder Web GUI')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--host', help='Interface to bind (default from config)')
    parser.add_argument('--port', type=int, help='Port to listen on (default from config)')
    args = parser.parse_args()

    monkeyfinder.setup_logging(log_level, log_file=os.path.join('logs', 'monkeyfinder_gui.log'))

    ok, message = initialize_finder(args.config)
    if not ok:
        gui_logger.warning(message)

    host = args.host or finder.config.get('gui_host', '127.0.0.1')
    port = args.port or int(finder.config.get('gui_port', 5000))

    print("\n" + "="*60)
    print("🐒 MonkeyFinder Web GUI is starting...")
    print("="*60)
    print("\nAPI available at:")
    print(f"  http://{host}:{port}/api/monkeys")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    try:
        app.run(host=host, port=port, debug=False)
    except KeyboardInterrupt:
        print("\n\n" + "="*60)
        print("🛑 MonkeyFinder Web GUI stopped")
        print("="*60 + "\n")


if __name__ == "__main__":
    main()
