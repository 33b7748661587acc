from flask import Blueprint, jsonify, current_app
from quizbuzz.errors import StorageFailure
from quizbuzz.services.stores import PlayerStore

stats = Blueprint('stats', __name__)


@stats.route('/leaderboard', methods=['GET'])
def leaderboard():
    """All stored players ranked by total score. Credentials are never included."""
    try:
        players = PlayerStore().load_all()
    except StorageFailure:
        current_app.logger.exception('[leaderboard] store read failed')
        return jsonify({'error': 'Leaderboard unavailable'}), 503
    players.sort(key=lambda p: (-p['totalScore'], p['name']))
    return jsonify({'players': players})
