from flask import Blueprint, jsonify
from quizbuzz import get_engine

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the quiz buzzer server!'})

@main.route('/api/health')
def health():
    engine = get_engine()
    return jsonify({
        'status': 'ok',
        'clients': len(engine.registry),
        'buzzer': engine.state.buzzer_dict(),
    })
