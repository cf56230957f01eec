from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Smash or Pass server!'})

@main.route('/health')
def health():
    registry = current_app.extensions['game_sessions']
    return jsonify({'status': 'ok', 'live_sessions': len(registry)})
