from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from heart_hunt import socketio
from heart_hunt.errors import HeartHuntError
from heart_hunt.models import GameScore
from heart_hunt.services.games import ranking, scores, sessions
from heart_hunt.socketio_events import LEADERBOARD_ROOM


games = Blueprint('games', __name__)


@games.errorhandler(HeartHuntError)
def handle_game_error(exc: HeartHuntError):
    if exc.status_code >= 500:
        current_app.logger.error(f"[error] {request.method} {request.path}: {exc.message} ({exc.cause})")
    else:
        current_app.logger.warning(f"[rejected] {request.method} {request.path}: {exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _broadcast_score(record: GameScore) -> None:
    socketio.emit('leaderboard_update', {
        'userId': record.user_id,
        'username': record.username,
        'score': record.score,
        'difficulty': record.difficulty,
        'gameType': record.game_type,
    }, to=LEADERBOARD_ROOM, namespace='/ws')


@games.route('/save-score', methods=['POST'])
@login_required
def save_score():
    record = scores.save_score(_payload())
    _broadcast_score(record)
    return jsonify({
        'success': True,
        'message': 'Score saved successfully',
        'data': record.to_dict(),
    }), 201


@games.route('/save-mini-game', methods=['POST'])
@login_required
def save_mini_game():
    record = scores.save_mini_game_score(_payload())
    _broadcast_score(record)
    return jsonify({
        'success': True,
        'message': 'Mini-game score saved successfully',
        'data': record.to_dict(),
    }), 201


@games.route('/save-session', methods=['POST'])
@login_required
def save_session():
    session = sessions.start_session(_payload())
    return jsonify({
        'success': True,
        'message': 'Game session started',
        'sessionId': session.session_id,
        'data': session.to_dict(),
    }), 201


@games.route('/session/<string:session_id>', methods=['PUT'])
@login_required
def update_session(session_id):
    session = sessions.update_session(session_id, _payload())
    return jsonify({
        'success': True,
        'message': 'Game session updated successfully',
        'data': session.to_dict(),
    })


@games.route('/user-scores/<string:user_id>', methods=['GET'])
@login_required
def get_user_scores(user_id):
    records, pagination = scores.user_scores(
        user_id,
        limit=request.args.get('limit'),
        page=request.args.get('page'),
    )
    return jsonify({
        'success': True,
        'data': [r.to_dict() for r in records],
        'pagination': pagination,
    })


@games.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    board = ranking.leaderboard(
        limit=request.args.get('limit', 10),
        difficulty=request.args.get('difficulty'),
        time_frame=request.args.get('timeFrame', 'all'),
    )
    return jsonify({
        'success': True,
        'data': board['entries'],
        'timeFrame': board['timeFrame'],
        'difficulty': board['difficulty'],
        'updatedAt': board['updatedAt'],
    })


@games.route('/active-sessions/<string:user_id>', methods=['GET'])
@login_required
def get_active_sessions(user_id):
    return jsonify({
        'success': True,
        'data': [s.to_dict() for s in sessions.active_sessions(user_id)],
    })


@games.route('/user-stats/<string:user_id>', methods=['GET'])
@login_required
def get_user_stats(user_id):
    return jsonify({'success': True, 'data': ranking.user_stats(user_id)})


@games.route('/stats', methods=['GET'])
@login_required
def get_game_stats():
    return jsonify({'success': True, 'data': ranking.global_stats()})
