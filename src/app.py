"""
Flask web application for the taekwondo bracket service.
"""
import os
import re
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify, abort
from core.models import Participant, BracketStructure
from core.elimination import (
    BracketError,
    InvalidParticipantsError,
    MatchNotFoundError,
    build_bracket,
    update_match_result,
    advance_byes,
    assign_bout_numbers,
    get_active_matches,
    get_match,
    get_match_display,
    get_bracket_display,
    get_tournament_winner,
    is_tournament_complete,
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('BRACKET_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = 10
MIN_PARTICIPANTS = 2

CLASS_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def _brackets_dir() -> str:
    return os.path.join(DATA_DIR, 'brackets')


def _bracket_path(class_id: str) -> str:
    """Path of a class's bracket file; unknown-looking ids are a 404."""
    if not CLASS_ID_PATTERN.match(class_id):
        abort(404)
    return os.path.join(_brackets_dir(), f'{class_id}.yaml')


def _data_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=LOCK_TIMEOUT)


def load_bracket(class_id: str):
    """Load a class's bracket from YAML. Returns None if missing or unreadable."""
    path = _bracket_path(class_id)
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return None
        return BracketStructure.from_dict(data)
    except (yaml.YAMLError, KeyError, TypeError, ValueError, AttributeError) as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return None


def save_bracket(class_id: str, bracket: BracketStructure):
    """Save a class's bracket to YAML."""
    path = _bracket_path(class_id)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(bracket.to_dict(), f, default_flow_style=False, sort_keys=False)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _bool_option(data: dict, key: str, default: bool) -> bool:
    """Read an optional JSON boolean; strings like "false" are rejected."""
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise BracketError(f'{key} must be true or false')
    return value


def parse_participants(items) -> list:
    """Turn the request's participant list into Participant objects."""
    if not isinstance(items, list):
        raise InvalidParticipantsError('participants must be a list')

    participants = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidParticipantsError('Each participant must be an object')
        participant_id = item.get('id')
        name = item.get('name')
        seed = item.get('seed')
        if not _is_int(participant_id):
            raise InvalidParticipantsError('Participant id must be an integer')
        if not isinstance(name, str) or not name.strip():
            raise InvalidParticipantsError(f'Participant {participant_id} is missing a name')
        if seed is not None and not _is_int(seed):
            raise InvalidParticipantsError(f'Seed of participant {participant_id} must be an integer')

        attributes = {}
        if item.get('dojang'):
            attributes['dojang'] = item['dojang']
        participants.append(Participant(id=participant_id, name=name.strip(), seed=seed, attributes=attributes))
    return participants


def _bracket_state(bracket: BracketStructure) -> dict:
    winner = get_tournament_winner(bracket)
    return {
        'complete': is_tournament_complete(bracket),
        'winner': winner.to_dict() if winner else None,
    }


@app.errorhandler(MatchNotFoundError)
def handle_match_not_found(error):
    return jsonify({'error': str(error)}), 404


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    return jsonify({'error': str(error)}), 400


@app.route('/api/brackets', methods=['GET'])
def api_list_brackets():
    """List every class that has a bracket."""
    brackets = []
    brackets_dir = _brackets_dir()
    if os.path.isdir(brackets_dir):
        for filename in sorted(os.listdir(brackets_dir)):
            class_id, ext = os.path.splitext(filename)
            if ext != '.yaml' or not CLASS_ID_PATTERN.match(class_id):
                continue
            bracket = load_bracket(class_id)
            if bracket is None:
                continue
            brackets.append({
                'class_id': class_id,
                'total_participants': bracket.total_participants,
                'complete': is_tournament_complete(bracket),
            })
    return jsonify({'brackets': brackets})


@app.route('/api/brackets/<class_id>', methods=['POST'])
def api_create_bracket(class_id):
    """Draw the bracket for a competition class."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    participants = parse_participants(data.get('participants'))
    if len(participants) < MIN_PARTICIPANTS:
        return jsonify({'error': f'At least {MIN_PARTICIPANTS} participants are required to draw a bracket'}), 400

    seeded = _bool_option(data, 'seeded', False)
    auto_advance_byes = _bool_option(data, 'auto_advance_byes', True)

    path = _bracket_path(class_id)
    with _data_lock():
        if os.path.exists(path):
            return jsonify({'error': f'A bracket already exists for class {class_id}'}), 409

        bracket = build_bracket(participants, seeded=seeded)
        assign_bout_numbers(bracket)
        if auto_advance_byes:
            advance_byes(bracket)
        save_bracket(class_id, bracket)

    app.logger.info(
        f'Bracket created for class {class_id}: {bracket.total_participants} participants, '
        f'{bracket.rounds} rounds, seeded={seeded}'
    )
    return jsonify({
        'success': True,
        'class_id': class_id,
        'bracket': get_bracket_display(bracket),
    }), 201


@app.route('/api/brackets/<class_id>', methods=['GET'])
def api_get_bracket(class_id):
    """Return the bracket of a class for display."""
    bracket = load_bracket(class_id)
    if bracket is None:
        return jsonify({'error': f'No bracket for class {class_id}'}), 404
    return jsonify({'class_id': class_id, 'bracket': get_bracket_display(bracket)})


@app.route('/api/brackets/<class_id>', methods=['DELETE'])
def api_delete_bracket(class_id):
    """Discard a class's bracket so it can be drawn again."""
    path = _bracket_path(class_id)
    with _data_lock():
        if not os.path.exists(path):
            return jsonify({'error': f'No bracket for class {class_id}'}), 404
        os.remove(path)
    app.logger.info(f'Bracket deleted for class {class_id}')
    return jsonify({'success': True})


@app.route('/api/brackets/<class_id>/results', methods=['POST'])
def api_record_result(class_id):
    """Record the winner of a match and advance them."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    match_id = data.get('match_id')
    winner_id = data.get('winner_id')
    if not _is_int(match_id) or not _is_int(winner_id):
        return jsonify({'error': 'match_id and winner_id must be integers'}), 400
    auto_advance_byes = _bool_option(data, 'auto_advance_byes', True)

    with _data_lock():
        bracket = load_bracket(class_id)
        if bracket is None:
            return jsonify({'error': f'No bracket for class {class_id}'}), 404

        update_match_result(bracket, match_id, winner_id,
                            score1=data.get('score1'), score2=data.get('score2'))
        advanced = advance_byes(bracket) if auto_advance_byes else []
        save_bracket(class_id, bracket)

    match = get_match(bracket, match_id)
    app.logger.info(f'Result recorded for class {class_id}: match {match_id} won by {match.winner.name}')
    return jsonify({
        'success': True,
        'match': get_match_display(match),
        'advanced_byes': advanced,
        **_bracket_state(bracket),
    })


@app.route('/api/brackets/<class_id>/active', methods=['GET'])
def api_active_matches(class_id):
    """List the matches that are ready to be played."""
    bracket = load_bracket(class_id)
    if bracket is None:
        return jsonify({'error': f'No bracket for class {class_id}'}), 404
    return jsonify({
        'class_id': class_id,
        'matches': [get_match_display(m, is_playable=True) for m in get_active_matches(bracket)],
    })


@app.route('/api/brackets/<class_id>/winner', methods=['GET'])
def api_tournament_winner(class_id):
    """Report whether the class is decided and who won it."""
    bracket = load_bracket(class_id)
    if bracket is None:
        return jsonify({'error': f'No bracket for class {class_id}'}), 404
    return jsonify({'class_id': class_id, **_bracket_state(bracket)})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
