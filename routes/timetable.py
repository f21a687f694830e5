"""Routes for automatic timetable generation."""

from flask import Blueprint, current_app, jsonify, request
from routes.units import normalize_unit_code, teaching_period_arg
from utils.timetable_generator import (
    PREFERENCES,
    SelectedClass,
    apply_generated_classes,
    generate,
)
from utils.unit_store import collect_candidates

timetable_bp = Blueprint('timetable', __name__)


def dict_list(data, key):
    """The list of JSON objects under key, or ValueError."""
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f'{key} must be a list of objects')
    return value


@timetable_bp.route('/generate', methods=['POST'])
def generate_timetable():
    """
    Generate a timetable for the requested units.

    Expects JSON with unitCodes, optional teachingPeriodId, unavailableBlocks,
    existingClasses, preference and seed. Shortfalls come back as warnings
    in a 200 response; only malformed input is rejected.
    """
    data = request.get_json(silent=True) or {}
    
    raw_codes = data.get('unitCodes') or []
    if not isinstance(raw_codes, list) or not raw_codes:
        return jsonify({'error': 'Please add at least one unit'}), 400
    
    unit_codes = []
    for raw in raw_codes:
        code = normalize_unit_code(raw if isinstance(raw, str) else '')
        if not code:
            return jsonify({'error': f'Invalid unit code: {raw}. Unit code must be 3 letters followed by 3 digits (e.g., CAB202)'}), 400
        if code not in unit_codes:
            unit_codes.append(code)
    
    preference = data.get('preference') or 'spread'
    if preference not in PREFERENCES:
        return jsonify({'error': f"preference must be one of {', '.join(PREFERENCES)}"}), 400
    
    seed = data.get('seed')
    if seed is not None and not isinstance(seed, int):
        return jsonify({'error': 'seed must be an integer'}), 400
    
    candidates = collect_candidates(unit_codes, teaching_period_arg(data))
    
    try:
        result = generate(
            candidates,
            unavailability=dict_list(data, 'unavailableBlocks'),
            existing_classes=dict_list(data, 'existingClasses'),
            preference=preference,
            seed=seed,
            max_iterations=current_app.config['SIMULATION_ITERATIONS'],
            timeout_ms=current_app.config['SIMULATION_TIMEOUT_MS'],
            fallback_attempts=current_app.config['FALLBACK_ATTEMPTS'],
        )
    except ValueError as e:
        current_app.logger.warning(f'Rejected generation request: {e}')
        return jsonify({'error': f'Invalid input: {e}'}), 400
    
    return jsonify(result.to_dict())


@timetable_bp.route('/apply', methods=['POST'])
def apply_timetable():
    """Merge generated classes into the caller's existing timetable."""
    data = request.get_json(silent=True) or {}
    
    try:
        existing = [SelectedClass.from_dict(c) for c in dict_list(data, 'existingClasses')]
        generated = [SelectedClass.from_dict(c) for c in dict_list(data, 'generatedClasses')]
    except ValueError as e:
        return jsonify({'error': f'Invalid class data: {e}'}), 400
    
    merged, added = apply_generated_classes(existing, generated)
    
    return jsonify({
        'success': True,
        'message': f'Added {len(added)} classes to your timetable.',
        'classes': [c.to_dict() for c in merged],
        'added': len(added)
    })
