import re

from flask import Blueprint, current_app, jsonify, request
from models import db, Unit, ClassSlot
from utils.unit_store import find_unit, store_unit_classes

units_bp = Blueprint('units', __name__)

UNIT_CODE_PATTERN = re.compile(r'^[A-Za-z]{3}[0-9]{3}$')


def normalize_unit_code(code):
    """Return the upper-cased unit code, or None if it is not 3 letters + 3 digits."""
    code = (code or '').strip()
    if not UNIT_CODE_PATTERN.match(code):
        return None
    return code.upper()


def teaching_period_arg(data=None):
    default = current_app.config['DEFAULT_TEACHING_PERIOD_ID']
    if data is not None:
        return str(data.get('teachingPeriodId') or default)
    return request.args.get('teachingPeriodId') or default


@units_bp.route('/search')
def search_units():
    """Search stored units by code prefix."""
    query = request.args.get('q', '').strip().upper()
    
    if not query:
        return jsonify({'units': []})
    
    units = Unit.query.filter(Unit.code.like(f'{query}%')).order_by(Unit.code).limit(20).all()
    
    return jsonify({
        'units': [unit.to_dict() for unit in units]
    })


@units_bp.route('/<code>/classes')
def get_unit_classes(code):
    """Get all stored candidate classes for a unit."""
    unit_code = normalize_unit_code(code)
    if not unit_code:
        return jsonify({'error': 'Unit code must be 3 letters followed by 3 digits (e.g., CAB202)'}), 400
    
    unit = find_unit(unit_code, teaching_period_arg())
    if not unit:
        return jsonify({'error': f'No classes found for {unit_code}'}), 404
    
    classes = unit.classes.order_by(ClassSlot.id).all()
    return jsonify({
        'unit': unit.to_dict(),
        'teachingPeriodName': current_app.config['TEACHING_PERIODS'].get(unit.teaching_period_id, unit.teaching_period_id),
        'classes': [slot.to_dict() for slot in classes]
    })


@units_bp.route('/<code>/classes', methods=['POST'])
def import_unit_classes(code):
    """Store (replace) the candidate classes supplied for a unit."""
    unit_code = normalize_unit_code(code)
    if not unit_code:
        return jsonify({'error': 'Unit code must be 3 letters followed by 3 digits (e.g., CAB202)'}), 400
    
    data = request.get_json(silent=True) or {}
    classes = data.get('classes')
    if not isinstance(classes, list):
        return jsonify({'error': 'classes must be a list'}), 400
    
    try:
        unit = store_unit_classes(unit_code, teaching_period_arg(data), classes, data.get('unitName'))
        db.session.commit()
        
        return jsonify({
            'success': True,
            'message': f'Stored {unit.classes.count()} classes for {unit.code}',
            'unit': unit.to_dict()
        }), 201
        
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f'Import error for {unit_code}: {e}')
        return jsonify({'error': str(e)}), 500


@units_bp.route('/<code>', methods=['DELETE'])
def delete_unit(code):
    """Remove a stored unit and its classes."""
    unit_code = normalize_unit_code(code)
    if not unit_code:
        return jsonify({'error': 'Unit code must be 3 letters followed by 3 digits (e.g., CAB202)'}), 400
    
    unit = find_unit(unit_code, teaching_period_arg())
    if not unit:
        return jsonify({'error': 'Unit not found'}), 404
    
    db.session.delete(unit)
    db.session.commit()
    
    return jsonify({'success': True})
