"""
Database-backed supply of candidate classes per unit and teaching period.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from models import db, Unit, ClassSlot

logger = logging.getLogger(__name__)

_FIELDS = {
    'activity_type': 'activityType',
    'start_time': 'startTime',
    'end_time': 'endTime',
    'location': 'location',
    'description': 'class',
    'teaching_staff': 'teachingStaff',
    'class_title': 'classTitle',
}


def find_unit(unit_code: str, teaching_period_id: str) -> Optional[Unit]:
    return Unit.query.filter_by(code=unit_code.upper(), teaching_period_id=teaching_period_id).first()


def get_unit_candidates(unit_code: str, teaching_period_id: str) -> List[Dict]:
    """
    Stored candidate classes for a unit, in the client's dict shape.

    Returns an empty list when nothing is stored for the unit/period.
    """
    unit = find_unit(unit_code, teaching_period_id)
    if not unit:
        logger.info('No stored classes for %s (teaching period %s)', unit_code, teaching_period_id)
        return []
    return [slot.to_dict() for slot in unit.classes.order_by(ClassSlot.id).all()]


def collect_candidates(unit_codes: List[str], teaching_period_id: str) -> Dict[str, List[Dict]]:
    return {code: get_unit_candidates(code, teaching_period_id) for code in unit_codes}


def store_unit_classes(unit_code: str, teaching_period_id: str, classes: List[Dict],
                       unit_name: Optional[str] = None) -> Unit:
    """
    Replace the stored classes of a unit with the given client dicts.

    Duplicate rows (same activity, day, times, location and descriptor)
    are stored once. Rows without activity type, day or times are skipped.
    The caller commits.
    """
    unit = find_unit(unit_code, teaching_period_id)
    if unit is None:
        unit = Unit(code=unit_code.upper(), teaching_period_id=teaching_period_id)
        db.session.add(unit)
    else:
        for old in unit.classes.all():
            db.session.delete(old)

    unit.name = unit_name or unit.name
    unit.fetched_at = datetime.utcnow()
    db.session.flush()

    seen = set()
    slots_to_add = []
    for data in classes:
        day = data.get('dayFormatted') or data.get('day')
        values = {column: (data.get(key) or '').strip() for column, key in _FIELDS.items()}
        if not (values['activity_type'] and day and values['start_time'] and values['end_time']):
            continue

        slot = ClassSlot(unit_id=unit.id, day=day.strip(), **values)
        sig = slot.signature()
        if sig in seen:
            continue
        seen.add(sig)
        slots_to_add.append(slot)

    if slots_to_add:
        db.session.add_all(slots_to_add)
    logger.info('Stored %d classes for %s (teaching period %s)', len(slots_to_add), unit.code, teaching_period_id)
    return unit


def purge_stale_units(max_age_seconds: int) -> int:
    """Delete units fetched longer ago than max_age_seconds. Returns the count."""
    cutoff = datetime.utcnow() - timedelta(seconds=max_age_seconds)
    stale = Unit.query.filter(Unit.fetched_at < cutoff).all()
    for unit in stale:
        db.session.delete(unit)
    db.session.commit()
    if stale:
        logger.info('Purged %d stale units', len(stale))
    return len(stale)
