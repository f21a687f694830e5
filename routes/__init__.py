from .units import units_bp
from .timetable import timetable_bp

__all__ = ['units_bp', 'timetable_bp']
