from .database import db
from .unit import Unit
from .class_slot import ClassSlot

__all__ = ['db', 'Unit', 'ClassSlot']
