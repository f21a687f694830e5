from datetime import datetime
from .database import db


class Unit(db.Model):
    """A unit offered in one teaching period, with its stored candidate classes."""
    
    __tablename__ = 'units'
    __table_args__ = (db.UniqueConstraint('code', 'teaching_period_id', name='uq_unit_period'),)
    
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False, index=True)  # e.g., "CAB202"
    teaching_period_id = db.Column(db.String(20), nullable=False)  # e.g., "621052"
    name = db.Column(db.String(200), nullable=True)
    fetched_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    # Relationship to candidate classes
    classes = db.relationship('ClassSlot', backref='unit', lazy='dynamic', cascade="all, delete-orphan")
    
    def __repr__(self):
        return f'<Unit {self.code} ({self.teaching_period_id})>'
    
    def to_dict(self):
        return {
            'id': self.id,
            'unitCode': self.code,
            'unitName': self.name,
            'teachingPeriodId': self.teaching_period_id,
            'fetchedAt': self.fetched_at.isoformat() if self.fetched_at else None,
            'classCount': self.classes.count()
        }
