from .database import db


class ClassSlot(db.Model):
    """One stored offering of a unit activity (day, time, location)."""
    
    __tablename__ = 'class_slots'
    
    id = db.Column(db.Integer, primary_key=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False)
    activity_type = db.Column(db.String(50), nullable=False)  # e.g., "Lecture", "Practical Virtual"
    day = db.Column(db.String(10), nullable=False)  # e.g., "Monday"
    start_time = db.Column(db.String(10), nullable=False)  # e.g., "9:00am"
    end_time = db.Column(db.String(10), nullable=False)
    location = db.Column(db.String(100), default='')
    description = db.Column(db.String(200), default='')  # e.g., "PRC01 (Weeks 2-13)"
    teaching_staff = db.Column(db.String(200), default='')
    class_title = db.Column(db.String(200), default='')
    
    def __repr__(self):
        return f'<ClassSlot {self.activity_type} {self.day} {self.start_time}-{self.end_time}>'
    
    def signature(self):
        """Fields that identify the same real-world class."""
        return (self.activity_type, self.day, self.start_time, self.end_time,
                self.location or '', self.description or '')
    
    def to_dict(self):
        return {
            'unitCode': self.unit.code if self.unit else '',
            'activityType': self.activity_type,
            'dayFormatted': self.day,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'location': self.location or '',
            'class': self.description or '',
            'teachingStaff': self.teaching_staff or '',
            'classTitle': self.class_title or ''
        }
