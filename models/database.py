from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

def init_app(app):
    """Bind the database to the app and make sure the unit tables exist."""
    db.init_app(app)
    # Model imports register the tables before create_all
    from .unit import Unit
    from .class_slot import ClassSlot

    with app.app_context():
        db.create_all()
