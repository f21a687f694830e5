import logging

import click
from flask import Flask
from models.database import init_app
from routes import units_bp, timetable_bp
from utils.unit_store import purge_stale_units


def configure_logging(level_name):
    """Configure root logging once; later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S%z',
    )


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object('config')
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize database and tables
    init_app(app)

    # Register blueprints
    app.register_blueprint(units_bp, url_prefix='/api/units')
    app.register_blueprint(timetable_bp, url_prefix='/api/timetable')

    @app.after_request
    def add_header(response):
        """Add headers to prevent caching."""
        response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        response.headers['Pragma'] = 'no-cache'
        response.headers['Expires'] = '0'
        return response

    @app.cli.command('purge-units')
    @click.option('--max-age', type=int, default=None, help='Maximum age in seconds.')
    def purge_units_command(max_age):
        """Delete stored unit data older than the cache TTL."""
        count = purge_stale_units(max_age if max_age is not None else app.config['UNIT_CACHE_TTL_SECONDS'])
        click.echo(f'Deleted {count} stale units.')

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=5000)
