#!/usr/bin/env python3
"""
Flask Web Application for the Trade Journal

Main application entry point: trade table and editor, infinite-scroll feed,
risk/structure statistics and the JSON API used by the feed and the
Telegram bot.
"""

import logging
import os

import click
from flask import Flask, render_template, jsonify
from flask_wtf.csrf import CSRFProtect

from journal_app.config import get_config
from journal_app.models import db

logger = logging.getLogger(__name__)

# Initialize Flask extensions
csrf = CSRFProtect()


def create_app(config_name=None):
    """Application factory pattern for Flask app creation"""
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Initialize extensions
    db.init_app(app)
    csrf.init_app(app)

    # Register blueprints
    from journal_app.blueprints.trades import trades_bp
    from journal_app.blueprints.stats import stats_bp
    from journal_app.blueprints.api import api_bp

    app.register_blueprint(trades_bp, url_prefix='/')
    app.register_blueprint(stats_bp, url_prefix='/stats')
    app.register_blueprint(api_bp, url_prefix='/api')

    # Webhook and upload callers cannot send a CSRF token
    csrf.exempt(api_bp)

    with app.app_context():
        db.create_all()

    # Global error handlers
    @app.errorhandler(404)
    def not_found_error(error):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return render_template('errors/500.html'), 500

    # API health check
    @app.route('/api/health')
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({
            'status': 'healthy',
            'app': 'Trade Journal',
            'version': '1.0.0'
        })

    @app.cli.command('init-db')
    def init_db_command():
        """Create the trades table if it does not exist"""
        db.create_all()
        click.echo('Initialized the trade journal database.')

    logger.info(f"Trade Journal app created ({config_class.__name__})")
    return app


if __name__ == '__main__':
    app = create_app()

    # Development server
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    port = int(os.getenv('FLASK_PORT', 5000))

    print("\n" + "=" * 60)
    print("Trade Journal - Flask Web Interface")
    print("=" * 60)
    print(f"Trades:    http://localhost:{port}/")
    print(f"Stream:    http://localhost:{port}/stream")
    print(f"Risk:      http://localhost:{port}/stats")
    print(f"Structure: http://localhost:{port}/stats/structure")
    print("=" * 60)

    app.run(
        host='0.0.0.0',  # Allow external connections
        port=port,
        debug=debug_mode,
        use_reloader=debug_mode
    )
