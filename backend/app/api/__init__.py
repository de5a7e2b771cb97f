from flask import Flask
from .auth import auth_bp
from .organizations import organizations_bp
from .managers import managers_bp
from .workers import workers_bp
from .jobs import jobs_bp
from .geocode import geocode_bp
from .clock import clock_bp
from .amendments import amendments_bp
from .overtime import overtime_bp
from .expenses import expenses_bp
from .reports import reports_bp
from .subscription import subscription_bp
from .notifications import notifications_bp
from .dashboard import dashboard_bp

def register_blueprints(app: Flask):
    """Register all API blueprints."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(organizations_bp)
    app.register_blueprint(managers_bp)
    app.register_blueprint(workers_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(geocode_bp)
    app.register_blueprint(clock_bp)
    app.register_blueprint(amendments_bp)
    app.register_blueprint(overtime_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(subscription_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(dashboard_bp)
