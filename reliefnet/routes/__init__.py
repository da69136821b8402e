"""Routes package for the ReliefNet application."""


def register_routes(app):
    """Register all route blueprints with the application."""
    from .auth import auth_bp
    from .reports import reports_bp
    from .donations import donations_bp
    from .admin import admin_bp
    from .chat import chat_bp
    from .i18n import i18n_bp
    from .weather import weather_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')
    app.register_blueprint(donations_bp, url_prefix='/api/donations')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(chat_bp, url_prefix='/api/chat')
    app.register_blueprint(i18n_bp, url_prefix='/api/i18n')
    app.register_blueprint(weather_bp, url_prefix='/api/weather')
