"""
Flask Application Factory
Initializes and configures the Flea Market POS application
"""

import os
from flask import Flask, jsonify, redirect, request
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from config import config
from fleamarket.errors import FleaMarketError
from fleamarket.models import db, User

# Initialize extensions
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name='default'):
    """
    Application factory pattern
    Creates and configures Flask application
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Validate secret key in production
    if config_name == 'production':
        if not app.config.get('SECRET_KEY') or app.config['SECRET_KEY'] == 'dev-secret-key-change-in-production':
            raise ValueError("Production requires a secure SECRET_KEY. Set it via environment variable.")
        if len(app.config['SECRET_KEY']) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters for production.")

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    # Initialize Sentry if configured
    if app.config.get('SENTRY_DSN'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=config_name
        )
        app.logger.info("Sentry error tracking initialized")

    # Configure login manager
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.login_message_category = 'info'

    @login_manager.user_loader
    def load_user(user_id):
        """Load user by ID for Flask-Login"""
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from fleamarket.utils.permissions import wants_json
        if wants_json():
            return jsonify({'error': 'Authentication required'}), 401
        return redirect(f"/login?next={request.path}")

    os.makedirs(app.config['LOG_FOLDER'], exist_ok=True)

    # Register blueprints
    from fleamarket.routes.auth import bp as auth_bp
    app.register_blueprint(auth_bp)

    from fleamarket.routes.client_portal import bp as client_portal_bp
    app.register_blueprint(client_portal_bp, url_prefix='/client')

    # Admin area
    from fleamarket.routes.admin import bp as admin_bp
    app.register_blueprint(admin_bp, url_prefix='/admin')

    from fleamarket.routes.reports import bp as reports_bp
    app.register_blueprint(reports_bp, url_prefix='/admin/reports')

    from fleamarket.routes.promotions import bp as promotions_bp
    app.register_blueprint(promotions_bp, url_prefix='/admin/promotions')

    # Store area
    from fleamarket.routes.checkout import bp as checkout_bp
    app.register_blueprint(checkout_bp, url_prefix='/store')

    from fleamarket.routes.sales import bp as sales_bp
    app.register_blueprint(sales_bp, url_prefix='/store/sales')

    from fleamarket.routes.apartados import bp as apartados_bp
    app.register_blueprint(apartados_bp, url_prefix='/store/apartados')

    from fleamarket.routes.products import bp as products_bp
    app.register_blueprint(products_bp, url_prefix='/store/products')

    from fleamarket.routes.clients import bp as clients_bp
    app.register_blueprint(clients_bp, url_prefix='/store/clients')

    from fleamarket.routes.store_config import bp as store_config_bp
    app.register_blueprint(store_config_bp, url_prefix='/store/config')

    from fleamarket.routes.promotions import store_bp as store_promotions_bp
    app.register_blueprint(store_promotions_bp, url_prefix='/store/promotions')

    @app.route('/')
    def index():
        """Send users to the home of their role"""
        from flask_login import current_user
        if current_user.is_authenticated:
            return redirect(current_user.home_path)
        return redirect('/login')

    # Error handlers
    @app.errorhandler(FleaMarketError)
    def domain_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'success': False, 'error': 'Too many requests, try again later'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    # CSRF error handler - returns JSON
    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({
            'success': False,
            'error': 'CSRF token missing or invalid',
            'message': 'Fetch a token from /me and send it in the X-CSRFToken header'
        }), 400

    # Request hooks
    @app.before_request
    def before_request():
        """Resolve the working store for authenticated users"""
        from flask import session
        from flask_login import current_user
        session.permanent = True

        if current_user.is_authenticated:
            from fleamarket.utils.store_context import set_store_context
            set_store_context()

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        return response

    return app
