"""
Application Entry Point
Initializes and runs the Flask application with background services
"""

import os
import logging
import click
from fleamarket import create_app
from fleamarket.models import db
from fleamarket.services.expiry_service import ExpiryService

# Determine configuration environment
config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

# Setup logging
os.makedirs(app.config['LOG_FOLDER'], exist_ok=True)

logging.basicConfig(
    level=getattr(logging, app.config['LOG_LEVEL']),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(os.path.join(app.config['LOG_FOLDER'], 'app.log')),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


@app.shell_context_processor
def make_shell_context():
    """Make database and models available in Flask shell"""
    from fleamarket import models
    return {
        'db': db,
        'User': models.User,
        'Store': models.Store,
        'Product': models.Product,
        'Client': models.Client,
        'Sale': models.Sale,
        'Apartado': models.Apartado,
        'CashClose': models.CashClose,
        'Promotion': models.Promotion,
    }


@app.cli.command()
@click.option('--email', default='admin@fleamarket.mx', help='Admin email')
@click.option('--password', default='admin123', help='Admin password')
def init_db(email, password):
    """Initialize the database with tables and a default admin"""
    logger.info("Initializing database...")
    db.create_all()

    from fleamarket.models import User

    if not User.query.filter_by(role='admin').first():
        admin = User(email=email, name='Administrador', role='admin', is_active=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        logger.info(f"Default admin user created ({email})")

    logger.info("Database initialized successfully!")


@app.cli.command()
def create_sample_data():
    """Create a sample store, seller and catalog"""
    from fleamarket.models import Store, User, Product

    logger.info("Creating sample data...")
    store = Store.query.first()
    if store is None:
        store = Store(name='Tienda Centro', address='Av. Juárez 100', phone='555-0100',
                      ticket_footer='Gracias por su compra')
        db.session.add(store)
        db.session.flush()

    if not User.query.filter_by(email='vendedor@fleamarket.mx').first():
        seller = User(email='vendedor@fleamarket.mx', name='Vendedor Centro', role='seller',
                      schedule_type='weekday', store_id=store.id)
        seller.set_password('vendedor123')
        db.session.add(seller)

    samples = [
        ('Chamarra de mezclilla', 'Ropa', 450, 200, 'ROP-001', 10),
        ('Blusa bordada', 'Ropa', 280, 120, 'ROP-002', 15),
        ('Bolsa de piel', 'Accesorios', 650, 300, 'ACC-001', 5),
        ('Lentes de sol', 'Accesorios', 180, 60, 'ACC-002', 20),
        ('Tenis deportivos', 'Calzado', 890, 450, 'CAL-001', 8),
    ]
    for name, category, price, cost, sku, stock in samples:
        if not Product.query.filter_by(sku=sku).first():
            db.session.add(Product(name=name, category=category, price=price, cost=cost,
                                   sku=sku, stock=stock))
    db.session.commit()
    logger.info("Sample data created successfully!")


@app.cli.command()
def expire_apartados():
    """Manually run the apartado expiry sweep"""
    logger.info("Starting expiry sweep...")
    results = ExpiryService(app).sweep()
    logger.info(f"Expiry sweep completed: {results}")


def start_background_services():
    """Start the scheduled apartado expiry sweep"""
    if app.config['APARTADO_SWEEP_ENABLED']:
        ExpiryService(app).start_scheduler()
        logger.info("Expiry service started")


if __name__ == '__main__':
    is_dev = os.environ.get('FLASK_ENV', 'development') == 'development'
    use_reloader = os.environ.get('FLASK_USE_RELOADER', 'true').lower() == 'true'

    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

        # Only once when the reloader spawns a child process
        if not use_reloader or os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
            start_background_services()

    logger.info(f"Starting {app.config['BUSINESS_NAME']} POS System...")
    logger.info(f"Debug mode: {is_dev}, Auto-reload: {use_reloader}")

    app.run(
        host='0.0.0.0',
        port=5001,
        debug=is_dev,
        use_reloader=use_reloader
    )
