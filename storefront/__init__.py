from flask import Flask, jsonify

from .extensions import db, jwt, cors, migrate


def create_app(config_object=None, payment_gateway=None):
    """Application factory.

    ``payment_gateway`` replaces the Stripe-backed gateway (tests pass a fake).
    """
    from .config import Config

    config_object = config_object or Config
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    config_object.init_app(app)

    from .logs import configure_logging
    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}})
    migrate.init_app(app, db)

    from .errors import register_error_handlers
    register_error_handlers(app)

    from .services import init_services
    services = init_services(app, gateway=payment_gateway)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .payment import bp as payment_bp; app.register_blueprint(payment_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401  (register tables)
        db.create_all()

    if app.config.get("PAYMENT_SYNC_AUTOSTART"):
        services.scheduler.start(app)

    return app
