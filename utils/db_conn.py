import os
import logging
import time
from typing import Optional
from flask import Flask
from dotenv import load_dotenv

from models import db

# Configure logging for database operations
logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "local"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


def _mysql_uri(prefix: str, defaults: dict) -> str:
    host = os.getenv(f"{prefix}_DB_HOST", defaults["host"])
    port = os.getenv(f"{prefix}_DB_PORT", defaults["port"])
    user = os.getenv(f"{prefix}_DB_USER", defaults["user"])
    password = os.getenv(f"{prefix}_DB_PASSWORD", defaults["password"])
    name = os.getenv(f"{prefix}_DB_NAME", defaults["name"])
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}"


def resolve_database_uri() -> str:
    """Pick the SQLAlchemy URI from the environment.

    DATABASE_URL wins when set. Otherwise ENVIRONMENT selects the LOCAL_DB_* or
    ONLINE_DB_* MySQL settings.
    """
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    environment = os.getenv("ENVIRONMENT", DEFAULT_ENVIRONMENT).lower()
    logger.info(f"Database environment: {environment}")
    if environment == "local":
        return _mysql_uri(
            "LOCAL",
            {
                "host": "localhost",
                "port": "3306",
                "user": "root",
                "password": "",
                "name": "course_portal",
            },
        )
    if environment in ("production", "online"):
        return _mysql_uri(
            "ONLINE",
            {
                "host": "localhost",
                "port": "3306",
                "user": "course_portal",
                "password": "",
                "name": "course_portal",
            },
        )
    raise ValueError(
        f"Invalid ENVIRONMENT value: {environment}. Must be 'local' or 'production'/'online'"
    )


def _engine_options(uri: str) -> dict:
    if uri.startswith("sqlite"):
        # worker threads of the concurrent loaders share the file database
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,  # Number of connections to maintain
        "max_overflow": 20,  # Additional connections beyond pool_size
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_pre_ping": True,  # Test connections before use
        "pool_timeout": 30,  # Connection timeout in seconds
        "connect_args": {
            "connect_timeout": 30,
            "read_timeout": 60,
            "write_timeout": 30,
        },
    }


class DatabaseConnection:
    """Handles database configuration, initialization, and health checks."""

    def __init__(self, app: Optional[Flask] = None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Configure SQLAlchemy and secrets on the Flask app."""
        self.app = app
        load_dotenv()
        logger.info("Environment variables loaded from .env file")

        db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or resolve_database_uri()
        app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
        app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", _engine_options(db_uri))
        if not app.config.get("SECRET_KEY"):
            app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
        app.config.setdefault("FETCH_MAX_WORKERS", int(os.getenv("FETCH_MAX_WORKERS", "4")))

        masked = db_uri
        password = os.getenv("LOCAL_DB_PASSWORD") or os.getenv("ONLINE_DB_PASSWORD")
        if password:
            masked = masked.replace(password, "***")
        logger.info(f"Database URI configured: {masked}")

        if "sqlalchemy" not in app.extensions:
            db.init_app(app)
            logger.info("Database initialized with Flask app")
        else:
            logger.info(
                "Database already initialized with Flask app - skipping re-initialization"
            )

    def test_connection(self, max_retries: int = 3) -> bool:
        """Test database connection with retry mechanism."""
        if self.app is None:
            logger.error("Database connection not initialized with Flask app")
            return False

        retry_delay = 1
        for attempt in range(max_retries):
            try:
                logger.info(
                    f"Testing database connection... (attempt {attempt + 1}/{max_retries})"
                )
                with self.app.app_context():
                    with db.engine.connect() as connection:
                        connection.execute(db.text("SELECT 1"))
                logger.info("Database connection successful")
                return True
            except Exception as e:
                logger.warning(f"Database connection failed (attempt {attempt + 1}): {str(e)}")
                if attempt < max_retries - 1:
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
        logger.error(f"Database connection failed after {max_retries} attempts")
        return False

    def create_tables(self) -> bool:
        """Create all database tables."""
        if self.app is None:
            logger.error("Database connection not initialized with Flask app")
            return False
        try:
            logger.info("Creating database tables...")
            with self.app.app_context():
                db.create_all()
            logger.info("Database tables created successfully")
            return True
        except Exception as e:
            logger.error(f"Database table creation failed: {str(e)}")
            return False

    def init_database(self) -> bool:
        """Test the connection and create tables if they don't exist."""
        logger.info("Starting database initialization...")
        if not self.test_connection():
            return False
        return self.create_tables()


# Global database connection instance
db_conn = DatabaseConnection()
