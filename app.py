import logging
import os
import sys
from flask import Flask, jsonify
from flask_socketio import SocketIO
from flask_wtf.csrf import CSRFProtect, generate_csrf

from utils.db_conn import db_conn
from utils.live import initialize_live, register_socketio_handlers

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)

# Database, secret key and worker pool size come from the environment (.env)
db_conn.init_app(app)

# Initialize CSRF protection
csrf = CSRFProtect(app)

# Initialize SocketIO
socketio = SocketIO(app, cors_allowed_origins="*")

# Initialize live helpers and register Socket.IO handlers
initialize_live(socketio, logger)
register_socketio_handlers(socketio)


@app.route("/api/csrf-token", methods=["GET"])
def get_csrf_token():
    """Hand the CSRF token to API clients for use in the X-CSRFToken header."""
    return jsonify({"csrf_token": generate_csrf()})


# Register blueprints
from blueprints.compute_routes import compute_bp
from blueprints.attendance_routes import attendance_bp
from blueprints.statistics_routes import statistics_bp
from blueprints.reports_routes import reports_bp
from blueprints.student_routes import student_bp

app.register_blueprint(compute_bp)
app.register_blueprint(attendance_bp)
app.register_blueprint(statistics_bp)
app.register_blueprint(reports_bp)
app.register_blueprint(student_bp)


def run_startup_checks_or_exit():
    """Check database connectivity and create missing tables; exit on failure."""
    logger.info("Running startup checks...")
    if not db_conn.init_database():
        logger.error("Startup checks failed. Aborting launch.")
        sys.exit(1)
    logger.info("All systems green. Starting server...")


if __name__ == "__main__":
    logger.info("Application startup initiated")
    run_startup_checks_or_exit()
    debug = os.getenv("FLASK_DEBUG", "1") == "1"
    socketio.run(
        app,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
        debug=debug,
        use_reloader=debug,
    )
