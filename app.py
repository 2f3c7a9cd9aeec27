"""
Main application bootstrap file.

This script initializes the Flask application and the SocketIO server, builds
the session registry and the dispatcher, and registers the web routes and
SocketIO event handlers. It is responsible for starting the server and
bringing all components of the bridge online.
"""
import atexit
import logging

import debugpy
from flask import Flask, Response, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

import events
from audit_logger import audit_log
from config import DEBUG_MODE, SERVER_PORT
from dispatcher import Dispatcher
from session_models import SessionConfig
from session_registry import SessionRegistry
from tracer import trace

# --- CONFIGURATION ---
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
app = Flask(__name__)
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode="eventlet")

# --- GLOBAL INITIALIZATION ---
registry = SessionRegistry(config=SessionConfig(), on_signal=events.make_signal_notifier(socketio))
dispatcher = Dispatcher(registry)
audit_log.register_socketio(socketio)
events.register_events(socketio, registry, dispatcher)


@trace
def shutdown() -> None:
    """Closes every R session and removes scratch files on exit."""
    logging.info("Shutting down: closing all R sessions.")
    registry.shutdown()
    dispatcher.cleanup()

atexit.register(shutdown)


# --- SERVER ROUTES ---
@app.route("/health")
@trace
def health():
    """Liveness probe for the editor plugin."""
    return jsonify({"status": "ok", "sessions": len(registry.list())})

@app.route("/sessions")
@trace
def sessions():
    """Plain-text session table, handy from a terminal."""
    return Response(registry.format_table() + "\n", mimetype="text/plain")


# --- MAIN EXECUTION ---
if __name__ == "__main__":
    if DEBUG_MODE:
        debugpy.listen(("0.0.0.0", 5678))
        app.logger.info("Debugpy server listening. Waiting for debugger to attach...")
        debugpy.wait_for_client()
        app.logger.info("Debugger attached.")

    registry.start_monitoring()
    app.logger.info(f"Starting R bridge server on http://127.0.0.1:{SERVER_PORT}")
    socketio.run(app, port=SERVER_PORT)
