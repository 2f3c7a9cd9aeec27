"""
Handles all SocketIO event logic for the application.

This module centralizes the real-time communication between the editor plugin
and the server: submission and navigation requests, session listings and the
tracer controls. It is designed to be registered by the main app.py script.
"""

import logging
from typing import Callable

from flask import request
from flask_socketio import SocketIO
from pydantic import ValidationError

from bridge_agent import execute_action
from config import SESSION_LABEL_PREFIX
from data_models import ActionResult, BridgeRequest
from dispatcher import Dispatcher
from errors import BridgeError
from session_registry import SessionRegistry
from tracer import global_tracer, trace
from utils import sanitize_label


@trace
def make_signal_notifier(socketio: SocketIO) -> Callable[[str, str], None]:
    """
    Builds the callback the registry's signal watchers fire when a session
    touches its signal file. Every connected editor is told, since plots are
    not tied to one client.
    """
    def notify(label: str, path: str) -> None:
        logging.info(f"Signal from session '{label}': {path}")
        socketio.emit("plot_ready", {"session_label": label, "signal_file": path})
    return notify

@trace
def emit_result(socketio: SocketIO, result: ActionResult, client_id: str) -> None:
    """Sends an action result plus the cursor move or notification it implies."""
    socketio.emit("action_result", result.model_dump(mode="json"), to=client_id)
    if result.status == "error":
        socketio.emit("notification", {"type": "error", "kind": result.error_kind.value if result.error_kind else None, "message": result.message}, to=client_id)
    elif result.cursor_line is not None:
        socketio.emit("cursor_update", {"cursor_line": result.cursor_line, "recenter": result.recenter}, to=client_id)

@trace
def register_events(socketio: SocketIO, registry: SessionRegistry, dispatcher: Dispatcher):
    """
    Registers all SocketIO event handlers with the main application.

    The registry and dispatcher built by app.py are closed over by the
    handlers; nothing here keeps its own copy of session state.
    """

    @socketio.on("connect")
    @trace
    def handle_connect(auth=None) -> None:
        logging.info(f"Editor connected: {request.sid}")

    @socketio.on("disconnect")
    @trace
    def handle_disconnect(auth=None) -> None:
        # Sessions belong to documents, not connections, so they outlive the client.
        logging.info(f"Editor disconnected: {request.sid}")

    @socketio.on("bridge_request")
    @trace
    def handle_bridge_request(data: dict) -> None:
        """
        Validates an editor request, runs it through the action agent and
        reports the outcome back to the same client.
        """
        client_id = request.sid
        try:
            bridge_request = BridgeRequest.model_validate(data or {})
        except ValidationError as e:
            logging.warning(f"Rejected malformed bridge request from {client_id}: {e}")
            socketio.emit("notification", {"type": "error", "kind": None, "message": "Malformed request."}, to=client_id)
            return
        result = execute_action(bridge_request, registry, dispatcher)
        emit_result(socketio, result, client_id)

    @socketio.on("request_session_list")
    @trace
    def handle_session_list_request(auth=None) -> None:
        rows = [row.model_dump(mode="json") for row in registry.list()]
        socketio.emit("session_list_update", {"sessions": rows, "table": registry.format_table()}, to=request.sid)

    @socketio.on("spawn_session")
    @trace
    def handle_spawn_session(data: dict) -> None:
        """
        Starts a standalone session that documents can later be associated
        with, then sends the refreshed listing back.
        """
        name = (data or {}).get("label") or "console"
        label = f"{SESSION_LABEL_PREFIX}{sanitize_label(name)}"
        try:
            registry.spawn(label)
        except BridgeError as e:
            logging.warning(f"Could not spawn session '{label}': {e}")
            socketio.emit("notification", {"type": "error", "kind": e.kind.value, "message": e.notification}, to=request.sid)
            return
        rows = [row.model_dump(mode="json") for row in registry.list()]
        socketio.emit("session_list_update", {"sessions": rows, "table": registry.format_table()}, to=request.sid)

    @socketio.on("reset_tracer")
    @trace
    def handle_reset_tracer(data=None):
        logging.info("Received request to reset tracer.")
        global_tracer.reset()

    @socketio.on("get_trace_log")
    @trace
    def handle_get_trace_log(data=None):
        """Sends the accumulated call trace back to the requesting client."""
        logging.info("Received request to get trace log.")
        socketio.emit("trace_log_response", {"trace": global_tracer.get_trace()}, to=request.sid)
