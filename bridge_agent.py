"""
Provides the action execution layer of the bridge.

Every editor request names one BridgeAction; this module dispatches it to the
matching handler via ACTION_REGISTRY. Handlers compose the boundary detector,
the chunk locator, the registry and the dispatcher, and every execution
returns a standardized ActionResult, so no failure ever escapes the request
that triggered it.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict

import boundary_detector
from chunk_locator import ChunkLocator
from data_models import ActionResult, BridgeAction, BridgeRequest, DocumentKind, EditingContext
from dispatcher import Dispatcher
from errors import BridgeError, EmptySelection, NoChunkFound, SessionUnavailable
from session_registry import SessionRegistry
from tracer import trace


@dataclass
class ActionContext:
    """A container for passing stateful objects to action handlers."""
    registry: SessionRegistry
    dispatcher: Dispatcher


# --- Navigation ---
@trace
def navigate(request: BridgeRequest, direction: str) -> EditingContext:
    """
    Moves a copy of the request's cursor to the next or previous chunk. The
    original context is only replaced by the caller once this succeeds.

    Raises:
        NoChunkFound: There is no chunk in that direction.
    """
    context = request.to_context()
    locator = ChunkLocator(request.lines)
    if direction == "next":
        boundary = locator.next(context.cursor_line)
    else:
        boundary = locator.previous(context.cursor_line)
    return context.model_copy(update={"cursor_line": boundary.start_line})


# --- Action Handlers ---
@trace
def _handle_send_smart(request: BridgeRequest, context: ActionContext) -> ActionResult:
    """
    Sends the block, chain or line under the cursor. In a literate document
    only chunk code is sendable, and a unit never runs past its chunk.
    """
    editing = request.to_context()
    if editing.kind != DocumentKind.LITERATE or not request.lines:
        unit = boundary_detector.resolve_unit(request.lines, editing.cursor_line)
        return context.dispatcher.submit(editing, unit, request.lines, request.stay)

    locator = ChunkLocator(request.lines)
    cursor = min(editing.cursor_line, len(request.lines))
    bounds = locator.chunk_bounds(cursor)
    if cursor == bounds.start_line:
        # On a start fence the whole chunk is the natural unit.
        unit = locator.current_chunk(cursor)
        return context.dispatcher.submit(editing, unit, request.lines, request.stay)
    if cursor == bounds.end_line:
        raise NoChunkFound("cursor is on a chunk's end fence")

    offset = bounds.start_line
    body_end = bounds.end_line - 1 if bounds.end_line is not None else len(request.lines)
    unit = boundary_detector.resolve_unit(request.lines[offset:body_end], cursor - offset)
    unit = unit.model_copy(update={"start_line": unit.start_line + offset, "end_line": unit.end_line + offset})
    return context.dispatcher.submit(editing, unit, request.lines, request.stay)

@trace
def _handle_send_line(request: BridgeRequest, context: ActionContext) -> ActionResult:
    unit = boundary_detector.resolve_single_line(request.lines, request.cursor_line)
    return context.dispatcher.submit(request.to_context(), unit, request.lines, request.stay)

@trace
def _handle_send_selection(request: BridgeRequest, context: ActionContext) -> ActionResult:
    if request.selection is None:
        raise EmptySelection("no selection was given")
    unit = boundary_detector.resolve_selection(request.lines, request.selection)
    return context.dispatcher.submit(request.to_context(), unit, request.lines, request.stay)

@trace
def _handle_send_chunk(request: BridgeRequest, context: ActionContext) -> ActionResult:
    unit = ChunkLocator(request.lines).current_chunk(request.cursor_line)
    return context.dispatcher.submit(request.to_context(), unit, request.lines, request.stay)

@trace
def _handle_send_previous_chunks(request: BridgeRequest, context: ActionContext) -> ActionResult:
    unit = ChunkLocator(request.lines).previous_chunks_unit(request.cursor_line)
    return context.dispatcher.submit(request.to_context(), unit, request.lines, request.stay)

@trace
def _handle_next_chunk(request: BridgeRequest, context: ActionContext) -> ActionResult:
    moved = navigate(request, "next")
    return ActionResult(status="success", message="Moved to next chunk.", cursor_line=moved.cursor_line, recenter=True)

@trace
def _handle_previous_chunk(request: BridgeRequest, context: ActionContext) -> ActionResult:
    moved = navigate(request, "previous")
    return ActionResult(status="success", message="Moved to previous chunk.", cursor_line=moved.cursor_line, recenter=True)

@trace
def _handle_list_sessions(request: BridgeRequest, context: ActionContext) -> ActionResult:
    rows = context.registry.list()
    return ActionResult(
        status="success",
        message=context.registry.format_table(),
        content=[row.model_dump(mode="json") for row in rows],
    )

@trace
def _handle_associate_session(request: BridgeRequest, context: ActionContext) -> ActionResult:
    if not request.session_label:
        raise SessionUnavailable("no session label given")
    session = context.registry.force_associate(request.to_context(), request.session_label)
    return ActionResult(status="success", message=f"'{request.document}' now sends to {session.label}.")

@trace
def _handle_close_session(request: BridgeRequest, context: ActionContext) -> ActionResult:
    target = request.session_label or request.to_context()
    label = context.registry.close(target)
    return ActionResult(status="success", message=f"Session {label} closed.")


# --- Action Registry (Strategy Pattern) ---
ACTION_REGISTRY: Dict[BridgeAction, Callable[[BridgeRequest, ActionContext], ActionResult]] = {
    BridgeAction.SEND_SMART: _handle_send_smart,
    BridgeAction.SEND_LINE: _handle_send_line,
    BridgeAction.SEND_SELECTION: _handle_send_selection,
    BridgeAction.SEND_CHUNK: _handle_send_chunk,
    BridgeAction.SEND_PREVIOUS_CHUNKS: _handle_send_previous_chunks,
    BridgeAction.NEXT_CHUNK: _handle_next_chunk,
    BridgeAction.PREVIOUS_CHUNK: _handle_previous_chunk,
    BridgeAction.LIST_SESSIONS: _handle_list_sessions,
    BridgeAction.ASSOCIATE_SESSION: _handle_associate_session,
    BridgeAction.CLOSE_SESSION: _handle_close_session,
}

_missing = set(BridgeAction) - set(ACTION_REGISTRY)
if _missing:
    raise RuntimeError(f"Actions without a handler: {sorted(a.value for a in _missing)}")


# --- Core Execution Logic ---
@trace
def execute_action(
    request: BridgeRequest,
    registry: SessionRegistry,
    dispatcher: Dispatcher,
) -> ActionResult:
    """
    Executes an editor request by dispatching to the appropriate handler.
    Bridge errors become a notification for the user; anything unexpected is
    logged and reported as a generic failure.
    """
    handler = ACTION_REGISTRY[request.action]
    context = ActionContext(registry=registry, dispatcher=dispatcher)
    try:
        return handler(request, context)
    except BridgeError as e:
        logging.info(f"Action '{request.action.value}' failed: {e.kind.value}: {e}")
        return ActionResult(status="error", message=e.notification, error_kind=e.kind)
    except Exception as e:
        logging.error(f"Error in execute_action dispatch for action '{request.action.value}': {e}", exc_info=True)
        return ActionResult(status="error", message=f"An internal error occurred: {e}")
