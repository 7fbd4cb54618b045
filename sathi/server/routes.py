"""HTTP routes for the Sewa Sathi server.

Endpoints
---------
POST /message       Dispatch typed text exactly like a final transcript.
POST /listen        Start a recognition cycle.
POST /listen/stop   Stop listening and drop pending AI replies.
POST /speak/stop    Cancel current speech.
GET  /commands      Registered commands in registration order.
GET  /settings      Current settings.
POST /settings      Update settings (partial JSON object).
GET  /messages      Chat messages as Server-Sent Events (SSE).
DELETE /messages    Clear the chat log.
GET  /messages/history  Chat messages so far and the interim line.
GET  /actions       UI actions published by command handlers, as SSE.
GET  /health        Component availability and state.
"""

import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sse_starlette.sse import EventSourceResponse

from sathi.assistant import Assistant
from sathi.events.event_bus import EventBus

logger = logging.getLogger(__name__)

router = APIRouter()

_SSE_PING_INTERVAL = 15.0


class MessageRequest(BaseModel):
    text: str


def _get_assistant(request: Request) -> Assistant:
    """Retrieve the shared Assistant from application state."""
    return request.app.state.assistant


# ---------------------------------------------------------------------------
# POST /message
# ---------------------------------------------------------------------------


@router.post("/message")
async def post_message(body: MessageRequest, request: Request) -> dict:
    """Route typed text through the dispatch loop and return the outcome."""
    assistant = _get_assistant(request)
    outcome = await assistant.handle(body.text)
    return outcome.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Listening / speaking control
# ---------------------------------------------------------------------------


@router.post("/listen")
async def start_listening(request: Request) -> dict:
    assistant = _get_assistant(request)
    started = await assistant.start_listening()
    if not started:
        return {"status": "unsupported", "listening": False}
    return {"status": "ok", "listening": assistant.session.is_listening}


@router.post("/listen/stop")
async def stop_listening(request: Request) -> dict:
    assistant = _get_assistant(request)
    await assistant.stop_listening()
    return {"status": "ok", "listening": False}


@router.post("/speak/stop")
async def stop_speaking(request: Request) -> dict:
    assistant = _get_assistant(request)
    assistant.stop_speaking()
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Commands and settings
# ---------------------------------------------------------------------------


@router.get("/commands")
async def list_commands(request: Request) -> dict:
    assistant = _get_assistant(request)
    return {"commands": [info.model_dump() for info in assistant.registry.list()]}


@router.get("/settings")
async def get_settings(request: Request) -> dict:
    assistant = _get_assistant(request)
    return assistant.settings_store.settings.model_dump(mode="json")


@router.post("/settings")
async def update_settings(request: Request):
    """Apply a partial settings update.  Invalid values answer 422."""
    assistant = _get_assistant(request)
    try:
        changes = await request.json()
    except ValueError:
        return JSONResponse({"status": "error", "reason": "invalid json"}, status_code=400)
    if not isinstance(changes, dict):
        return JSONResponse({"status": "error", "reason": "expected an object"}, status_code=400)

    try:
        settings = await assistant.update_settings(**changes)
    except ValidationError as exc:
        return JSONResponse(
            {"status": "error", "reason": "invalid settings", "detail": exc.errors(include_url=False)},
            status_code=422,
        )
    except ValueError as exc:
        return JSONResponse({"status": "error", "reason": str(exc)}, status_code=422)
    return settings.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Chat log
# ---------------------------------------------------------------------------


@router.delete("/messages")
async def clear_messages(request: Request) -> dict:
    assistant = _get_assistant(request)
    assistant.clear_chat()
    return {"status": "ok"}


@router.get("/messages/history")
async def message_history(request: Request) -> dict:
    assistant = _get_assistant(request)
    return {
        "messages": [m.model_dump(mode="json") for m in assistant.chat_log.messages()],
        "interim": assistant.chat_log.interim,
    }


# ---------------------------------------------------------------------------
# Server-Sent Events
# ---------------------------------------------------------------------------


def _sse_stream(request: Request, bus: EventBus, event_name) -> EventSourceResponse:
    """Stream every item published on *bus* until the client disconnects."""

    async def _generate():
        queue = await bus.subscribe()
        try:
            while True:
                if await request.is_disconnected():
                    logger.debug("SSE client disconnected")
                    break
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=_SSE_PING_INTERVAL)
                except asyncio.TimeoutError:
                    yield {"comment": "ping"}
                    continue
                yield {"event": event_name(item), "data": item.model_dump_json()}
        except asyncio.CancelledError:
            logger.debug("SSE stream cancelled")
        finally:
            await bus.unsubscribe(queue)
            logger.debug("SSE subscriber cleaned up")

    return EventSourceResponse(_generate())


@router.get("/messages")
async def message_stream(request: Request) -> EventSourceResponse:
    """Stream chat messages; the SSE ``event`` is the message kind."""
    assistant = _get_assistant(request)
    return _sse_stream(request, assistant.message_bus, lambda message: message.kind.value)


@router.get("/actions")
async def action_stream(request: Request) -> EventSourceResponse:
    """Stream UI actions; the SSE ``event`` is the action kind."""
    assistant = _get_assistant(request)
    return _sse_stream(request, assistant.action_bus, lambda action: action.kind.value)


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request) -> dict:
    """Return component availability and state."""
    return _get_assistant(request).health()
