"""WebSocket endpoint for real-time diagnostics streaming."""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

import structlog

from rasa_xref.services.event_bus import DIAGNOSTICS_CHANNEL, event_bus

logger = structlog.get_logger()

router = APIRouter()


@router.websocket("/ws/diagnostics")
async def diagnostics_websocket(websocket: WebSocket):
    """WebSocket connection for streaming validation events.

    Protocol:
        Server → Client: JSON events (validation_started, validation_completed,
            diagnostics_published, error)
        Client → Server: JSON commands (ping, validate)

    Reconnection:
        On connect, server sends the recent event history so a reconnecting
        editor can redraw its diagnostics straight away.
    """
    await websocket.accept()
    logger.info("ws_connected", channel=DIAGNOSTICS_CHANNEL)

    validation_service = websocket.app.state.validation_service

    async def ws_listener(event: dict):
        await websocket.send_json(event)

    event_bus.subscribe(DIAGNOSTICS_CHANNEL, ws_listener)

    try:
        history = event_bus.get_history(DIAGNOSTICS_CHANNEL)
        if history:
            await websocket.send_json({
                "type": "event_history",
                "events": history,
                "count": len(history),
            })

        while True:
            try:
                data = await websocket.receive_text()
                message = json.loads(data)
                msg_type = message.get("type") if isinstance(message, dict) else None

                if msg_type == "ping":
                    await websocket.send_json({"type": "pong"})

                elif msg_type == "validate":
                    logger.info("ws_validate_requested")
                    paths = message.get("paths")
                    if not isinstance(paths, list):
                        paths = []
                    validation_service.on_files_changed([p for p in paths if isinstance(p, str)])
                    await websocket.send_json({
                        "type": "info",
                        "message": "Validation scheduled",
                        "enabled": validation_service.enabled,
                    })

                else:
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Unknown message type: {msg_type}",
                    })

            except WebSocketDisconnect:
                break
            except json.JSONDecodeError:
                await websocket.send_json({
                    "type": "error",
                    "message": "Invalid JSON",
                })

    except WebSocketDisconnect:
        pass
    finally:
        event_bus.unsubscribe(DIAGNOSTICS_CHANNEL, ws_listener)
        logger.info("ws_disconnected", channel=DIAGNOSTICS_CHANNEL)
