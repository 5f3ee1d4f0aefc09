"""
WebSocket route for dispatcher sessions

Connect: ws://host/ws/dispatch?client_id=xxx

Messages:
- client sends: {"action": "subscribe|unsubscribe|ping", "incident_ids": [...]}
- server pushes lifecycle events: {"type": "AMBULANCE_UPDATE", "incident_id": "...", ...}
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/dispatch")
async def dispatch_websocket(
    websocket: WebSocket,
    client_id: str = Query(..., description="Unique client identifier"),
):
    """
    Dispatcher event stream

    Without a subscription the client receives events for every incident.
    Supported actions:
    - subscribe: only receive events for the given incident ids
    - unsubscribe: stop watching the given incident ids
    - ping: heartbeat, answered with {"type": "pong"}
    """
    ws_manager = websocket.app.state.container.ws_manager
    await ws_manager.connect(websocket, client_id)

    try:
        while True:
            data = await websocket.receive_json()
            action = data.get("action")

            if action == "subscribe":
                watching = ws_manager.subscribe(client_id, data.get("incident_ids", []))
                await websocket.send_json({"type": "subscribed", "incident_ids": watching})

            elif action == "unsubscribe":
                watching = ws_manager.unsubscribe(client_id, data.get("incident_ids", []))
                await websocket.send_json({"type": "unsubscribed", "incident_ids": watching})

            elif action == "ping":
                await ws_manager.heartbeat(client_id)

            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        ws_manager.disconnect(client_id, websocket)
    except Exception as e:
        logger.error(f"WebSocket error for {client_id}: {e}")
        ws_manager.disconnect(client_id, websocket)
