"""
WebSocket manager for real-time waitlist updates
"""

import json
import logging
from typing import Any, Dict, List
from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

class WebSocketManager:
    """Manages WebSocket connections for real-time updates"""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        """Accept WebSocket connection and register it for broadcasts"""
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        """Remove WebSocket connection"""
        try:
            self.active_connections.remove(websocket)
            logger.info(f"WebSocket disconnected. Remaining connections: {len(self.active_connections)}")
        except ValueError:
            # WebSocket was not in the list
            pass

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast(self, message: dict):
        """Broadcast message to every connected WebSocket"""
        # Create list copy to avoid modification during iteration
        connections = self.active_connections.copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)

        # Clean up disconnected websockets
        for websocket in disconnected:
            self.disconnect(websocket)

    async def publish(self, event: str, payload: Dict[str, Any]):
        """Broadcast a waitlist event to all observers"""
        await self.broadcast({"type": event, "data": payload})

    def get_connection_count(self) -> int:
        return len(self.active_connections)

# Router for WebSocket endpoints
router = APIRouter()

@router.websocket("/waitlist")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for waitlist updates and check-in signals"""
    manager: WebSocketManager = websocket.app.state.websocket_manager
    waitlist_service = websocket.app.state.waitlist_service

    await manager.connect(websocket)

    try:
        await manager.send_personal_message(
            {"type": "initialState", "data": waitlist_service.snapshot()},
            websocket
        )

        # Keep connection alive and handle incoming messages
        while True:
            data = await websocket.receive_text()

            try:
                client_message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from WebSocket: {data}")
                continue

            if not isinstance(client_message, dict):
                logger.warning(f"Unexpected WebSocket message: {data}")
                continue

            message_type = client_message.get("type")
            if message_type == "checkIn":
                await waitlist_service.check_in_party(client_message.get("partyId"))
            elif message_type == "ping":
                pong_message = {
                    "type": "pong",
                    "timestamp": client_message.get("timestamp")
                }
                await manager.send_personal_message(pong_message, websocket)
            else:
                logger.warning(f"Unknown WebSocket message type: {message_type}")

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        manager.disconnect(websocket)

@router.get("/stats")
async def websocket_stats(request: Request):
    """Get WebSocket connection statistics (for debugging)"""
    manager: WebSocketManager = request.app.state.websocket_manager
    return {"total_connections": manager.get_connection_count()}
