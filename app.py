from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState
from routers.rooms import rooms_router
from backend import signaling_backend
from constants import ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL, WS_PATH
from logging_config import get_logger, setup_logging
import asyncio

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="RoomRelay")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info(f"FastAPI application initialized (ws path: {WS_PATH}, origins: {ALLOWED_ORIGINS})")


@app.get("/health")
async def health():
    rooms = signaling_backend.directory.rooms()
    return {"status": "ok", "connections": len(signaling_backend.registry), "rooms": len(rooms)}


def origin_allowed(origin) -> bool:
    """Browsers always send Origin; clients without one (scripts, the headless client) are let through."""
    if origin is None or "*" in ALLOWED_ORIGINS:
        return True
    return origin in ALLOWED_ORIGINS


@app.websocket(WS_PATH)
async def websocket_endpoint(websocket: WebSocket):
    """Signaling endpoint. One connection context per socket, torn down when the socket closes.

    Inbound frames are handled strictly in order; outbound frames go through the
    connection's queue and a dedicated writer task.
    """
    origin = websocket.headers.get("origin")
    if not origin_allowed(origin):
        logger.warning(f"WebSocket connection rejected: origin {origin} not allowed")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    await websocket.accept()
    connection = signaling_backend.connect()
    writer = asyncio.create_task(connection.pump(websocket.send_text))

    try:
        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            data = message.get("text")
            if data is None:
                # binary frame: treated as UTF-8 JSON like a text frame
                data = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection.id}")
            signaling_backend.handle_frame(connection, data)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected for connection {connection.id} (code {e.code})")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
    finally:
        signaling_backend.disconnect(connection)

        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass

        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
