import asyncio
import logging
import os
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import __version__, settings
from .hub import Hub

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter()


def get_hub(request: Request) -> Hub:
    return request.app.state.hub


# ------------------ REST API ------------------

@router.get("/")
async def root(request: Request):
    return {
        "message": "Celsocam signaling relay",
        "version": __version__,
        "status": "running",
        "connections": len(get_hub(request).registry),
    }


@router.get("/health")
async def health_check(request: Request):
    hub = get_hub(request)
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "androidConnected": hub.producer_connected,
        "browserConnected": hub.viewer_connected,
    }


@router.get("/api/connections")
async def list_connections(request: Request):
    """Every live connection with its role and heartbeat state"""
    return {"connections": get_hub(request).connections_view()}


@router.get("/api/config")
async def get_config(request: Request):
    hub = get_hub(request)
    logger.info(f"GET /api/config -> android={hub.producer_connected} browser={hub.viewer_connected}")
    return hub.config_view()


@router.post("/api/config")
async def post_config(request: Request):
    """Merge a partial capture config and push it to the producer"""
    try:
        body = await request.json()
    except ValueError:
        logger.warning("POST /api/config with undecodable body")
        return {"ok": False}
    if not isinstance(body, dict):
        logger.warning(f"POST /api/config expected an object, got {type(body).__name__}")
        return {"ok": False}

    get_hub(request).relay.update_config(body)
    return {"ok": True}


@router.get("/api/caps")
async def get_caps(request: Request):
    hub = get_hub(request)
    logger.info(f"GET /api/caps cameras={len(hub.caps.get().cameras)}")
    return hub.caps_view()


@router.post("/api/caps/refresh")
async def refresh_caps(request: Request):
    """Ask the producer to report its capabilities again"""
    if not get_hub(request).relay.request_capabilities():
        raise HTTPException(status_code=404, detail="Producer not connected")
    return {"ok": True}


# ------------------ WebSocket ------------------

@router.websocket("/ws")
@router.websocket("/")
async def websocket_endpoint(websocket: WebSocket):
    hub: Hub = websocket.app.state.hub
    await websocket.accept()
    conn = hub.connect(websocket)
    client = websocket.client
    logger.info(f"WebSocket WS#{conn.id} established from {client.host if client else '?'}")

    pump = conn.start_pump()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is not None:
                hub.relay.handle(conn.id, data)
    except WebSocketDisconnect:
        logger.info(f"WS#{conn.id} disconnected")
    except Exception as e:
        logger.error(f"WebSocket error for WS#{conn.id}: {e}")
    finally:
        hub.disconnect(conn.id)
        if not pump.done():
            pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)


# ------------------ app ------------------

def create_app(heartbeat_seconds: Optional[float] = None,
               outbox_size: Optional[int] = None,
               static_dir: Optional[str] = None) -> FastAPI:
    app = FastAPI(
        title="Celsocam Relay",
        description="Signaling relay and capture config sync between a camera phone and a viewer",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.hub = Hub(
        heartbeat_seconds=heartbeat_seconds if heartbeat_seconds is not None else settings.HEARTBEAT_SECONDS,
        outbox_size=outbox_size if outbox_size is not None else settings.OUTBOX_SIZE,
    )
    app.include_router(router)

    static_dir = static_dir if static_dir is not None else settings.STATIC_DIR
    if static_dir and os.path.isdir(static_dir):
        app.mount("/ui", StaticFiles(directory=static_dir, html=True), name="ui")
        logger.info(f"Serving static UI from {static_dir} at /ui")

    @app.on_event("startup")
    async def startup_event():
        logger.info("Celsocam relay starting up...")
        app.state.hub.monitor.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.hub.monitor.stop()
        logger.info("Celsocam relay shutting down...")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "celsocam.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL,
    )
