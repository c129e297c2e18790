#!/usr/bin/env python3
"""
Startup script for the Celsocam relay
"""

import sys

import uvicorn

from . import settings


def main():
    """Main startup function"""
    host = settings.HOST
    port = settings.PORT

    print("📷 Starting Celsocam relay...")
    print(f"📍 Server will run on {host}:{port}")
    print(f"🔄 Auto-reload: {'enabled' if settings.RELOAD else 'disabled'}")
    print(f"💓 Heartbeat every {settings.HEARTBEAT_SECONDS:g}s")
    print(f"🌐 WebSocket endpoint: ws://{host}:{port}/ws")
    print(f"📊 API docs: http://{host}:{port}/docs")

    try:
        uvicorn.run(
            "celsocam.main:app",
            host=host,
            port=port,
            reload=settings.RELOAD,
            log_level=settings.LOG_LEVEL,
        )
    except KeyboardInterrupt:
        print("\n🛑 Server stopped by user")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
