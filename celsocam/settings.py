import os

# ---- Config ----
HOST = os.getenv("CELSOCAM_HOST", "0.0.0.0")
PORT = int(os.getenv("CELSOCAM_PORT", "8080"))
HEARTBEAT_SECONDS = float(os.getenv("CELSOCAM_HEARTBEAT_SECONDS", "30"))  # liveness probe interval
OUTBOX_SIZE = int(os.getenv("CELSOCAM_OUTBOX_SIZE", "256"))  # queued outbound messages per connection
STATIC_DIR = os.getenv("CELSOCAM_STATIC_DIR", "public")
LOG_LEVEL = os.getenv("CELSOCAM_LOG_LEVEL", "info")
RELOAD = os.getenv("CELSOCAM_DEBUG", "false").lower() == "true"
