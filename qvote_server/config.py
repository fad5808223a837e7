import os

HOST = os.environ.get("QVOTE_HOST", "127.0.0.1")
PORT = int(os.environ.get("QVOTE_PORT", "5000"))

# Shared secret presented by Mudamos on the signing callback
APP_SECRET = os.environ.get("APP_SECRET", "")

MUDAMOS_API_URL = os.environ.get("MUDAMOS_API_URL", "")
MUDAMOS_API_TOKEN = os.environ.get("MUDAMOS_API_TOKEN", "")
MUDAMOS_TIMEOUT = 30

# JSON file backing the voter store; empty keeps everything in memory
DATA_PATH = os.environ.get("QVOTE_DATA_PATH", "")

ASYNC_MODE = os.environ.get("QVOTE_ASYNC_MODE", "eventlet")
BROADCAST_INTERVAL = 1
