import os

DEFAULT_WS_PATH = "/websocket/"
DEFAULT_WS_PATH_TEST = "/websocket-test/"
DEFAULT_API_PATH = "/webhook/"
DEFAULT_API_PATH_TEST = "/webhook-test/"

WS_PATH = os.getenv("WS_PATH", DEFAULT_WS_PATH)
WS_PATH_TEST = os.getenv("WS_PATH_TEST", DEFAULT_WS_PATH_TEST)
API_PATH = os.getenv("API_PATH", os.getenv("WH_PATH", DEFAULT_API_PATH))
API_PATH_TEST = os.getenv("API_PATH_TEST", os.getenv("WH_PATH_TEST", DEFAULT_API_PATH_TEST))
API_HOST = os.getenv("API_HOST", os.getenv("WH_HOST", None))
API_SCHEME = os.getenv("API_SCHEME", "https")

KEEPALIVE_INTERVAL = float(os.getenv("KEEPALIVE_INTERVAL", 30))
KEEPALIVE_PAYLOAD = os.getenv("KEEPALIVE_PAYLOAD", "ping")
FORWARD_TIMEOUT = float(os.getenv("FORWARD_TIMEOUT", 10))

# n8n answers a webhook call with this body when the workflow runs asynchronously
SUPPRESS_FIELD = os.getenv("SUPPRESS_FIELD", "message")
SUPPRESS_VALUE = os.getenv("SUPPRESS_VALUE", "Workflow was started")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Max-Age": "86400",
}
