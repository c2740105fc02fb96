"""Constants for the posts REST API."""

BASE_URL = "https://jsonplaceholder.typicode.com/"

CONNECT_TIMEOUT_S = 10.0
RECEIVE_TIMEOUT_S = 10.0

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
}

# Sent while no access token is stored (demo/bootstrap phase)
FALLBACK_TOKEN = "fake_token_for_demo"

# The demo backend issues no tokens on login
DEMO_ACCESS_TOKEN = "demo_access_token"
DEMO_REFRESH_TOKEN = "demo_refresh_token"

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_S = 1.0

LOGIN_PATH = "/auth/login"
REFRESH_PATH = "/auth/refresh"
