"""
constants.py
- Project-wide constants shared across the exporter.
- Includes metric naming, the staleness sentinel, and server defaults.
"""

VERSION = "0.2.0"

# --- Metric Naming ---
NAMESPACE = "chef"
NODE_LABEL_NAMES = ["node"]

# --- Staleness ---
STALE_SENTINEL = 999999999.0  # reported when ohai_time is missing or not numeric

# --- Partial Search ---
SEARCH_INDEX = "node"
SEARCH_QUERY = "*:*"
SEARCH_KEYS = {
    "ohai_time": ["ohai_time"],
    "name": ["name"],
}

# --- Server Defaults ---
DEFAULT_LISTEN_ADDRESS = ":9101"
DEFAULT_TELEMETRY_PATH = "/metrics"
DEFAULT_REQUEST_TIMEOUT = 10.0  # seconds

# --- Chef API ---
CHEF_SIGN_VERSION = "1.3"
CHEF_CLIENT_VERSION = "17.0.0"
CHEF_SERVER_API_VERSION = "1"
