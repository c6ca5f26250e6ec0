"""Core constants for remote-e2e.

Values referenced by several modules live here so configuration, the API
client and the CLI agree on names and defaults without importing each other.
"""

from pathlib import Path

# Environment variable names
ENV_API_KEY = "DEBUGGAI_API_KEY"
ENV_BASE_URL = "DEBUGGAI_BASE_URL"
ENV_TUNNEL_TOKEN = "NGROK_AUTH_TOKEN"
ENV_TUNNEL_DOMAIN = "DEBUGGAI_TUNNEL_DOMAIN"
ENV_POLL_INTERVAL = "DEBUGGAI_POLL_INTERVAL"
ENV_TIMEOUT = "DEBUGGAI_TIMEOUT"
ENV_VERBOSE = "DEBUGGAI_VERBOSE"

# API defaults
DEFAULT_BASE_URL = "https://api.debugg.ai"
DEFAULT_TUNNEL_DOMAIN = "ngrok.debugg.ai"
DEFAULT_REQUEST_TIMEOUT_S = 30.0
USER_AGENT = "remote-e2e"
TRACE_ID_HEADER = "X-Remote-E2E-Trace-Id"

# Polling defaults (seconds)
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_RUN_TIMEOUT_S = 900.0
HEALTH_PROBE_TIMEOUT_S = 5.0

# Usable local ports
MIN_PORT = 1
MAX_PORT = 65535

# Remote endpoints, relative to the base URL
E2E_TESTS_PATH = "api/v1/e2e-tests/"
TEST_SUITES_PATH = "api/v1/test-suites/"
TEST_SUITES_GENERATE_PATH = "api/v1/test-suites/generate_tests/"
COMMIT_SUITES_PATH = "api/v1/commit-suites/"

# Local logging
LOG_DIR = Path.home() / ".remote-e2e" / "logs"
LOG_FILE_NAME = "remote-e2e.log"
