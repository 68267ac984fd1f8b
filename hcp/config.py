from __future__ import annotations

EXIT_HCP_SPAWN = 961
EXIT_HCP_IO = 962
EXIT_HCP_HTTP = 963
EXIT_HCP_UNKNOWN = 964

TAIL_CAP = 40_000
READ_SIZE = 16 * 1024

PING_BASE_URL = "https://hc-ping.com/"
HTTP_TIMEOUT_SECONDS = 10.0
RETRY_DELAY_SECONDS = 2.0

POLL_INTERVAL_SECONDS = 0.05

# Read by hcp itself; never passed on to the child.
SUPERVISOR_ENV_VARS = ("HCP_ID", "HCP_TEE", "HCP_IGNORE_CODE")
