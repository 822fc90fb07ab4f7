# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Nothing here is imported at runtime; see src/taskboard_sync/config.py.
"""

ENV_VARS = {
    # App / logging
    "TASKBOARD_APP_NAME": "App display name (default: taskboard).",
    "TASKBOARD_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKBOARD_DATA_DIR": "Local data directory for logs (default: .local/taskboard).",
    "TASKBOARD_LOG_TO_FILE": "Write the full log to <data_dir>/taskboard.log (true/false, default: true).",
    # Event channel
    "TASKBOARD_SOCKET_URL": (
        "Board server endpoint (default: ws://localhost:3001). "
        "http(s):// is mapped to ws(s)://. SOCKET_URL / VITE_SOCKET_URL are read when unset. "
        "The server must use plain WebSocket JSON frames {\"event\": ..., \"data\": ...}; "
        "a Socket.IO server is not compatible."
    ),
    "TASKBOARD_RECONNECT_ATTEMPTS": "Reconnect attempts after a drop before giving up (default: 5).",
    "TASKBOARD_RECONNECT_DELAY": "Base reconnect delay in seconds, doubled per attempt (default: 1.0).",
    "TASKBOARD_RECONNECT_DELAY_MAX": "Upper bound for the reconnect delay in seconds (default: 5.0).",
    "TASKBOARD_CONNECT_TIMEOUT": "Handshake timeout in seconds (default: 10.0).",
    # Sync policy
    "TASKBOARD_CLEAR_ON_DISCONNECT": (
        "Empty the local board as soon as the connection drops (true/false, default: false). "
        "When false, stale tasks stay visible until the resync after reconnect."
    ),
    # Console client
    "TASKBOARD_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
}
