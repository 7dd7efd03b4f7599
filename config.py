import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./invoices.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = data.get("API_RELOAD", False)
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Chain
    CHAIN = data.get("CHAIN", "evm")  # evm | solana
    RPC_URL = data.get("RPC_URL", "http://localhost:8545")
    EVM_CHAIN_ID = data.get("EVM_CHAIN_ID", None)  # fetched from the node when unset
    TREASURY_ADDRESS = data.get("TREASURY_ADDRESS", "")
    SECRETS_FILE = data.get("SECRETS_FILE", os.path.join(ROOT_PATH, "secrets.yaml"))
    RPC_TIMEOUT_SECONDS = data.get("RPC_TIMEOUT_SECONDS", 30)
    CONFIRMATION_TIMEOUT_SECONDS = data.get("CONFIRMATION_TIMEOUT_SECONDS", 120)
    GAS_BUFFER_PERCENT = data.get("GAS_BUFFER_PERCENT", 10)
    TOP_UP_GAS_PRICE_BUFFER_PERCENT = data.get("TOP_UP_GAS_PRICE_BUFFER_PERCENT", 20)

    # Notifications
    NOTIFICATION_WEBHOOK_URL = data.get("NOTIFICATION_WEBHOOK_URL", None)

    # Payment Watcher
    WATCHER_INTERVAL_SECONDS = data.get("WATCHER_INTERVAL_SECONDS", 60)
    WATCHER_CYCLE_TIMEOUT_SECONDS = data.get("WATCHER_CYCLE_TIMEOUT_SECONDS", 300)

    # Sweeper
    SWEEPER_POLL_INTERVAL_SECONDS = data.get("SWEEPER_POLL_INTERVAL_SECONDS", 10)
    SWEEPER_BATCH_SIZE = data.get("SWEEPER_BATCH_SIZE", 10)
    SWEEPER_MAX_CONCURRENCY = data.get("SWEEPER_MAX_CONCURRENCY", 1)
    SWEEP_MAX_ATTEMPTS = data.get("SWEEP_MAX_ATTEMPTS", 3)
    SWEEP_TIMEOUT_SECONDS = data.get("SWEEP_TIMEOUT_SECONDS", 300)
