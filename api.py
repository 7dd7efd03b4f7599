import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

# Administrative invoice API; the watcher and sweeper run as separate
# processes (python -m src.worker.payment_watcher / src.worker.sweeper)
app = create_app(ApplicationConfig)

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        reload=ApplicationConfig.API_RELOAD,
        log_level=ApplicationConfig.LOG_LEVEL.lower(),
    )
