from application import create_app
from config.settings import get_settings

settings = get_settings()

app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    # log_config=None keeps the JSON handler installed by the telemetry service
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
