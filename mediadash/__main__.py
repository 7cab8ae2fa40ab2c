import uvicorn

from mediadash.core.config import settings


def main():
    """Run the dashboard API server."""
    uvicorn.run(
        "mediadash.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False
    )


if __name__ == "__main__":
    main()
