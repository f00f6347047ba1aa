from throttle.core.app_factory import create_app
from throttle.core.config import settings

app = create_app()


def run() -> None:
    """Serve the admin API with uvicorn (``throttle-api``)."""
    import uvicorn

    # log_config=None keeps the JSON handler installed by configure_logging
    uvicorn.run(
        "throttle.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
