"""Process entry point: serve the API with uvicorn."""

import uvicorn

from picoclaw_manager.api.app import create_app
from picoclaw_manager.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        # Logging is configured by the app lifespan through structlog
        log_config=None,
    )


if __name__ == "__main__":
    main()
