"""Run the API with uvicorn: ``python -m academy``."""

import uvicorn

from academy.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "academy.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
        # Logging is configured by academy.core.logging
        log_config=None,
    )


if __name__ == "__main__":
    main()
