"""Run the URL fetcher API with uvicorn."""

import uvicorn

from urlfetcher.config.settings import get_settings


def cli() -> None:
    """Serve the app on the configured host and port; reloads only in debug mode."""
    settings = get_settings()
    uvicorn.run(
        "urlfetcher.web.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=settings.debug,
    )


if __name__ == "__main__":
    cli()
