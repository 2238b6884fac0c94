import uvicorn

from carecall.core.app import create_app
from carecall.core.config import get_settings

app = create_app()


def run() -> None:
    """Entrypoint for `carecall-api` script."""
    settings = get_settings()
    uvicorn.run(
        "carecall.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        factory=False,
    )


if __name__ == "__main__":
    run()
