"""``python -m market_breadth.services.api`` serves the FastAPI app with uvicorn."""

import uvicorn

from market_breadth.core.config import get_settings


def main() -> int:
    settings = get_settings()
    uvicorn.run(
        "market_breadth.services.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        # The app installs its own JSON handler on the root logger.
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
