"""Run the API server: ``python -m subrelay``."""

import uvicorn

from subrelay.config import settings


def main() -> None:
    uvicorn.run(
        "subrelay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
