"""contentdesk entrypoint.

Run with:
  python -m contentdesk
"""

import uvicorn

from contentdesk.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "contentdesk.main:app",
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
