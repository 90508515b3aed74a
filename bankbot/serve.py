"""Launch the banking assistant under Uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger("bankbot.launcher")


def main() -> None:
    from bankbot.main import app

    port = int(os.environ.get("PORT", "8000"))
    logger.debug("Starting on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
