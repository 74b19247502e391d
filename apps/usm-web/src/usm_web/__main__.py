from __future__ import annotations

import os

import uvicorn
from usm_kit.observability import configure_logging


def main() -> None:
    configure_logging(os.getenv("USM_LOG_LEVEL", "INFO"))
    host = os.getenv("USM_WEB_HOST", "0.0.0.0")
    port = int(os.getenv("USM_WEB_PORT", "8110"))
    uvicorn.run("usm_web.app:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
