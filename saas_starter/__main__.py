"""
Name: Server Runner

Responsibilities:
  - Serve api.main:app with uvicorn on the configured host/port

Notes:
  - `python -m saas_starter` or the `saas-starter` console script
  - Deployments may still point uvicorn/gunicorn at saas_starter.api.main:app
"""

import uvicorn

from .crosscutting.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "saas_starter.api.main:app",
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
