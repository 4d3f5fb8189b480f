"""Run the web server: ``python -m webbase`` (or the ``webbase`` console script)."""

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from webbase.config import settings


def main() -> None:
    log_config = LOGGING_CONFIG.copy()
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    uvicorn.run(
        "webbase.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=log_config,
        access_log=True,
    )


if __name__ == "__main__":
    main()
