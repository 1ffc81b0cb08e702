import os

import uvicorn

from crimewatch.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="crimewatch", override_existing=True)
    logger.info(f"Starting Crimewatch against {settings.police_api_base_url}")

    uvicorn.run(
        "crimewatch.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
