"""FastAPI service exposing a health check and a manual trigger."""

import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import BackgroundTasks, FastAPI

from . import __version__
from .config import load_config
from .main import setup_logging
from .pipeline import RunInProgressError, is_running, run_newsletter
from .ports import build_ports

logger = logging.getLogger(__name__)

SERVICE_NAME = "Niches Hunter Newsletter Generator"

app = FastAPI(
    title=SERVICE_NAME,
    description="Generates and sends the daily Niches Hunter newsletter",
    version=__version__,
)


def generate_in_background() -> None:
    """Run the pipeline, logging (not raising) any failure."""
    try:
        config = load_config()
        run_newsletter(build_ports(config), config)
    except RunInProgressError:
        logger.warning("Newsletter generation already in progress, trigger ignored")
    except Exception as e:
        logger.error(f"Newsletter generation failed: {e}")


@app.get("/health")
async def health():
    """Service identity and current time."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/generate")
async def generate(background_tasks: BackgroundTasks):
    """Start a run in the background and acknowledge immediately."""
    logger.info("Manual newsletter generation triggered")

    if is_running():
        return {"success": False, "message": "Newsletter generation already in progress"}

    background_tasks.add_task(generate_in_background)
    return {"success": True, "message": "Newsletter generation started..."}


def main() -> None:
    """Start the HTTP server on the configured port."""
    setup_logging()
    config = load_config()
    logger.info(f"Newsletter Generator running on port {config.port}")
    uvicorn.run(app, host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
