import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

import httpx
from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Load environment variables
load_dotenv()

from database import SessionLocal, init_db, record_run
from reelmetrics import config
from reelmetrics.errors import ReelMetricsError
from reelmetrics.reconcile import build_run_output, fresh_likes_by_url
from reelmetrics.runner import TaskLogger, generate_metrics, scrape_urls
from reelmetrics.storage import load_previous

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger("reel_metrics")
logger.setLevel(logging.INFO)

NO_STORE = {"Cache-Control": "no-store"}


# --- Models ---
class RefreshTaskResponse(BaseModel):
    status: str
    task_id: str
    message: str


# --- Helper Functions ---
async def send_webhook(data: Dict[str, Any], task_logger):
    """Sends the run summary to the configured webhook."""
    if not config.WEBHOOK_URL:
        return

    task_logger.info(f"Sending webhook to {config.WEBHOOK_URL}...")
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.post(config.WEBHOOK_URL, json=data)
            response.raise_for_status()
            task_logger.info(f"Webhook sent successfully: {response.status_code}")
        except httpx.HTTPError as e:
            task_logger.error(f"Webhook failed: {e}")


def persist_run(run, task_id: str, task_logger) -> bool:
    if SessionLocal is None:
        task_logger.info("DATABASE_URL not configured, run history not recorded.")
        return False
    db = SessionLocal()
    try:
        db_run = record_run(db, run, task_id=task_id)
        task_logger.info(f"Run stored in database: {db_run.id}")
        return True
    except Exception as db_err:
        db.rollback()
        task_logger.error(f"Error saving run to database: {db_err}")
        return False
    finally:
        db.close()


# --- Orchestrator ---
async def run_refresh(task_id: str):
    task_logger = TaskLogger(logger, {"task_id": task_id})
    task_logger.info("Starting metrics refresh")
    try:
        run = await generate_metrics(
            config.METRICS_FILE,
            headless=True,
            storage_state=config.FB_STORAGE_STATE,
            task_id=task_id,
        )
    except Exception as e:
        task_logger.error(f"Metrics refresh failed: {e}", exc_info=True)
        return

    persist_run(run, task_id, task_logger)
    await send_webhook(run.to_json_dict(), task_logger)


# --- FastAPI App ---
VERSION = "1.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Reel Metrics API", version=VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.get("/")
async def root():
    return {
        "name": "Reel Metrics Backend",
        "version": VERSION,
        "status": "running",
        "tracked_posts": len(config.TRACKED_POSTS),
        "server_time": datetime.utcnow().isoformat(),
        "documentation": "/docs"
    }


@app.get("/api/metrics")
async def metrics_endpoint():
    """Live scrape of the tracked reels. Missing likes fall back to the baseline only."""
    try:
        report = await scrape_urls(
            [p.url for p in config.TRACKED_POSTS],
            mode="direct",
            headless=True,
            storage_state=config.FB_STORAGE_STATE,
        )
        run = build_run_output(config.TRACKED_POSTS, fresh_likes_by_url(report), None, config.BASELINE_LIKES)
    except Exception as e:
        logger.error(f"Live metrics failed: {e}", exc_info=not isinstance(e, ReelMetricsError))
        return JSONResponse(status_code=500, content={"error": str(e)}, headers=NO_STORE)

    payload = run.to_json_dict()
    return JSONResponse(content={"videos": payload["videos"], "totals": payload["totals"]}, headers=NO_STORE)


@app.get("/api/metrics/latest")
async def latest_metrics():
    previous = load_previous(config.METRICS_FILE)
    if previous is None:
        return JSONResponse(status_code=404, content={"error": "No metrics generated yet"}, headers=NO_STORE)
    return JSONResponse(content=previous.to_json_dict(), headers=NO_STORE)


@app.post("/api/metrics/refresh", response_model=RefreshTaskResponse, status_code=202)
async def refresh_endpoint(background_tasks: BackgroundTasks):
    task_id = str(uuid.uuid4())
    background_tasks.add_task(run_refresh, task_id)
    return {
        "status": "accepted",
        "task_id": task_id,
        "message": "Metrics refresh accepted and running in background"
    }


@app.get("/health")
async def health_check():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
