"""
HTTP surface for triggering and cancelling monitoring cycles.

    uvicorn vendorwatch.app:api

POST /monitor/run     run one cycle synchronously, returns per-vendor results
POST /monitor/cancel  ask the running cycle to stop before its next vendor
"""
import logging
import threading
import time
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from vendorwatch.config import RESEARCH_MODES
from vendorwatch.monitor import CycleContext, MonitorSettings, run_cycle

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

api = FastAPI(title="VendorWatch")

_lock = threading.Lock()
_current: Optional[CycleContext] = None


class RunRequest(BaseModel):
    vendor_ids: Optional[List[str]] = None
    research_mode: Optional[str] = None


def get_context_factory() -> Callable[[MonitorSettings], CycleContext]:
    return lambda settings: CycleContext.from_config(settings=settings)


@api.post("/monitor/run")
def monitor_run(req: RunRequest, factory=Depends(get_context_factory)):
    """Run a monitoring cycle (optionally limited to vendor_ids). One cycle at a time."""
    global _current
    if req.research_mode is not None and req.research_mode not in RESEARCH_MODES:
        raise HTTPException(status_code=422, detail=f"research_mode must be one of {list(RESEARCH_MODES)}")

    with _lock:
        if _current is not None and _current.state == "running":
            raise HTTPException(status_code=409, detail="A monitoring cycle is already running")
        try:
            ctx = factory(MonitorSettings.from_config(research_mode=req.research_mode))
        except Exception as e:
            logger.exception("Could not set up monitoring cycle: %s", e)
            raise HTTPException(status_code=503, detail=f"Monitoring unavailable: {e}")
        _current = ctx
        ctx.state = "running"

    started = time.time()
    try:
        results = run_cycle(ctx, vendor_ids=req.vendor_ids)
    except Exception as e:
        logger.exception("Monitoring cycle failed: %s", e)
        ctx.state = "completed"
        return {"status": "FAILED", "error": str(e)}
    finally:
        ctx.close()
    return {
        "status": ctx.state.upper(),
        "results": [r.model_dump() for r in results],
        "duration": time.time() - started,
    }


@api.post("/monitor/cancel")
def monitor_cancel():
    with _lock:
        ctx = _current
    if ctx is None or ctx.state != "running":
        return {"cancelled": False}
    ctx.request_cancellation()
    return {"cancelled": True}
