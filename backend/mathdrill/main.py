import asyncio

from fastapi import FastAPI

from .logging_config import configure_logging
from .service import service
from .settings import settings
from .routers import health
from .routers import auth
from .routers import dashboard
from .routers import drill
from .routers import analysis

logger = configure_logging()

app = FastAPI(title="Bank Exam Math Drill API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(drill.router)
app.include_router(analysis.router)

@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"model": settings.gemini_model,
		"questions_per_drill": settings.drill_question_count,
		"seconds_per_question": settings.drill_seconds_per_question,
	}

_cleanup_task = None

async def _cleanup_watcher():
	# Sessions only live in memory; drop the ones nobody has touched in a while
	while True:
		await asyncio.sleep(settings.session_sweep_seconds)
		try:
			service.purge_idle()
		except Exception:
			logger.exception("Idle session sweep failed")

@app.on_event("startup")
async def startup_event():
	global _cleanup_task
	logger.info("Drill API ready (model=%s, gemini_configured=%s)", settings.gemini_model, bool(settings.gemini_api_key))
	# Start periodic cleanup loop
	_cleanup_task = asyncio.create_task(_cleanup_watcher())

@app.on_event("shutdown")
async def shutdown_event():
	if _cleanup_task is not None:
		_cleanup_task.cancel()
	# Stop any countdown tasks still ticking
	await service.aclose()
