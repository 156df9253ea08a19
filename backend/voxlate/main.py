from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .core.ffmpeg_utils import check_ffmpeg_available
from .core.gemini import GeminiClient
from .routers import http_api

# ===========================================================
# 🌐 Global application setup
# ===========================================================

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup checks: directories, ffmpeg and Gemini configuration."""
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    settings.output_dir.mkdir(parents=True, exist_ok=True)

    ffmpeg_ok = check_ffmpeg_available()
    gemini_ok = GeminiClient.from_settings(settings).validate_config()
    app.state.system_status = {"ffmpeg": ffmpeg_ok, "gemini": gemini_ok}

    logging.info("=" * 60)
    logging.info(f"[startup] 🚀 {settings.app_name} ({settings.environment})")
    logging.info(f"[startup]    FFmpeg: {'✅ available' if ffmpeg_ok else '❌ missing'}")
    logging.info(f"[startup]    Gemini: {'✅ configured' if gemini_ok else '⚠️ not configured'}")
    logging.info(f"[startup]    uploads={settings.upload_dir} output={settings.output_dir}")
    logging.info("=" * 60)
    yield
    logging.info("[shutdown] 🛑 FastAPI shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# ===========================================================
# 🔐 CORS
# ===========================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control"],
    expose_headers=["Content-Disposition", "Content-Length"],
)

# ===========================================================
# 🧩 Routers
# ===========================================================
app.include_router(http_api.router, prefix="/api", tags=["api"])


# ===========================================================
# 💓 Health check
# ===========================================================
@app.get("/health")
async def health_check():
    return {
        "status": "OK",
        "timestamp": datetime.now().isoformat(),
        "system": getattr(app.state, "system_status", {}),
    }


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("voxlate.main:app", host="0.0.0.0", port=settings.port)
