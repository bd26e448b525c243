import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from vidtube.config import get_settings
from vidtube.core.errors import register_error_handlers
from vidtube.routers import subscriptions, users, videos

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logging.getLogger("urllib3").setLevel(logging.WARNING)

app = FastAPI(title="VidTube API", version="1.0.0")

origins = [settings.frontend_url] + [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(users.router)
app.include_router(videos.router)
app.include_router(subscriptions.router)


@app.get("/")
def root():
    return {"message": "VidTube API", "docs": "/docs"}
