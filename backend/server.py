"""Run the recap backend: python server.py (reads backend/.env)."""

import logging

import uvicorn

from app.config import load_settings
from app.main import create_app

logging.basicConfig(level=logging.INFO)


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    logging.getLogger(__name__).info(
        "Stream Recap backend: port=%d videos=%s ffmpeg=%s eventsub_secret=%s",
        settings.port,
        settings.videos_dir,
        settings.ffmpeg_binary,
        "set" if settings.eventsub_secret else "missing",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)

if __name__ == "__main__":
    main()
