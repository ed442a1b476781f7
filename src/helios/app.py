"""helios - HTTP surface serving the cached host snapshot."""

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, Response

from helios.cache import SnapshotCache
from helios.config import LISTEN_HOST, Settings, get_settings
from helios.identity import get_identity
from helios.probe import HostProbe
from helios.render import render_page, to_json

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).parent / "assets"

CONTENT_TYPES = {
    ".png": "image/png",
    ".webp": "image/webp",
    ".js": "text/javascript",
    ".css": "text/css",
}


def load_assets() -> tuple[str, dict[str, tuple[bytes, str]]]:
    """
    Read the bundled assets once.

    Returns the landing page template and the static files servable under
    /assets, keyed by file name.
    """
    template = (ASSETS_DIR / "index.html").read_text(encoding="utf-8")
    static: dict[str, tuple[bytes, str]] = {}
    for entry in ASSETS_DIR.iterdir():
        content_type = CONTENT_TYPES.get(entry.suffix)
        if content_type is not None and entry.is_file():
            static[entry.name] = (entry.read_bytes(), content_type)
    return template, static


def create_app(settings: Settings | None = None, cache: SnapshotCache | None = None) -> FastAPI:
    """Create the FastAPI application around one SnapshotCache."""
    if settings is None:
        settings = get_settings()
    if cache is None:
        probe = HostProbe(get_identity())
        cache = SnapshotCache(
            probe,
            freshness_window=settings.freshness_window,
            display_max_age=settings.display_max_age,
        )

    template, static = load_assets()

    app = FastAPI(title="Helios", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.cache = cache

    # Plain def handlers run on the server's thread pool; the cache blocks.
    @app.get("/", response_class=HTMLResponse)
    def root() -> HTMLResponse:
        snapshot = cache.get_for_display()
        return HTMLResponse(render_page(template, snapshot, settings.principal))

    @app.get("/s")
    def update_status() -> dict[str, object]:
        return to_json(cache.get_current())

    @app.get("/__heartbeat__")
    async def heartbeat() -> dict[str, str]:
        return {"status": "ok", "message": "Helios is running"}

    @app.get("/assets/{name}")
    async def asset(name: str) -> Response:
        if name not in static:
            raise HTTPException(status_code=404, detail="Not Found")
        body, content_type = static[name]
        return Response(content=body, media_type=content_type)

    return app


def main() -> None:
    """Entry point for the helios server."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info("Listening on http://%s:%d", LISTEN_HOST, settings.port)
    uvicorn.run(app, host=LISTEN_HOST, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
