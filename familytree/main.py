from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import __version__
from .routes import family, layout, members, photo, relationships

app = FastAPI(title="Family Tree API", version=__version__)

for _router in (family.router, members.router, relationships.router, layout.router, photo.router):
    app.include_router(_router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# The browser UI lives next to the package; mount it last so /api and /health win.
_PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"
if _PUBLIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(_PUBLIC_DIR), html=True), name="public")
