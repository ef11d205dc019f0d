"""Browser-facing pages.

The page itself is a thin shell; the table, forms and charts talk to
``/api/devices`` from ``static/js/devices.js``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.jinja import get_templates
from ..crud.devices import filter_options, last_updated_at
from ..db.session import get_db
from ..models.device import Device
from ..services.stats import stats_by_factory

router = APIRouter(include_in_schema=False)


def _render_index(request: Request, db: Session) -> HTMLResponse:
    options = filter_options(db)
    context = {
        "app_name": settings.APP_NAME,
        "device_total": db.scalar(select(func.count()).select_from(Device)) or 0,
        "factory_stats": stats_by_factory(db),
        "types": options["types"],
        "factories": options["factories"],
        "last_updated": last_updated_at(db),
        "page_size": settings.DEFAULT_PAGE_SIZE,
    }
    return get_templates().TemplateResponse(request, "index.html", context)


@router.get("/", response_class=HTMLResponse)
def index_page(request: Request, db: Session = Depends(get_db)):
    return _render_index(request, db)


# Client-side routes land on the same page; API paths never do.
@router.get("/{path:path}", response_class=HTMLResponse)
def spa_fallback(path: str, request: Request, db: Session = Depends(get_db)):
    if path == "api" or path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not found")
    return _render_index(request, db)
