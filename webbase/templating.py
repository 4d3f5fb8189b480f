"""
Jinja2 template rendering for the HTML pages.

render() wraps TemplateResponse and injects the variables every page
template relies on: service name, version, a human-readable server time,
and the signed-in identity (if any).
"""

from datetime import datetime, timezone
from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from webbase.config import settings

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

_MONTHS = [
    "Jan", "Feb", "March", "April", "May", "June",
    "July", "Aug", "Sept", "Oct", "Nov", "Dec",
]


def format_human_time(dt: datetime) -> str:
    """
    Format a datetime like "Sept 27th, 2025 @ 4:13pm".
    """
    day = dt.day
    if day % 10 == 1 and day != 11:
        suffix = "st"
    elif day % 10 == 2 and day != 12:
        suffix = "nd"
    elif day % 10 == 3 and day != 13:
        suffix = "rd"
    else:
        suffix = "th"

    hour_12 = dt.hour % 12 or 12
    am_pm = "am" if dt.hour < 12 else "pm"

    return f"{_MONTHS[dt.month - 1]} {day}{suffix}, {dt.year} @ {hour_12}:{dt.minute:02d}{am_pm}"


templates.env.filters["human_time"] = format_human_time


def render(request: Request, template_name: str, ctx: dict | None = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the common page variables."""
    identity = getattr(request.state, "identity", None)
    base_ctx = {
        "service_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "server_time": format_human_time(datetime.now(timezone.utc)),
        "current_user": identity,
        "is_authenticated": identity is not None,
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)
