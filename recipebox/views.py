"""HTML rendering. Handlers pass the caller identity in explicitly."""

from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates

from .context import CallerIdentity

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render(
    request: Request,
    name: str,
    identity: Optional[CallerIdentity],
    payload: Any = None,
    status_code: int = 200,
    **extra: Any,
):
    context = {"current_user": identity, "payload": payload, **extra}
    return templates.TemplateResponse(request, f"{name}.html", context, status_code=status_code)
