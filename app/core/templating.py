"""Jinja2 view rendering shared by all controllers."""
from typing import Any, Dict, Optional, Sequence, Union

from fastapi import Request
from fastapi.templating import Jinja2Templates

from app.core.config import settings

templates = Jinja2Templates(directory=str(settings.templates_dir))
templates.env.globals["app_name"] = settings.app_name


def is_xhr(request: Request) -> bool:
    """True for requests issued by JavaScript (fetch/XMLHttpRequest)."""
    return request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"


def render(
    request: Request,
    template: Union[str, Sequence[str]],
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
):
    """Render a view, picking the first existing template when given several.

    XHR requests get the view without the application layout.
    """
    if isinstance(template, str):
        name = template
    else:
        name = templates.env.select_template(list(template)).name

    context = dict(context or {})
    context.setdefault("layout", "layouts/xhr.html" if is_xhr(request) else "layouts/application.html")
    return templates.TemplateResponse(request, name, context, status_code=status_code)
