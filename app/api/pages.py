"""Static pages controller."""
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from app.core.templating import render

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse, name="root")
def root(request: Request):
    """Landing page."""
    return render(request, "pages/root.html")
