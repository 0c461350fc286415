"""In-browser JavaScript spec runner.

Serves a Jasmine runner page at ``/specs`` that loads the application
JavaScript and every ``*_spec.js`` file under ``SPECS_DIR``. The runner is
only mounted when it is available: enabled in settings, outside production,
and with a spec directory present.
"""
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import Settings, settings as default_settings
from app.core.logging import get_logger
from app.core.templating import templates

logger = get_logger(__name__)

JASMINE_CDN = "https://cdn.jsdelivr.net/npm/jasmine-core@{version}/lib/jasmine-core"


def specs_available(settings: Optional[Settings] = None) -> bool:
    """Whether the spec runner can be mounted."""
    settings = settings or default_settings
    if not settings.specs_enabled or settings.is_production:
        return False
    return Path(settings.specs_dir).is_dir()


def discover_specs(specs_dir: Path) -> List[str]:
    """Spec files relative to ``specs_dir``, helpers first, then alphabetical."""
    specs_dir = Path(specs_dir)
    found = sorted(p.relative_to(specs_dir).as_posix() for p in specs_dir.rglob("*.js"))
    helpers = [p for p in found if p.startswith("helpers/")]
    specs = [p for p in found if p.endswith("_spec.js") and p not in helpers]
    return helpers + specs


def create_specs_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the runner sub-application."""
    settings = settings or default_settings
    specs_dir = Path(settings.specs_dir)
    jasmine_url = JASMINE_CDN.format(version=settings.jasmine_version)

    specs_app = FastAPI(title=f"{settings.app_name} specs", docs_url=None, redoc_url=None, openapi_url=None)
    specs_app.mount("/files", StaticFiles(directory=str(specs_dir)), name="spec_files")

    @specs_app.get("/", response_class=HTMLResponse, name="runner")
    def runner(request: Request):
        spec_files = discover_specs(specs_dir)
        logger.debug(f"Spec runner serving {len(spec_files)} file(s)")
        return templates.TemplateResponse(
            request,
            "specs/runner.html",
            {
                "spec_files": spec_files,
                "jasmine_url": jasmine_url,
                "files_prefix": request.scope.get("root_path", "") + "/files",
            },
        )

    return specs_app
