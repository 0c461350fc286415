"""Conventional CRUD controllers for ``Record`` models.

``resources(Post)`` returns a router with the seven conventional actions::

    GET    /posts            index    -> posts/index.html   (posts)
    GET    /posts/new        new      -> posts/new.html     (post, unsaved)
    POST   /posts            create   -> 303 /posts/{id}    | 422 new.html
    GET    /posts/{id}       show     -> posts/show.html    (post)
    GET    /posts/{id}/edit  edit     -> posts/edit.html    (post)
    PUT    /posts/{id}       update   -> 303 /posts/{id}    | 422 edit.html
    DELETE /posts/{id}       destroy  -> 303 /posts

Request bodies are JSON, nested under the singular name
(``{"post": {"title": "..."}}``). Views are looked up in the resource's own
template directory first and fall back to the generic ``resources/`` views.
Singleton resources (``resources(Profile, singleton=True)``) have no index
and no id in their paths.
"""
from typing import Any, Dict, Optional, Sequence, Type, Union

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from app.core.inflection import ResourceNames
from app.core.logging import get_logger
from app.core.templating import render
from app.domain.record import Record, RecordNotFound

logger = get_logger(__name__)

_BASE_FIELDS = {"id", "created_at", "updated_at"}


class ResourceController:
    """Actions for one record class, bound to its derived names."""

    def __init__(self, model: Type[Record], names: ResourceNames):
        self.model = model
        self.names = names
        self.fields = [name for name in model.model_fields if name not in _BASE_FIELDS]

    # -- helpers ---------------------------------------------------------

    def _view(self, action: str) -> list:
        return [f"{self.names.template_dir}/{action}.html", f"resources/{action}.html"]

    def _render(self, request: Request, action: str, context: Dict[str, Any], status_code: int = 200):
        context = dict(context, resource=self.names, fields=self.fields)
        return render(request, self._view(action), context, status_code=status_code)

    def _path(self, request: Request, action: str, record: Optional[Record] = None) -> str:
        params = {} if self.names.singleton or record is None else {"id": record.id}
        return str(request.app.url_path_for(self.names.route_name(action), **params))

    def _redirect(self, url: str) -> RedirectResponse:
        return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)

    def _find(self, record_id: Optional[int]) -> Record:
        if self.names.singleton:
            record = self.model.objects.last()
            if record is None:
                raise RecordNotFound(self.model.__name__, "singleton")
            return record
        return self.model.objects.find(record_id)

    async def _params(self, request: Request) -> Dict[str, Any]:
        """Return the attributes nested under the singular param key."""
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be JSON")

        if not isinstance(body, dict) or not isinstance(body.get(self.names.file_name, {}), dict):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Expected an object under '{self.names.file_name}'",
            )
        return body.get(self.names.file_name, {})

    def _record_context(self, record: Record) -> Dict[str, Any]:
        return {self.names.file_name: record, "record": record}

    # -- actions ---------------------------------------------------------

    def index(self, request: Request):
        records = self.model.objects.all()
        return self._render(request, "index", {self.names.table_name: records, "records": records})

    def show(self, request: Request, id: Optional[int] = None):
        return self._render(request, "show", self._record_context(self._find(id)))

    def new(self, request: Request):
        return self._render(request, "new", self._record_context(self.model.objects.build()))

    def edit(self, request: Request, id: Optional[int] = None):
        return self._render(request, "edit", self._record_context(self._find(id)))

    async def create(self, request: Request):
        attributes = await self._params(request)
        try:
            record = self.model.objects.create(attributes)
        except ValidationError as exc:
            logger.info(f"{self.model.__name__} not created: {exc.error_count()} error(s)")
            context = self._record_context(self.model.objects.build(attributes))
            context["errors"] = exc.errors(include_url=False)
            return self._render(request, "new", context, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

        logger.info(f"{self.model.__name__} created", extra={"record_id": record.id})
        return self._redirect(self._path(request, "show", record))

    async def update(self, request: Request, id: Optional[int] = None):
        record = self._find(id)
        attributes = await self._params(request)
        try:
            self.model.objects.update(record, attributes)
        except ValidationError as exc:
            logger.info(f"{self.model.__name__} {record.id} not updated: {exc.error_count()} error(s)")
            context = self._record_context(record)
            context["errors"] = exc.errors(include_url=False)
            return self._render(request, "edit", context, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

        logger.info(f"{self.model.__name__} updated", extra={"record_id": record.id})
        return self._redirect(self._path(request, "show", record))

    def destroy(self, request: Request, id: Optional[int] = None):
        record = self._find(id)
        self.model.objects.destroy(record)
        logger.info(f"{self.model.__name__} destroyed", extra={"record_id": record.id})
        return self._redirect(str(request.app.url_path_for(self.names.index_helper)))


def resources(
    model: Type[Record],
    namespace: Union[str, Sequence[str], None] = None,
    singleton: bool = False,
    name: Optional[str] = None,
) -> APIRouter:
    """Build the conventional CRUD router for a record class.

    Args:
        model: Record subclass to expose
        namespace: Optional URL/route-name namespace (``"admin"``)
        singleton: Address a single record without ids
        name: Resource name, defaults to the model class name

    Returns:
        Router to include in the application
    """
    names = ResourceNames.from_name(name or model.__name__, namespace=namespace, singleton=singleton)
    controller = ResourceController(model, names)
    router = APIRouter(prefix=names.route_prefix, tags=[names.ns_table_name])
    member = "" if singleton else "/{id}"

    if not singleton:
        router.add_api_route("", controller.index, methods=["GET"],
                             name=names.route_name("index"), response_class=HTMLResponse)
    router.add_api_route("/new", controller.new, methods=["GET"],
                         name=names.route_name("new"), response_class=HTMLResponse)
    router.add_api_route("", controller.create, methods=["POST"],
                         name=names.route_name("create"), response_class=HTMLResponse)
    router.add_api_route(member or "", controller.show, methods=["GET"],
                         name=names.route_name("show"), response_class=HTMLResponse)
    router.add_api_route(f"{member}/edit", controller.edit, methods=["GET"],
                         name=names.route_name("edit"), response_class=HTMLResponse)
    router.add_api_route(member or "", controller.update, methods=["PUT", "PATCH"],
                         name=names.route_name("update"), response_class=HTMLResponse)
    router.add_api_route(member or "", controller.destroy, methods=["DELETE"],
                         name=names.route_name("destroy"), response_class=HTMLResponse)

    logger.debug(f"Resource routes drawn for {names.ns_table_name} at {names.route_prefix}")
    return router
