"""
Query template management: CRUD, tags (immutable snapshots), execute by name.

All under /query:
  GET/POST   /templates               list (?activeOnly=) / create
  POST       /templates/execute       run an active template by name
  GET/PUT/DELETE /templates/{id}      detail / update (version bump on SQL change) / delete
  POST       /templates/{id}/tag      snapshot the current version
  GET        /templates/{id}/tags     snapshots of a template
  GET/DELETE /tags/{id}               snapshot detail / delete
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from app.api.deps import TagStoreDep, TemplateExecutorDep, TemplateStoreDep
from app.core.errors import NotFoundError
from app.models_query import QueryTemplate
from app.schemas_query import (
    QueryResponse,
    TagCreate,
    TagDetail,
    TagPublic,
    TemplateCreate,
    TemplateExecuteRequest,
    TemplateListItem,
    TemplatePublic,
    TemplateUpdate,
)

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/query", tags=["templates"])


def _to_list_item(t: QueryTemplate, tag_counts: dict[int, int]) -> TemplateListItem:
    item = TemplateListItem.model_validate(t)
    item.tag_count = tag_counts.get(t.id, 0)
    return item


@router.get("/templates", response_model=list[TemplateListItem])
def list_templates(
    templates: TemplateStoreDep,
    tags: TagStoreDep,
    active_only: Annotated[bool, Query(alias="activeOnly")] = False,
) -> Any:
    """List templates ordered by category and name; SQL text is omitted."""
    rows = templates.list_active() if active_only else templates.list_all()
    counts = tags.count_by_template()
    return [_to_list_item(t, counts) for t in rows]


@router.post(
    "/templates",
    response_model=TemplatePublic,
    status_code=status.HTTP_201_CREATED,
)
def create_template(templates: TemplateStoreDep, body: TemplateCreate) -> Any:
    return templates.create(body)


@router.post("/templates/execute", response_model=QueryResponse)
def execute_template(executor: TemplateExecutorDep, body: TemplateExecuteRequest) -> Any:
    """Run the active, non-deprecated template with this name."""
    return executor.execute_by_name(body.template_name, body.parameters)


@router.get("/templates/{template_id}", response_model=TemplatePublic)
def get_template(templates: TemplateStoreDep, template_id: int) -> Any:
    template = templates.get_by_id(template_id)
    if template is None:
        raise NotFoundError(f"Template {template_id} not found")
    return template


@router.put("/templates/{template_id}", response_model=TemplatePublic)
def update_template(
    templates: TemplateStoreDep, template_id: int, body: TemplateUpdate
) -> Any:
    """Replace a template; the version moves up only when the SQL text changes."""
    return templates.update(template_id, body)


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(templates: TemplateStoreDep, template_id: int) -> Response:
    """Delete a template. Fails with 409 while tags still reference it."""
    templates.delete(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/templates/{template_id}/tag",
    response_model=TagDetail,
    status_code=status.HTTP_201_CREATED,
)
def create_tag(tags: TagStoreDep, template_id: int, body: TagCreate) -> Any:
    return tags.create_tag(template_id, body.change_reason, body.change_type)


@router.get("/templates/{template_id}/tags", response_model=list[TagPublic])
def list_tags(
    templates: TemplateStoreDep, tags: TagStoreDep, template_id: int
) -> Any:
    if templates.get_by_id(template_id) is None:
        raise NotFoundError(f"Template {template_id} not found")
    return tags.list_by_template(template_id)


@router.get("/tags/{tag_id}", response_model=TagDetail)
def get_tag(tags: TagStoreDep, tag_id: int) -> Any:
    tag = tags.get_by_id(tag_id)
    if tag is None:
        raise NotFoundError(f"Tag {tag_id} not found")
    return tag


@router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(tags: TagStoreDep, tag_id: int) -> Response:
    tags.delete_by_id(tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
