"""
Template and tag persistence over a SQLModel session.

TemplateStore owns versioning: ``version`` moves up by one only when the SQL
text changes. TagStore writes immutable snapshots; the FK from query_tag to
query_template is RESTRICT, so a template with tags cannot be deleted until
its tags are gone.
"""

import difflib
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from app.core.errors import ConflictError, NotFoundError, PersistenceError
from app.models_query import ChangeTypeEnum, QueryTag, QueryTemplate
from app.schemas_query import TemplateCreate, TemplateUpdate

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _commit(session: Session, what: str) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("%s rejected by the template store: %s", what, e.orig)
        raise PersistenceError(f"{what} rejected by the database", details=str(e.orig)) from e


class TemplateStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_name(self, name: str) -> QueryTemplate | None:
        """Active, non-deprecated template with this name, if any."""
        stmt = select(QueryTemplate).where(
            QueryTemplate.name == name,
            col(QueryTemplate.active).is_(True),
            col(QueryTemplate.deprecated).is_(False),
        )
        return self.session.exec(stmt).first()

    def get_by_id(self, template_id: int) -> QueryTemplate | None:
        return self.session.get(QueryTemplate, template_id)

    def list_all(self) -> list[QueryTemplate]:
        stmt = select(QueryTemplate).order_by(
            col(QueryTemplate.category), col(QueryTemplate.name)
        )
        return list(self.session.exec(stmt).all())

    def list_active(self) -> list[QueryTemplate]:
        stmt = (
            select(QueryTemplate)
            .where(
                col(QueryTemplate.active).is_(True),
                col(QueryTemplate.deprecated).is_(False),
            )
            .order_by(col(QueryTemplate.category), col(QueryTemplate.name))
        )
        return list(self.session.exec(stmt).all())

    def create(self, body: TemplateCreate) -> QueryTemplate:
        template = QueryTemplate(
            **body.model_dump(),
            version=1,
            creation_date=_utc_now(),
        )
        self.session.add(template)
        _commit(self.session, f"Create of template '{body.name}'")
        self.session.refresh(template)
        logger.info("Created template %s (id=%s)", template.name, template.id)
        return template

    def update(self, template_id: int, body: TemplateUpdate) -> QueryTemplate:
        """
        Replace the mutable fields of a template.

        The version is bumped only when ``query_sql`` differs from the stored
        text. With ``expected_version`` set, a stale version raises
        ConflictError; without it the last write wins.
        """
        template = self.get_by_id(template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} not found")
        if body.expected_version is not None and body.expected_version != template.version:
            raise ConflictError(
                f"Template {template_id} is at version {template.version}, "
                f"expected {body.expected_version}",
                details={"currentVersion": template.version},
            )

        sql_changed = body.query_sql != template.query_sql
        was_deprecated = template.deprecated
        template.sqlmodel_update(
            body.model_dump(exclude={"expected_version"})
        )
        if sql_changed:
            template.version += 1
        if template.deprecated and not was_deprecated:
            template.deprecation_date = _utc_now()
        elif not template.deprecated:
            template.deprecation_date = None
        template.update_date = _utc_now()

        self.session.add(template)
        _commit(self.session, f"Update of template {template_id}")
        self.session.refresh(template)
        logger.info(
            "Updated template %s (id=%s, version=%s, sql_changed=%s)",
            template.name,
            template.id,
            template.version,
            sql_changed,
        )
        return template

    def delete(self, template_id: int) -> None:
        template = self.get_by_id(template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} not found")
        self.session.delete(template)
        _commit(self.session, f"Delete of template {template_id}")
        logger.info("Deleted template id=%s", template_id)


class TagStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _previous_sql(self, template_id: int) -> str | None:
        stmt = (
            select(QueryTag.query_sql)
            .where(QueryTag.template_id == template_id)
            .order_by(col(QueryTag.creation_date).desc(), col(QueryTag.id).desc())
        )
        return self.session.exec(stmt).first()

    def create_tag(
        self,
        template_id: int,
        change_reason: str | None,
        change_type: ChangeTypeEnum,
    ) -> QueryTag:
        """Snapshot the template's current state; sql_diff is against the previous tag."""
        template = self.session.get(QueryTemplate, template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} not found")

        previous = self._previous_sql(template_id)
        sql_diff = None
        if previous is not None:
            sql_diff = "".join(
                difflib.unified_diff(
                    previous.splitlines(keepends=True),
                    template.query_sql.splitlines(keepends=True),
                    fromfile="previous",
                    tofile=f"v{template.version}",
                )
            )

        tag = QueryTag(
            template_id=template_id,
            version=template.version,
            query_sql=template.query_sql,
            params=list(template.params or []),
            name=template.name,
            description=template.description,
            change_reason=change_reason,
            change_type=change_type,
            creation_date=_utc_now(),
            sql_diff=sql_diff,
        )
        self.session.add(tag)
        _commit(self.session, f"Tag of template {template_id}")
        self.session.refresh(tag)
        logger.info(
            "Tagged template %s at version %s (tag id=%s)",
            template_id,
            tag.version,
            tag.id,
        )
        return tag

    def list_by_template(self, template_id: int) -> list[QueryTag]:
        stmt = (
            select(QueryTag)
            .where(QueryTag.template_id == template_id)
            .order_by(col(QueryTag.creation_date).desc(), col(QueryTag.id).desc())
        )
        return list(self.session.exec(stmt).all())

    def get_by_id(self, tag_id: int) -> QueryTag | None:
        return self.session.get(QueryTag, tag_id)

    def delete_by_id(self, tag_id: int) -> None:
        tag = self.get_by_id(tag_id)
        if tag is None:
            raise NotFoundError(f"Tag {tag_id} not found")
        self.session.delete(tag)
        _commit(self.session, f"Delete of tag {tag_id}")

    def count_by_template(self) -> dict[int, int]:
        stmt = select(QueryTag.template_id, func.count()).group_by(QueryTag.template_id)
        return {template_id: count for template_id, count in self.session.exec(stmt).all()}
