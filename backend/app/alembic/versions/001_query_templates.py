"""Query templates and tags (query_template, query_tag, id sequences)

Revision ID: 001_query_templates
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001_query_templates"
down_revision = None
branch_labels = None
depends_on = None

output_format_enum = postgresql.ENUM("json", "csv", name="outputformatenum", create_type=False)
change_type_enum = postgresql.ENUM(
    "minor", "major", "bugfix", "rollback", name="changetypeenum", create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    postgresql.ENUM("json", "csv", name="outputformatenum").create(bind, checkfirst=True)
    postgresql.ENUM(
        "minor", "major", "bugfix", "rollback", name="changetypeenum"
    ).create(bind, checkfirst=True)

    op.execute(sa.schema.CreateSequence(sa.Sequence("query_template_id_seq")))
    op.execute(sa.schema.CreateSequence(sa.Sequence("query_tag_id_seq")))

    op.create_table(
        "query_template",
        sa.Column(
            "id",
            sa.Integer(),
            server_default=sa.text("nextval('query_template_id_seq')"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("query_sql", sa.Text(), nullable=False),
        sa.Column(
            "params",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("output_format", output_format_enum, nullable=False, server_default="json"),
        sa.Column("max_results", sa.Integer(), nullable=False, server_default="10000"),
        sa.Column("timeout_seconds", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("deprecated", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("deprecation_date", sa.DateTime(), nullable=True),
        sa.Column("creation_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("update_date", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_query_template_name"), "query_template", ["name"], unique=True)
    op.create_index(op.f("ix_query_template_category"), "query_template", ["category"], unique=False)

    op.create_table(
        "query_tag",
        sa.Column(
            "id",
            sa.Integer(),
            server_default=sa.text("nextval('query_tag_id_seq')"),
            nullable=False,
        ),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("query_sql", sa.Text(), nullable=False),
        sa.Column(
            "params",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("change_reason", sa.String(500), nullable=True),
        sa.Column("change_type", change_type_enum, nullable=False, server_default="minor"),
        sa.Column("creation_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("sql_diff", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["query_template.id"],
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_query_tag_template_id"), "query_tag", ["template_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_query_tag_template_id"), table_name="query_tag")
    op.drop_table("query_tag")
    op.drop_index(op.f("ix_query_template_category"), table_name="query_template")
    op.drop_index(op.f("ix_query_template_name"), table_name="query_template")
    op.drop_table("query_template")
    op.execute(sa.schema.DropSequence(sa.Sequence("query_tag_id_seq")))
    op.execute(sa.schema.DropSequence(sa.Sequence("query_template_id_seq")))
    sa.Enum(name="changetypeenum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="outputformatenum").drop(op.get_bind(), checkfirst=True)
