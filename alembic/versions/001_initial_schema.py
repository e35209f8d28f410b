"""Initial schema: CTAM+ assessment portal tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Health regions
    op.create_table(
        "health_regions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("region_number", sa.Integer, nullable=False, unique=True),
        *_timestamps(),
    )

    # Provinces
    op.create_table(
        "provinces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(10), nullable=False, unique=True),
        sa.Column("health_region_id", sa.String(36), sa.ForeignKey("health_regions.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_provinces_health_region_id", "provinces", ["health_region_id"])

    # Hospitals
    op.create_table(
        "hospitals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("hospital_type", sa.String(50), nullable=True),
        sa.Column("province_id", sa.String(36), sa.ForeignKey("provinces.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_hospitals_code", "hospitals", ["code"])
    op.create_index("ix_hospitals_province_id", "hospitals", ["province_id"])

    # Health offices (regional offices have no province)
    op.create_table(
        "health_offices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("office_type", sa.String(50), nullable=True),
        sa.Column("province_id", sa.String(36), sa.ForeignKey("provinces.id"), nullable=True),
        sa.Column("health_region_id", sa.String(36), sa.ForeignKey("health_regions.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_health_offices_code", "health_offices", ["code"])
    op.create_index("ix_health_offices_health_region_id", "health_offices", ["health_region_id"])

    # CTAM+ categories
    op.create_table(
        "ctam_categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("name_th", sa.String(255), nullable=False),
        sa.Column("name_en", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order_number", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )

    # Profiles
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", sa.String(30), nullable=False, server_default="hospital_it"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("hospital_id", sa.String(36), sa.ForeignKey("hospitals.id"), nullable=True),
        sa.Column("health_office_id", sa.String(36), sa.ForeignKey("health_offices.id"), nullable=True),
        sa.Column("province_id", sa.String(36), sa.ForeignKey("provinces.id"), nullable=True),
        sa.Column("health_region_id", sa.String(36), sa.ForeignKey("health_regions.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"])

    # Report access policies
    op.create_table(
        "report_access_policies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("report_type", sa.String(30), nullable=False),
        sa.Column("view_region", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("drill_to_province", sa.String(20), nullable=False, server_default="all"),
        sa.Column("drill_to_hospital", sa.String(20), nullable=False, server_default="all"),
        sa.Column("view_same_province_hospitals", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("role", "report_type", name="uq_report_access_role_type"),
    )

    # Assessments
    op.create_table(
        "assessments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("hospital_id", sa.String(36), sa.ForeignKey("hospitals.id"), nullable=True),
        sa.Column("health_office_id", sa.String(36), sa.ForeignKey("health_offices.id"), nullable=True),
        sa.Column("province_id", sa.String(36), sa.ForeignKey("provinces.id"), nullable=True),
        sa.Column("health_region_id", sa.String(36), sa.ForeignKey("health_regions.id"), nullable=True),
        sa.Column("fiscal_year", sa.Integer, nullable=False),
        sa.Column("assessment_period", sa.String(20), nullable=False, server_default="1"),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("quantitative_score", sa.Float, server_default="0"),
        sa.Column("qualitative_score", sa.Float, server_default="0"),
        sa.Column("impact_score", sa.Float, server_default="0"),
        sa.Column("total_score", sa.Float, server_default="0"),
        sa.Column("submitted_by", sa.String(36), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quantitative_approved_by", sa.String(36), nullable=True),
        sa.Column("quantitative_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qualitative_approved_by", sa.String(36), nullable=True),
        sa.Column("qualitative_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("impact_approved_by", sa.String(36), nullable=True),
        sa.Column("impact_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("provincial_approved_by", sa.String(36), nullable=True),
        sa.Column("provincial_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("provincial_comment", sa.Text, nullable=True),
        sa.Column("regional_approved_by", sa.String(36), nullable=True),
        sa.Column("regional_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("regional_comment", sa.Text, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint(
            "hospital_id", "health_office_id", "fiscal_year", "assessment_period",
            name="uq_assessment_unit_period",
        ),
    )
    op.create_index("ix_assessments_hospital_id", "assessments", ["hospital_id"])
    op.create_index("ix_assessments_health_office_id", "assessments", ["health_office_id"])
    op.create_index("ix_assessments_province_id", "assessments", ["province_id"])
    op.create_index("ix_assessments_health_region_id", "assessments", ["health_region_id"])

    # Quantitative items
    op.create_table(
        "assessment_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("assessment_id", sa.String(36), sa.ForeignKey("assessments.id"), nullable=False),
        sa.Column("category_id", sa.String(36), sa.ForeignKey("ctam_categories.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="fail"),
        sa.Column("score", sa.Float, server_default="0"),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assessment_id", "category_id", name="uq_item_assessment_category"),
    )
    op.create_index("ix_assessment_items_assessment_id", "assessment_items", ["assessment_id"])

    # Qualitative scores
    op.create_table(
        "qualitative_scores",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("assessment_id", sa.String(36), sa.ForeignKey("assessments.id"), nullable=False, unique=True),
        sa.Column("has_ciso", sa.Boolean, server_default=sa.false()),
        sa.Column("has_dpo", sa.Boolean, server_default=sa.false()),
        sa.Column("has_it_security_team", sa.Boolean, server_default=sa.false()),
        sa.Column("annual_training_count", sa.Integer, server_default="0"),
        sa.Column("uses_opensource", sa.Boolean, server_default=sa.false()),
        sa.Column("uses_freeware", sa.Boolean, server_default=sa.false()),
        sa.Column("leadership_score", sa.Float, server_default="0"),
        sa.Column("sustainable_score", sa.Float, server_default="0"),
        sa.Column("total_score", sa.Float, server_default="0"),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("evaluated_by", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_qualitative_scores_assessment_id", "qualitative_scores", ["assessment_id"])

    # Impact scores
    op.create_table(
        "impact_scores",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("assessment_id", sa.String(36), sa.ForeignKey("assessments.id"), nullable=False, unique=True),
        sa.Column("had_incident", sa.Boolean, server_default=sa.false()),
        sa.Column("incident_recovery_hours", sa.Float, server_default="0"),
        sa.Column("incident_score", sa.Float, server_default="0"),
        sa.Column("had_data_breach", sa.Boolean, server_default=sa.false()),
        sa.Column("breach_severity", sa.String(20), server_default="none"),
        sa.Column("breach_score", sa.Float, server_default="0"),
        sa.Column("total_score", sa.Float, server_default="15"),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("evaluated_by", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_impact_scores_assessment_id", "impact_scores", ["assessment_id"])

    # Approval history
    op.create_table(
        "approval_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("assessment_id", sa.String(36), sa.ForeignKey("assessments.id"), nullable=False),
        sa.Column("from_status", sa.String(30), nullable=False),
        sa.Column("to_status", sa.String(30), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("performed_by", sa.String(36), nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_approval_history_assessment_id", "approval_history", ["assessment_id"])


def downgrade() -> None:
    op.drop_table("approval_history")
    op.drop_table("impact_scores")
    op.drop_table("qualitative_scores")
    op.drop_table("assessment_items")
    op.drop_table("assessments")
    op.drop_table("report_access_policies")
    op.drop_table("profiles")
    op.drop_table("ctam_categories")
    op.drop_table("health_offices")
    op.drop_table("hospitals")
    op.drop_table("provinces")
    op.drop_table("health_regions")
