"""initial_schema

Revision ID: 000000000000
Revises: 
Create Date: 2025-11-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from geoalchemy2 import Geometry

# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # Create hubzones table
    op.create_table(
        'hubzones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('geoid', sa.String(length=11), nullable=False, comment='11-digit census tract GEOID'),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Display name (Census Tract 4.01)'),
        sa.Column('hubzone_type', sa.String(length=50), nullable=False, comment='Qualifying-area category'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='active, expired, pending, redesignated'),
        sa.Column('state', sa.String(length=2), nullable=True, comment='State FIPS'),
        sa.Column('county', sa.String(length=3), nullable=True, comment='County FIPS'),
        sa.Column('tract_id', sa.String(length=6), nullable=True, comment='Tract code'),
        sa.Column('designation_date', sa.Date(), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('is_redesignated', sa.Boolean(), server_default=sa.text('FALSE'), nullable=False),
        sa.Column('grace_period_end_date', sa.Date(), nullable=True),
        sa.Column('source_dataset', sa.String(length=30), nullable=True, comment='sba_api, public_dataset, census_acs'),
        sa.Column('geometry', Geometry(geometry_type='MULTIPOLYGON', srid=4326, spatial_index=False), nullable=True),
        sa.Column('boundary', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Tract boundary as GeoJSON'),
        sa.Column('last_import_id', sa.String(length=64), nullable=True, comment='Import that last wrote this row'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('geoid'),
        sa.CheckConstraint("status IN ('active', 'expired', 'pending', 'redesignated')", name='check_hubzone_status_valid')
    )
    op.create_index('idx_hubzones_status', 'hubzones', ['status'], unique=False)
    op.create_index('idx_hubzones_state', 'hubzones', ['state'], unique=False)
    op.create_index('idx_hubzones_geometry', 'hubzones', ['geometry'], unique=False, postgresql_using='gist')

    # Create businesses table
    op.create_table(
        'businesses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('principal_office_address', sa.String(length=255), nullable=True),
        sa.Column('principal_office_lat', sa.Numeric(precision=10, scale=7), nullable=True, comment='Principal office latitude'),
        sa.Column('principal_office_lon', sa.Numeric(precision=10, scale=7), nullable=True, comment='Principal office longitude'),
        sa.Column('is_hubzone_certified', sa.Boolean(), server_default=sa.text('FALSE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create hubzone_map_updates table
    op.create_table(
        'hubzone_map_updates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('import_id', sa.String(length=64), nullable=False),
        sa.Column('source_type', sa.String(length=50), server_default='tiger_line', nullable=False),
        sa.Column('source_version', sa.String(length=20), nullable=True, comment='TIGER/Line vintage'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('statistics', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('affected_business_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('dry_run', sa.Boolean(), server_default=sa.text('FALSE'), nullable=False),
        sa.Column('triggered_by', sa.String(length=50), nullable=True, comment='cli, airflow, manual'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('import_id'),
        sa.CheckConstraint("status IN ('in_progress', 'completed', 'failed')", name='check_map_update_status_valid')
    )
    op.create_index('idx_hubzone_map_updates_started_at', 'hubzone_map_updates', ['started_at'], unique=False, postgresql_ops={'started_at': 'DESC'})

    # Create hubzone_import_logs table
    op.create_table(
        'hubzone_import_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('import_id', sa.String(length=64), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('new_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('expired_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('redesignated_count', sa.Integer(), server_default='0', nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_hubzone_import_logs_import_id', 'hubzone_import_logs', ['import_id'], unique=False)

    # Create hubzone_change_notifications table
    op.create_table(
        'hubzone_change_notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('import_id', sa.String(length=64), nullable=False),
        sa.Column('change_type', sa.String(length=20), nullable=False),
        sa.Column('affected_geoid', sa.String(length=11), nullable=False),
        sa.Column('hubzone_name', sa.String(length=255), nullable=True),
        sa.Column('grace_period_end_date', sa.Date(), nullable=True),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'import_id', 'affected_geoid', name='uq_change_notification'),
        sa.CheckConstraint("change_type IN ('gained', 'lost', 'redesignated')", name='check_change_type_valid')
    )

    # Create compliance_alerts table
    op.create_table(
        'compliance_alerts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), server_default='principal_office', nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('action_required', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("severity IN ('low', 'medium', 'high', 'critical')", name='check_alert_severity_valid')
    )
    op.create_index('ix_compliance_alerts_business_id', 'compliance_alerts', ['business_id'], unique=False)


def downgrade() -> None:
    op.drop_table('compliance_alerts')
    op.drop_table('hubzone_change_notifications')
    op.drop_table('hubzone_import_logs')
    op.drop_table('hubzone_map_updates')
    op.drop_table('businesses')
    op.drop_table('hubzones')
