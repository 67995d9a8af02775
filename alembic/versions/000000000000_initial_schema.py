"""initial_schema

Revision ID: 000000000000
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON(none_as_null=True).with_variant(postgresql.JSONB(none_as_null=True), 'postgresql')


def upgrade() -> None:
    # Create scrape_jobs table
    op.create_table(
        'scrape_jobs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('query', JSON_TYPE, nullable=False, comment='Scrape query as submitted'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='Job status: queued, running, succeeded, failed'),
        sa.Column('meta', JSON_TYPE, nullable=True, comment='Advisory progress payload (stage, percent, counts, caveats)'),
        sa.Column('error', sa.Text(), nullable=True, comment='Truncated aggregated error text'),
        sa.Column('records_inserted', sa.Integer(), nullable=False, comment='Rows successfully written by this job'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True, comment='Time the runner moved the job to running'),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True, comment='Time the job reached a terminal status'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('queued', 'running', 'succeeded', 'failed')",
            name='check_scrape_job_status_valid'
        ),
        sa.CheckConstraint('records_inserted >= 0', name='check_records_inserted_non_negative')
    )
    op.create_index('idx_scrape_jobs_status', 'scrape_jobs', ['status'], unique=False)
    op.create_index('idx_scrape_jobs_created_at', 'scrape_jobs', ['created_at'], unique=False)

    # Create comparables table
    op.create_table(
        'comparables',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('canonical_address', sa.String(length=500), nullable=False, comment='Normalized comparison-ready address'),
        sa.Column('unit_plan', sa.String(length=100), server_default='', nullable=False, comment='Unit count / rent signature, e.g. 150u|$1.95psf|$1800pu'),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=10), nullable=True),
        sa.Column('asset_type', sa.String(length=50), nullable=False),
        sa.Column('units', sa.Integer(), nullable=True),
        sa.Column('year_built', sa.Integer(), nullable=True),
        sa.Column('rent_psf', sa.Float(), nullable=True, comment='Rent per square foot'),
        sa.Column('rent_pu', sa.Float(), nullable=True, comment='Rent per unit'),
        sa.Column('occupancy_pct', sa.Float(), nullable=True),
        sa.Column('concession_pct', sa.Float(), nullable=True),
        sa.Column('amenity_tags', JSON_TYPE, nullable=True, comment='Lowercase amenity tags; NULL when unknown'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('source', sa.String(length=100), nullable=False),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('job_id', sa.String(length=36), nullable=True, comment='Job that produced or last touched this row'),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['job_id'], ['scrape_jobs.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('canonical_address', 'unit_plan', name='uq_comparables_natural_key'),
        sa.CheckConstraint(
            'occupancy_pct IS NULL OR (occupancy_pct >= 0 AND occupancy_pct <= 100)',
            name='check_occupancy_pct_range'
        ),
        sa.CheckConstraint(
            'concession_pct IS NULL OR (concession_pct >= 0 AND concession_pct <= 100)',
            name='check_concession_pct_range'
        )
    )
    op.create_index('idx_comparables_city_state', 'comparables', ['city', 'state'], unique=False)
    op.create_index('idx_comparables_job_id', 'comparables', ['job_id'], unique=False)
    op.create_index('idx_comparables_updated_at', 'comparables', ['updated_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_comparables_updated_at', table_name='comparables')
    op.drop_index('idx_comparables_job_id', table_name='comparables')
    op.drop_index('idx_comparables_city_state', table_name='comparables')
    op.drop_table('comparables')

    op.drop_index('idx_scrape_jobs_created_at', table_name='scrape_jobs')
    op.drop_index('idx_scrape_jobs_status', table_name='scrape_jobs')
    op.drop_table('scrape_jobs')
