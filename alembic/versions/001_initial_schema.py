"""Create tenant, identity and EHS domain tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

ENUM_TYPES = (
    'tenant_status',
    'invoice_status',
    'tenant_role',
    'document_kind',
    'document_status',
    'incident_type',
    'incident_status',
    'risk_status',
    'measure_status',
    'chemical_status',
)

TABLES_WITH_UPDATED_AT = (
    'tenants',
    'users',
    'documents',
    'incidents',
    'risks',
    'measures',
    'chemicals',
)


def _id_column() -> sa.Column:
    return sa.Column('id', UUID(as_uuid=True), primary_key=True, nullable=False, server_default=sa.text('gen_random_uuid()'))


def _tenant_column() -> sa.Column:
    return sa.Column('tenant_id', UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False)


def _user_ref(name: str) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    # Tenants and identity
    op.create_table(
        'tenants',
        _id_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('org_number', sa.String(32), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'TRIAL', 'SUSPENDED', 'CANCELLED', name='tenant_status'), nullable=False, server_default='TRIAL'),
        *_timestamps(),
    )
    op.create_index('idx_tenants_status', 'tenants', ['status'])

    op.create_table(
        'users',
        _id_column(),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('is_superadmin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_support', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        sa.Column('last_tenant_id', UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'user_tenants',
        _id_column(),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _tenant_column(),
        sa.Column(
            'role',
            sa.Enum('ADMIN', 'HMS', 'LEDER', 'VERNEOMBUD', 'ANSATT', 'BHT', 'REVISOR', name='tenant_role'),
            nullable=False,
            server_default='ANSATT',
        ),
        sa.Column('department', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('user_id', 'tenant_id', name='uq_user_tenants_user_tenant'),
    )
    op.create_index('idx_user_tenants_tenant_role', 'user_tenants', ['tenant_id', 'role'])

    op.create_table(
        'invoices',
        _id_column(),
        _tenant_column(),
        sa.Column('status', sa.Enum('PENDING', 'PAID', 'OVERDUE', name='invoice_status'), nullable=False, server_default='PENDING'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('idx_invoices_tenant_status', 'invoices', ['tenant_id', 'status'])

    # Domain tables
    op.create_table(
        'documents',
        _id_column(),
        _tenant_column(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('kind', sa.Enum('LAW', 'PROCEDURE', 'CHECKLIST', 'FORM', 'SDS', 'PLAN', 'OTHER', name='document_kind'), nullable=False, server_default='OTHER'),
        sa.Column('status', sa.Enum('DRAFT', 'APPROVED', 'ARCHIVED', name='document_status'), nullable=False, server_default='DRAFT'),
        sa.Column('version', sa.String(32), nullable=False, server_default='1.0'),
        sa.Column('content', sa.Text(), nullable=True),
        _user_ref('owner_id'),
        _user_ref('approved_by'),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('next_review_date', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_documents_tenant_status', 'documents', ['tenant_id', 'status'])

    op.create_table(
        'incidents',
        _id_column(),
        _tenant_column(),
        sa.Column('type', sa.Enum('AVVIK', 'NESTEN', 'SKADE', 'MILJO', 'KVALITET', 'HMS', 'CUSTOMER', name='incident_type'), nullable=False),
        sa.Column('status', sa.Enum('OPEN', 'INVESTIGATING', 'ACTION_TAKEN', 'CLOSED', name='incident_status'), nullable=False, server_default='OPEN'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('severity', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('immediate_action', sa.Text(), nullable=True),
        _user_ref('reported_by'),
        sa.Column('root_cause', sa.Text(), nullable=True),
        sa.Column('contributing_factors', sa.Text(), nullable=True),
        _user_ref('investigated_by'),
        sa.Column('investigated_at', sa.DateTime(), nullable=True),
        sa.Column('effectiveness_review', sa.Text(), nullable=True),
        sa.Column('lessons_learned', sa.Text(), nullable=True),
        _user_ref('closed_by'),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('severity BETWEEN 1 AND 5', name='ck_incidents_severity'),
    )
    op.create_index('idx_incidents_tenant_status', 'incidents', ['tenant_id', 'status'])

    op.create_table(
        'risks',
        _id_column(),
        _tenant_column(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('context', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('likelihood', sa.Integer(), nullable=False),
        sa.Column('consequence', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('OPEN', 'MITIGATING', 'ACCEPTED', 'CLOSED', name='risk_status'), nullable=False, server_default='OPEN'),
        _user_ref('owner_id'),
        *_timestamps(),
        sa.CheckConstraint('likelihood BETWEEN 1 AND 5', name='ck_risks_likelihood'),
        sa.CheckConstraint('consequence BETWEEN 1 AND 5', name='ck_risks_consequence'),
    )
    op.create_index('idx_risks_tenant_status', 'risks', ['tenant_id', 'status'])

    op.create_table(
        'measures',
        _id_column(),
        _tenant_column(),
        sa.Column('incident_id', UUID(as_uuid=True), sa.ForeignKey('incidents.id', ondelete='CASCADE'), nullable=True),
        sa.Column('risk_id', UUID(as_uuid=True), sa.ForeignKey('risks.id', ondelete='CASCADE'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'IN_PROGRESS', 'DONE', name='measure_status'), nullable=False, server_default='PENDING'),
        _user_ref('responsible_id'),
        sa.Column('due_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_measures_tenant_incident', 'measures', ['tenant_id', 'incident_id'])

    op.create_table(
        'chemicals',
        _id_column(),
        _tenant_column(),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('supplier', sa.String(255), nullable=True),
        sa.Column('cas_number', sa.String(64), nullable=True),
        sa.Column('hazard_class', sa.String(255), nullable=True),
        sa.Column('h_statements', sa.Text(), nullable=True),
        sa.Column('p_statements', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=True),
        sa.Column('unit', sa.String(32), nullable=True),
        sa.Column('sds_key', sa.String(512), nullable=True),
        sa.Column('sds_version', sa.String(64), nullable=True),
        sa.Column('sds_date', sa.DateTime(), nullable=True),
        sa.Column('next_review_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'PHASED_OUT', 'ARCHIVED', name='chemical_status'), nullable=False, server_default='ACTIVE'),
        _user_ref('created_by'),
        _user_ref('updated_by'),
        *_timestamps(),
    )
    op.create_index('idx_chemicals_tenant_status', 'chemicals', ['tenant_id', 'status'])

    op.create_table(
        'notifications',
        _id_column(),
        _tenant_column(),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(512), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('idx_notifications_tenant_user', 'notifications', ['tenant_id', 'user_id', 'read'])

    op.create_table(
        'audit_logs',
        _id_column(),
        _tenant_column(),
        _user_ref('user_id'),
        sa.Column('action', sa.String(128), nullable=False),
        sa.Column('resource', sa.String(255), nullable=False),
        sa.Column('metadata', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('idx_audit_logs_tenant_created', 'audit_logs', ['tenant_id', 'created_at'])

    # Create function to update updated_at timestamp
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = CURRENT_TIMESTAMP;
            RETURN NEW;
        END;
        $$ language 'plpgsql';
    """)

    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    # Drop triggers
    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    # Drop function
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # Drop tables (children first)
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('chemicals')
    op.drop_table('measures')
    op.drop_table('risks')
    op.drop_table('incidents')
    op.drop_table('documents')
    op.drop_table('invoices')
    op.drop_table('user_tenants')
    op.drop_table('users')
    op.drop_table('tenants')

    # Drop enum types
    for enum_name in reversed(ENUM_TYPES):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
