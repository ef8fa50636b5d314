"""initial stock ledger and maintenance tables

Revision ID: 20250115_01
Revises:
Create Date: 2025-01-15

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20250115_01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    # ===== MASTER DATA =====
    if 'materials' not in existing_tables:
        op.create_table(
            'materials',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('code', sa.String(length=50), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('unit', sa.String(length=20), nullable=False),
            sa.Column('reorder_point', sa.Numeric(14, 4), nullable=False, server_default='0'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_materials_code', 'materials', ['code'], unique=True)

    if 'warehouses' not in existing_tables:
        op.create_table(
            'warehouses',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('code', sa.String(length=50), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_warehouses_code', 'warehouses', ['code'], unique=True)

    # ===== STOCK LEDGER =====
    if 'material_stocks' not in existing_tables:
        op.create_table(
            'material_stocks',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('material_id', sa.Integer(), nullable=False),
            sa.Column('warehouse_id', sa.Integer(), nullable=False),
            sa.Column('quantity', sa.Numeric(14, 4), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
            sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('material_id', 'warehouse_id', name='uq_stock_material_warehouse'),
            sa.CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
        )
        op.create_index('ix_material_stocks_material_id', 'material_stocks', ['material_id'])
        op.create_index('ix_material_stocks_warehouse_id', 'material_stocks', ['warehouse_id'])

    if 'material_transactions' not in existing_tables:
        op.create_table(
            'material_transactions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('transaction_number', sa.String(length=30), nullable=False),
            sa.Column('transaction_type', sa.String(length=20), nullable=False),
            sa.Column('material_id', sa.Integer(), nullable=False),
            sa.Column('from_warehouse_id', sa.Integer(), nullable=True),
            sa.Column('to_warehouse_id', sa.Integer(), nullable=True),
            sa.Column('quantity', sa.Numeric(14, 4), nullable=False),
            sa.Column('unit_price', sa.Numeric(14, 2), nullable=True),
            sa.Column('remarks', sa.Text(), nullable=True),
            sa.Column('reference_type', sa.String(length=50), nullable=True),
            sa.Column('reference_id', sa.String(length=50), nullable=True),
            sa.Column('transaction_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
            sa.ForeignKeyConstraint(['from_warehouse_id'], ['warehouses.id']),
            sa.ForeignKeyConstraint(['to_warehouse_id'], ['warehouses.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.CheckConstraint('quantity >= 0', name='ck_transaction_quantity_non_negative'),
        )
        op.create_index('ix_material_transactions_transaction_number', 'material_transactions', ['transaction_number'], unique=True)
        op.create_index('ix_material_transactions_transaction_type', 'material_transactions', ['transaction_type'])
        op.create_index('ix_material_transactions_material_id', 'material_transactions', ['material_id'])
        op.create_index('ix_material_transactions_from_warehouse_id', 'material_transactions', ['from_warehouse_id'])
        op.create_index('ix_material_transactions_to_warehouse_id', 'material_transactions', ['to_warehouse_id'])
        op.create_index('ix_material_transactions_transaction_date', 'material_transactions', ['transaction_date'])
        op.create_index('ix_transaction_material_date', 'material_transactions', ['material_id', 'transaction_date'])

    if 'document_sequences' not in existing_tables:
        op.create_table(
            'document_sequences',
            sa.Column('prefix', sa.String(length=30), nullable=False),
            sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.PrimaryKeyConstraint('prefix'),
        )

    # ===== MAINTENANCE =====
    if 'maintenance_requests' not in existing_tables:
        op.create_table(
            'maintenance_requests',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('request_number', sa.String(length=30), nullable=False),
            sa.Column('equipment_id', sa.Integer(), nullable=False),
            sa.Column('requester_id', sa.Integer(), nullable=False),
            sa.Column('type', sa.String(length=20), nullable=False),
            sa.Column('priority', sa.String(length=10), nullable=False, server_default='MEDIUM'),
            sa.Column('title', sa.String(length=200), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('desired_date', sa.Date(), nullable=True),
            sa.Column('requested_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_maintenance_requests_request_number', 'maintenance_requests', ['request_number'], unique=True)
        for column in ('equipment_id', 'requester_id', 'type', 'priority', 'requested_date', 'status'):
            op.create_index(f'ix_maintenance_requests_{column}', 'maintenance_requests', [column])

    if 'maintenance_plans' not in existing_tables:
        op.create_table(
            'maintenance_plans',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('plan_number', sa.String(length=30), nullable=False),
            sa.Column('request_id', sa.Integer(), nullable=True),
            sa.Column('equipment_id', sa.Integer(), nullable=False),
            sa.Column('type', sa.String(length=20), nullable=False),
            sa.Column('title', sa.String(length=200), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('planned_start_date', sa.Date(), nullable=False),
            sa.Column('planned_end_date', sa.Date(), nullable=True),
            sa.Column('estimated_hours', sa.Numeric(8, 2), nullable=True),
            sa.Column('estimated_cost', sa.Numeric(14, 2), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.ForeignKeyConstraint(['request_id'], ['maintenance_requests.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_maintenance_plans_plan_number', 'maintenance_plans', ['plan_number'], unique=True)
        for column in ('request_id', 'equipment_id', 'type', 'planned_start_date', 'status'):
            op.create_index(f'ix_maintenance_plans_{column}', 'maintenance_plans', [column])

    if 'maintenance_plan_materials' not in existing_tables:
        op.create_table(
            'maintenance_plan_materials',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('plan_id', sa.Integer(), nullable=False),
            sa.Column('material_id', sa.Integer(), nullable=False),
            sa.Column('quantity', sa.Numeric(14, 4), nullable=False),
            sa.Column('used_quantity', sa.Numeric(14, 4), nullable=True),
            sa.ForeignKeyConstraint(['plan_id'], ['maintenance_plans.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_maintenance_plan_materials_plan_id', 'maintenance_plan_materials', ['plan_id'])
        op.create_index('ix_maintenance_plan_materials_material_id', 'maintenance_plan_materials', ['material_id'])

    if 'maintenance_works' not in existing_tables:
        op.create_table(
            'maintenance_works',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('work_number', sa.String(length=30), nullable=False),
            sa.Column('plan_id', sa.Integer(), nullable=False),
            sa.Column('assigned_to_id', sa.Integer(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='ASSIGNED'),
            sa.Column('started_at', sa.DateTime(), nullable=True),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.Column('actual_hours', sa.Numeric(8, 2), nullable=True),
            sa.Column('work_report', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.ForeignKeyConstraint(['plan_id'], ['maintenance_plans.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_maintenance_works_work_number', 'maintenance_works', ['work_number'], unique=True)
        for column in ('plan_id', 'assigned_to_id', 'status'):
            op.create_index(f'ix_maintenance_works_{column}', 'maintenance_works', [column])


def downgrade() -> None:
    op.drop_table('maintenance_works')
    op.drop_table('maintenance_plan_materials')
    op.drop_table('maintenance_plans')
    op.drop_table('maintenance_requests')
    op.drop_table('document_sequences')
    op.drop_table('material_transactions')
    op.drop_table('material_stocks')
    op.drop_table('warehouses')
    op.drop_table('materials')
