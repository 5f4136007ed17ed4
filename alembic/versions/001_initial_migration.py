"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('ADMIN', 'DOCTOR', 'NURSE', 'RECEPTIONIST', name='userrole')
gender = sa.Enum('MALE', 'FEMALE', 'OTHER', name='gender')
bed_status = sa.Enum('AVAILABLE', 'OCCUPIED', 'MAINTENANCE', 'BLOCKED', name='bedstatus')
admission_status = sa.Enum('ACTIVE', 'DISCHARGED', name='admissionstatus')
payment_status = sa.Enum('PENDING', 'PAID', 'COMPLETED', name='paymentstatus')


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    
    # Create patients table
    op.create_table(
        'patients',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('patient_number', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('gender', gender, nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_patients_patient_number', 'patients', ['patient_number'], unique=True)
    
    # Create wards table
    op.create_table(
        'wards',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('floor', sa.String(length=20), nullable=True),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    
    # Create bed_types table
    op.create_table(
        'bed_types',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('ward_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('daily_rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('max_occupancy', sa.Integer(), nullable=True),
        sa.Column('amenities', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['ward_id'], ['wards.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ward_id', 'name', name='unique_bed_type_name_per_ward')
    )
    
    # Create beds table
    op.create_table(
        'beds',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('ward_id', sa.String(length=36), nullable=False),
        sa.Column('bed_type_id', sa.String(length=36), nullable=False),
        sa.Column('bed_number', sa.String(length=20), nullable=False),
        sa.Column('status', bed_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['ward_id'], ['wards.id']),
        sa.ForeignKeyConstraint(['bed_type_id'], ['bed_types.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ward_id', 'bed_number', name='unique_bed_number_per_ward')
    )
    
    # Create admissions table
    op.create_table(
        'admissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('patient_id', sa.String(length=36), nullable=False),
        sa.Column('bed_id', sa.String(length=36), nullable=False),
        sa.Column('admitted_by', sa.String(length=36), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('chief_complaint', sa.Text(), nullable=True),
        sa.Column('estimated_stay', sa.Integer(), nullable=True),
        sa.Column('status', admission_status, nullable=False),
        sa.Column('discharge_date', sa.DateTime(), nullable=True),
        sa.Column('discharge_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.ForeignKeyConstraint(['bed_id'], ['beds.id']),
        sa.ForeignKeyConstraint(['admitted_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_admissions_patient_id', 'admissions', ['patient_id'], unique=False)
    op.create_index('ix_admissions_status', 'admissions', ['status'], unique=False)
    
    # Create bills table
    op.create_table(
        'bills',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('bill_number', sa.String(length=50), nullable=False),
        sa.Column('patient_id', sa.String(length=36), nullable=False),
        sa.Column('doctor_id', sa.String(length=36), nullable=True),
        sa.Column('admission_id', sa.String(length=36), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('cgst', sa.Numeric(12, 2), nullable=False),
        sa.Column('sgst', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('final_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('balance_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.ForeignKeyConstraint(['doctor_id'], ['users.id']),
        sa.ForeignKeyConstraint(['admission_id'], ['admissions.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bills_bill_number', 'bills', ['bill_number'], unique=True)
    op.create_index('ix_bills_admission_id', 'bills', ['admission_id'], unique=False)
    
    # Create bill_items table
    op.create_table(
        'bill_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('bill_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=30), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('gst_rate', sa.Numeric(5, 2), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bill_items_bill_id', 'bill_items', ['bill_id'], unique=False)
    
    # Create billing_transactions table
    op.create_table(
        'billing_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('admission_id', sa.String(length=36), nullable=False),
        sa.Column('bill_id', sa.String(length=36), nullable=True),
        sa.Column('patient_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(length=255), nullable=True),
        sa.Column('posting_key', sa.String(length=255), nullable=True),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('processed_by', sa.String(length=36), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['admission_id'], ['admissions.id']),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id']),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('posting_key')
    )
    op.create_index('ix_billing_transactions_admission_id', 'billing_transactions', ['admission_id'], unique=False)
    op.create_index('ix_billing_transactions_reference', 'billing_transactions', ['reference'], unique=False)
    op.create_index('ix_billing_transactions_processed_at', 'billing_transactions', ['processed_at'], unique=False)


def downgrade() -> None:
    op.drop_table('billing_transactions')
    op.drop_table('bill_items')
    op.drop_table('bills')
    op.drop_table('admissions')
    op.drop_table('beds')
    op.drop_table('bed_types')
    op.drop_table('wards')
    op.drop_table('patients')
    op.drop_table('users')
    
    # Drop enums
    for enum_type in (payment_status, admission_status, bed_status, gender, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
