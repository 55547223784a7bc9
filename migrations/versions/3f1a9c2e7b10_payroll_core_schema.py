"""payroll core schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2025-06-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('dol', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_employees_company_id', 'employees', ['company_id'])

    op.create_table(
        'employee_pay_profile',
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('effective_from', sa.Date(), primary_key=True),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('monthly_salary', sa.Numeric(12, 2), nullable=True),
        sa.Column('hourly_rate', sa.Numeric(12, 4), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'pay_periods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(length=120), nullable=True),
        sa.Column('status', sa.Enum('open', 'closed', name='pay_period_status_enum'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('start_date', 'end_date', name='uq_pay_period_range'),
    )

    op.create_table(
        'holidays',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_regular', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('date'),
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('clock_in', sa.Time(), nullable=True),
        sa.Column('clock_out', sa.Time(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=True),
        sa.Column('scheduled_start', sa.Time(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'work_date', name='uq_attendance_emp_date'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])

    op.create_table(
        'overtime_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('override_rate', sa.Numeric(6, 4), nullable=True),
        sa.Column('allowance', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_overtime_requests_employee_id', 'overtime_requests', ['employee_id'])
    op.create_index('ix_ot_emp_date', 'overtime_requests', ['employee_id', 'work_date'])

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'employee_leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('opening_balance', sa.Numeric(5, 2), nullable=False),
        sa.Column('accrued', sa.Numeric(5, 2), nullable=False),
        sa.Column('used', sa.Numeric(5, 2), nullable=False),
        sa.Column('adjusted', sa.Numeric(5, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'leave_type_id', 'year', name='uq_emp_leave_bal_year'),
    )
    op.create_index('ix_employee_leave_balances_employee_id', 'employee_leave_balances', ['employee_id'])
    op.create_index('ix_employee_leave_balances_leave_type_id', 'employee_leave_balances', ['leave_type_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])

    op.create_table(
        'stat_configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.Enum('SSS', 'PHILHEALTH', 'PAGIBIG', 'WTAX', name='statconfig_type'), nullable=False),
        sa.Column('key', sa.String(length=80), nullable=False),
        sa.Column('value_json', sa.JSON(), nullable=False),
        sa.Column('scope_company_id', sa.Integer(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_statcfg_resolve', 'stat_configs',
                    ['type', 'scope_company_id', 'effective_from', 'effective_to', 'priority'])

    op.create_table(
        'payroll_results',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pay_period_id', sa.Integer(), sa.ForeignKey('pay_periods.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(12, 4), nullable=False),
        sa.Column('earnings', sa.Numeric(14, 2), nullable=True),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=True),
        sa.Column('statutory', sa.Numeric(14, 2), nullable=True),
        sa.Column('gross_pay', sa.Numeric(14, 2), nullable=True),
        sa.Column('net_pay', sa.Numeric(14, 2), nullable=True),
        sa.Column('breakdown', sa.JSON(), nullable=False),
        sa.Column('computed_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'pay_period_id', name='uq_payroll_result_emp_period'),
    )
    op.create_index('ix_payroll_results_employee_id', 'payroll_results', ['employee_id'])
    op.create_index('ix_payroll_results_pay_period_id', 'payroll_results', ['pay_period_id'])


def downgrade() -> None:
    op.drop_table('payroll_results')
    op.drop_index('ix_statcfg_resolve', table_name='stat_configs')
    op.drop_table('stat_configs')
    op.drop_table('leave_requests')
    op.drop_table('employee_leave_balances')
    op.drop_table('leave_types')
    op.drop_table('overtime_requests')
    op.drop_table('attendance_records')
    op.drop_table('holidays')
    op.drop_table('pay_periods')
    op.drop_table('employee_pay_profile')
    op.drop_table('employees')
    sa.Enum(name='statconfig_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='pay_period_status_enum').drop(op.get_bind(), checkfirst=True)
