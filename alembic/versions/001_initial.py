"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    ]


def _owned_by_restaurant():
    return [
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('restaurant_id', sa.String(36), sa.ForeignKey('restaurants.id'), nullable=False),
    ]


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(255)),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255)),
        sa.Column('last_name', sa.String(255)),
        sa.Column('phone', sa.String(20)),
        sa.Column('roles', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), default=True),
        *_timestamps(),
    )

    # Create restaurants table
    op.create_table(
        'restaurants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('address', sa.Text()),
        sa.Column('opening_hours', sa.String(50)),
        sa.Column('closing_hours', sa.String(50)),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('tenant_id', sa.String(255), nullable=False),
        *_timestamps(),
    )

    # Create menus table
    op.create_table(
        'menus',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('price', sa.Integer()),
        sa.Column('category', sa.String(100)),
        sa.Column('restaurant_id', sa.String(36), sa.ForeignKey('restaurants.id'), nullable=False),
        *_timestamps(),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('date', sa.DateTime()),
        sa.Column('total_price', sa.Integer()),
        sa.Column('status', sa.String(50)),
        *_owned_by_restaurant(),
        *_timestamps(),
    )

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('date', sa.DateTime()),
        sa.Column('time', sa.String(20)),
        sa.Column('number_of_people', sa.Integer()),
        sa.Column('table_number', sa.Integer()),
        *_owned_by_restaurant(),
        *_timestamps(),
    )

    # Create reviews table
    op.create_table(
        'reviews',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('rating', sa.Integer()),
        sa.Column('comment', sa.Text()),
        sa.Column('date', sa.DateTime()),
        *_owned_by_restaurant(),
        *_timestamps(),
    )

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(255)),
        sa.Column('actor_id', sa.String(36)),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('resource_type', sa.String(50)),
        sa.Column('resource_id', sa.String(36)),
        sa.Column('data_json', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_restaurants_tenant_id', 'restaurants', ['tenant_id'])
    op.create_index('ix_menus_restaurant_id', 'menus', ['restaurant_id'])
    op.create_index('ix_orders_restaurant_id', 'orders', ['restaurant_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_reservations_restaurant_id', 'reservations', ['restaurant_id'])
    op.create_index('ix_reviews_restaurant_id', 'reviews', ['restaurant_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('reviews')
    op.drop_table('reservations')
    op.drop_table('orders')
    op.drop_table('menus')
    op.drop_table('restaurants')
    op.drop_table('users')
