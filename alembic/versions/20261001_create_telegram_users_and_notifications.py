"""create telegram_users and bounty_notifications

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Подписчики: настройки по умолчанию до прохождения онбординга
    op.create_table(
        'telegram_users',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=False),  # Telegram user ID
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('region', sa.String(50), nullable=False, server_default='GLOBAL'),
        sa.Column('skills', sa.JSON(), nullable=False, server_default=sa.text("'[\"ALL\"]'")),
        sa.Column('notification_preferences', sa.String(20), nullable=False, server_default='NONE'),
        sa.Column('min_reward_ask', sa.Float(), nullable=False, server_default='0'),
        sa.Column('setup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_telegram_users_setup_prefs', 'telegram_users', ['setup', 'notification_preferences'])

    # Отложенные уведомления
    op.create_table(
        'bounty_notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'telegram_user_id', sa.BigInteger(),
            sa.ForeignKey('telegram_users.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('bounty_id', sa.String(36), nullable=False),
        sa.Column('notification_type', sa.String(30), nullable=False),  # NEW_LISTING, REGION_UPDATED, DEADLINE_UPDATED
        sa.Column('bounty_details', sa.JSON(), nullable=False),
        sa.Column('send_at', sa.DateTime(), nullable=False),
        sa.Column('sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_bounty_notifications_telegram_user_id', 'bounty_notifications', ['telegram_user_id'])
    op.create_index('ix_bounty_notifications_bounty_id', 'bounty_notifications', ['bounty_id'])
    op.create_index('ix_bounty_notifications_sent_send_at', 'bounty_notifications', ['sent', 'send_at'])
    op.create_index('ix_bounty_notifications_sent_created', 'bounty_notifications', ['sent', 'created_at'])

    # Одна запись на (пользователь, листинг, тип изменения, sent)
    op.create_unique_constraint(
        'uq_bounty_notification_user_bounty_type_sent',
        'bounty_notifications',
        ['telegram_user_id', 'bounty_id', 'notification_type', 'sent']
    )


def downgrade() -> None:
    op.drop_constraint('uq_bounty_notification_user_bounty_type_sent', 'bounty_notifications')
    op.drop_index('ix_bounty_notifications_sent_created', table_name='bounty_notifications')
    op.drop_index('ix_bounty_notifications_sent_send_at', table_name='bounty_notifications')
    op.drop_index('ix_bounty_notifications_bounty_id', table_name='bounty_notifications')
    op.drop_index('ix_bounty_notifications_telegram_user_id', table_name='bounty_notifications')
    op.drop_table('bounty_notifications')

    op.drop_index('ix_telegram_users_setup_prefs', table_name='telegram_users')
    op.drop_table('telegram_users')
