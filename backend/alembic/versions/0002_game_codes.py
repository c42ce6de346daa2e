from alembic import op
import sqlalchemy as sa

revision = '0002_game_codes'
down_revision = '0001_initial'
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'game_code',
        sa.Column('code', sa.String(length=4), primary_key=True),
        sa.Column('game_id', sa.String(), sa.ForeignKey('game.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_game_code_game_id', 'game_code', ['game_id'])


def downgrade():
    op.drop_index('ix_game_code_game_id', table_name='game_code')
    op.drop_table('game_code')
