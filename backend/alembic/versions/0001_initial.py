from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "game",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("season_code", sa.String(), nullable=False),
        sa.Column("competition_code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
    )
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_table(
        "game_player",
        sa.Column("game_id", sa.String(), sa.ForeignKey("game.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("home_team", sa.String(), nullable=False),
        sa.Column("away_team", sa.String(), nullable=False),
        sa.Column("season_code", sa.String(), nullable=False),
        sa.Column("competition_code", sa.String(), nullable=False),
        sa.Column("matchday", sa.Integer(), nullable=False),
        sa.Column("match_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("home_goals", sa.Integer(), nullable=True),
        sa.Column("away_goals", sa.Integer(), nullable=True),
        sa.Column("home_odds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("draw_odds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("away_odds", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_match_season_competition", "match", ["season_code", "competition_code"]
    )
    op.create_table(
        "game_match",
        sa.Column("game_id", sa.String(), sa.ForeignKey("game.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), primary_key=True),
        sa.Column("is_past", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "bet",
        sa.Column("game_id", sa.String(), sa.ForeignKey("game.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("predicted_home_goals", sa.Integer(), nullable=False),
        sa.Column("predicted_away_goals", sa.Integer(), nullable=False),
        sa.UniqueConstraint("game_id", "match_id", "player_id", name="uq_bet_game_match_player"),
    )
    op.create_table(
        "score",
        sa.Column("game_id", sa.String(), sa.ForeignKey("game.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("points", sa.Integer(), nullable=False),
    )

def downgrade():
    op.drop_table("score")
    op.drop_table("bet")
    op.drop_table("game_match")
    op.drop_index("ix_match_season_competition", table_name="match")
    op.drop_table("match")
    op.drop_table("game_player")
    op.drop_table("player")
    op.drop_table("game")
