from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from .db import Base


class Game(Base):
    __tablename__ = "game"
    id = Column(String, primary_key=True)
    season_code = Column(String, nullable=False)
    competition_code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="scheduled")


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)


class GamePlayer(Base):
    __tablename__ = "game_player"
    game_id = Column(String, ForeignKey("game.id", ondelete="CASCADE"), primary_key=True)
    player_id = Column(String, ForeignKey("player.id", ondelete="CASCADE"), primary_key=True)
    # roster order, which is also the slot order handed to the scorer
    position = Column(Integer, nullable=False)


class Match(Base):
    __tablename__ = "match"
    # "{competition}-{season}-{home}-{away}-{matchday}"
    id = Column(String, primary_key=True)
    home_team = Column(String, nullable=False)
    away_team = Column(String, nullable=False)
    season_code = Column(String, nullable=False)
    competition_code = Column(String, nullable=False)
    matchday = Column(Integer, nullable=False)
    match_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    home_goals = Column(Integer, nullable=True)
    away_goals = Column(Integer, nullable=True)
    home_odds = Column(Float, nullable=False, default=0.0)
    draw_odds = Column(Float, nullable=False, default=0.0)
    away_odds = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_match_season_competition", "season_code", "competition_code"),
    )


class GameMatch(Base):
    __tablename__ = "game_match"
    game_id = Column(String, ForeignKey("game.id", ondelete="CASCADE"), primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), primary_key=True)
    # True once the match scores were applied to the game
    is_past = Column(Boolean, nullable=False, default=False)


class Bet(Base):
    __tablename__ = "bet"
    game_id = Column(String, ForeignKey("game.id", ondelete="CASCADE"), primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), primary_key=True)
    player_id = Column(String, ForeignKey("player.id", ondelete="CASCADE"), primary_key=True)
    predicted_home_goals = Column(Integer, nullable=False)
    predicted_away_goals = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "game_id",
            "match_id",
            "player_id",
            name="uq_bet_game_match_player",
        ),
    )


class Score(Base):
    __tablename__ = "score"
    game_id = Column(String, ForeignKey("game.id", ondelete="CASCADE"), primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), primary_key=True)
    player_id = Column(String, ForeignKey("player.id", ondelete="CASCADE"), primary_key=True)
    points = Column(Integer, nullable=False)


class GameCode(Base):
    __tablename__ = "game_code"
    code = Column(String(4), primary_key=True)
    game_id = Column(String, ForeignKey("game.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_game_code_game_id", "game_id"),)
