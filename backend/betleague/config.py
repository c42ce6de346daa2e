import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _parse_non_negative(env_var: str, default: float) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid number (got %r); defaulting to %s",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < 0:
        logger.warning("%s cannot be negative; defaulting to %s", env_var, default)
        return default

    return value


def _parse_origins(raw):
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Odds stop following the match source this long before kickoff.
ODDS_LOCK_MINUTES = _parse_non_negative("ODDS_LOCK_MINUTES", 6.0)

MATCH_POLL_INTERVAL_SECONDS = _parse_non_negative("MATCH_POLL_INTERVAL_SECONDS", 60.0)

ALLOWED_ORIGINS = _parse_origins(os.getenv("ALLOWED_ORIGINS"))

# A player may take part in at most this many games at once.
MAX_GAMES_PER_PLAYER = int(_parse_non_negative("MAX_GAMES_PER_PLAYER", 5))

# Invitation codes stop admitting players after this many days.
GAME_CODE_TTL_DAYS = _parse_non_negative("GAME_CODE_TTL_DAYS", 180.0)
