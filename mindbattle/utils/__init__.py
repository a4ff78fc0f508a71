"""Utilities module."""
from mindbattle.utils.datetime_helpers import ensure_utc, utc_now, to_epoch_ms, from_epoch_ms
from mindbattle.utils.ids import generate_id

__all__ = ["ensure_utc", "utc_now", "to_epoch_ms", "from_epoch_ms", "generate_id"]
