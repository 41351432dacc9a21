"""
Sportradar integrations.
"""

from .client import SportradarNBAClient
from .nba import GAME_STATUS_MESSAGES, NBASportradarDevice
from .teams import TeamReference, find_team, load_team_reference, sync_team_reference

__all__ = [
    "GAME_STATUS_MESSAGES",
    "NBASportradarDevice",
    "SportradarNBAClient",
    "TeamReference",
    "find_team",
    "load_team_reference",
    "sync_team_reference",
]
