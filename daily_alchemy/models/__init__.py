from daily_alchemy.models.combination_model import ElementCombination
from daily_alchemy.models.lease_model import CombinationLease
from daily_alchemy.models.discovery_model import FirstDiscovery
from daily_alchemy.models.audit_model import CatalogAuditEvent
from daily_alchemy.models.puzzle_model import DailyPuzzle
from daily_alchemy.models.player_state_model import PlayerPuzzleState
from daily_alchemy.models.stats_model import GameStats, UserStats
