from daily_alchemy.services.catalog_store import CatalogStore
from daily_alchemy.services.lease_service import LeaseService
from daily_alchemy.services.combine_service import CombineService
from daily_alchemy.services.path_planner import PathPlanner
from daily_alchemy.services.path_save import PathSaveService
from daily_alchemy.services.puzzle_services import PuzzleServices
from daily_alchemy.services.stats_services import StatsService
from daily_alchemy.services.session_services import PlayerSessionService
