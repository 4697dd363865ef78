from daily_alchemy.schemas.element_schema import Element, CombineRequest, CombineResult, Conflict
from daily_alchemy.schemas.combination_schema import CombinationRecord, NewCombination, InsertOutcome
from daily_alchemy.schemas.path_schema import (
    Step, Path, GeneratePathsRequest, GeneratePathsResponse, SavePathRequest, SavePathResult, PathConflict
)
from daily_alchemy.schemas.puzzle_schema import (
    PuzzleCreate, PuzzleUpdate, PuzzleRead, PuzzlePublic, PuzzleEnvelope, PuzzleList
)
from daily_alchemy.schemas.session_schema import (
    SessionStart, SessionCombineRequest, FinalizeRequest, PlayerStateRead, SessionCombineResponse, HintResponse
)
from daily_alchemy.schemas.oracle_schema import OracleCombination, OraclePathsResponse
from daily_alchemy.schemas.stats_schema import UserStatsRead, FirstDiscoveryRead, FirstDiscoveryList
