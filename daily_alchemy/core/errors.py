"""
Error kinds surfaced by the engine.

Each kind carries a stable ``code`` (rendered to clients) and the HTTP status
the API layer maps it to. Services raise these; ``daily_alchemy.main`` turns
them into JSON responses.
"""


class EngineError(Exception):
    code = "Internal"
    status_code = 500

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidName(EngineError):
    code = "InvalidName"
    status_code = 400


class InvalidOracleResponse(EngineError):
    code = "InvalidOracleResponse"
    status_code = 400


class InvalidCombination(EngineError):
    code = "InvalidCombination"
    status_code = 400


class InvalidSolutionPath(EngineError):
    code = "InvalidSolutionPath"
    status_code = 400


class InvalidOutcome(EngineError):
    code = "InvalidOutcome"
    status_code = 400


class ElementNotInBank(EngineError):
    code = "ElementNotInBank"
    status_code = 400


class PermissionDenied(EngineError):
    code = "PermissionDenied"
    status_code = 403


class PuzzleNotFound(EngineError):
    code = "PuzzleNotFound"
    status_code = 404


class CombinationNotFound(EngineError):
    code = "CombinationNotFound"
    status_code = 404


class DuplicateDate(EngineError):
    code = "DuplicateDate"
    status_code = 409


class ConflictingCombination(EngineError):
    code = "ConflictingCombination"
    status_code = 409


class PathUnreachable(EngineError):
    code = "PathUnreachable"
    status_code = 422


class BusyTryAgain(EngineError):
    code = "BusyTryAgain"
    status_code = 423


class OracleUnavailable(EngineError):
    code = "OracleUnavailable"
    status_code = 503


class Internal(EngineError):
    code = "Internal"
    status_code = 500


class InvalidPuzzle(EngineError):
    code = "InvalidPuzzle"
    status_code = 400
