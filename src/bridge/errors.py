from src.bridge.schemas import ErrorCode, Failure, failure


class BridgeError(Exception):
    """Base for faults raised by bridge and launcher collaborators."""

    code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_FAULT

    def to_failure(self) -> Failure:
        return failure(self.code, str(self))
