from enum import Enum
from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorCode(str, Enum):
    """Failure kinds surfaced in the response envelope."""
    ENVIRONMENT_MISSING = "EnvironmentMissing"
    NOT_INITIALIZED = "NotInitialized"
    NOT_AUTHENTICATED = "NotAuthenticated"
    INVALID_ARGUMENT = "InvalidArgument"
    UNKNOWN_COMMAND = "UnknownCommand"
    EXTERNAL_SERVICE_FAULT = "ExternalServiceFault"
    PROCESS_PROBE_FAILURE = "ProcessProbeFailure"


class BridgeState(BaseModel):
    """Lifecycle flags of one bridge; authenticated implies initialized."""

    model_config = ConfigDict(validate_assignment=True)

    initialized: bool = False
    authenticated: bool = False

    @model_validator(mode="after")
    def _authenticated_requires_initialized(self) -> "BridgeState":
        if self.authenticated and not self.initialized:
            raise ValueError("authenticated bridge state must also be initialized")
        return self


class Command(BaseModel):
    """One command as received from the IDE."""

    model_config = ConfigDict(frozen=True)

    name: str
    params: Dict[str, str] = Field(default_factory=dict)

    def param(self, key: str) -> str:
        """Optional parameter lookup; missing keys read as empty strings."""
        return self.params.get(key, "")


# Envelope keys a Success payload may not carry
RESERVED_KEYS = ("success", "error", "code")


class Success(BaseModel):
    kind: Literal["success"] = "success"
    payload: Dict[str, Any] = Field(default_factory=dict)
    # status is reported without the success flag
    bare: bool = False

    def to_output(self) -> Dict[str, Any]:
        if self.bare:
            return dict(self.payload)
        body = {key: value for key, value in self.payload.items() if key not in RESERVED_KEYS}
        return {**body, "success": True}


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    code: ErrorCode = Field(..., description="Failure kind")
    error: str = Field(..., description="Human-readable error message")

    def to_output(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error, "code": self.code.value}


Response = Union[Success, Failure]


def success(bare: bool = False, **payload: Any) -> Success:
    return Success(payload=payload, bare=bare)


def failure(code: ErrorCode, message: str) -> Failure:
    return Failure(code=code, error=message)
