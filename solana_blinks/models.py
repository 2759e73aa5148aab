"""
Solana Blinks Data Model

Third-party action endpoints return loosely shaped JSON. Everything that
crosses the Action Protocol Client boundary is validated here into frozen
dataclasses; untyped payloads never travel further into the pipeline.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .errors import ActionSchemaError, ActionTransactionError, InvalidRequest
from .wallet import is_valid_address


ParamValue = Union[str, int, float]


class TrustStatus(str, Enum):
    """Three-way classification of a host against a registry snapshot."""
    TRUSTED = "trusted"
    MALICIOUS = "malicious"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TrustRecord:
    host: str
    status: TrustStatus

    def to_dict(self) -> Dict[str, Any]:
        return {"host": self.host, "status": self.status.value}


def _require_str(data: Dict[str, Any], key: str, path: str, url: Optional[str]) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ActionSchemaError(f"'{path}' must be a non-empty string", url=url, path=path)
    return value


def _optional_str(data: Dict[str, Any], key: str, path: str, url: Optional[str]) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ActionSchemaError(f"'{path}' must be a string", url=url, path=path)
    return value


@dataclass(frozen=True)
class ActionParameter:
    """An input an action expects from the user."""
    name: str
    required: bool = False
    type: str = "text"
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "required": self.required, "type": self.type}
        if self.label:
            d["label"] = self.label
        return d

    @classmethod
    def from_dict(cls, data: Any, path: str, url: Optional[str] = None) -> 'ActionParameter':
        if not isinstance(data, dict):
            raise ActionSchemaError(f"'{path}' must be an object", url=url, path=path)
        required = data.get("required", False)
        if not isinstance(required, bool):
            raise ActionSchemaError(f"'{path}.required' must be a boolean", url=url, path=f"{path}.required")
        return cls(
            name=_require_str(data, "name", f"{path}.name", url),
            required=required,
            type=_optional_str(data, "type", f"{path}.type", url) or "text",
            label=_optional_str(data, "label", f"{path}.label", url),
        )


@dataclass(frozen=True)
class LinkedAction:
    """One operation offered by an endpoint. href may be relative."""
    label: str
    href: str
    parameters: Tuple[ActionParameter, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "href": self.href,
            "parameters": [p.to_dict() for p in self.parameters],
        }

    @classmethod
    def from_dict(cls, data: Any, path: str, url: Optional[str] = None) -> 'LinkedAction':
        if not isinstance(data, dict):
            raise ActionSchemaError(f"'{path}' must be an object", url=url, path=path)
        params = data.get("parameters")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ActionSchemaError(f"'{path}.parameters' must be a list", url=url, path=f"{path}.parameters")
        return cls(
            label=_require_str(data, "label", f"{path}.label", url),
            href=_require_str(data, "href", f"{path}.href", url),
            parameters=tuple(
                ActionParameter.from_dict(p, f"{path}.parameters[{i}]", url)
                for i, p in enumerate(params)
            ),
        )


@dataclass(frozen=True)
class ActionMetadata:
    """
    What a user can do at an endpoint (GET response).

    actions is None when the endpoint returned no links at all, meaning the
    endpoint itself is the single action.
    """
    title: str
    description: str = ""
    icon_url: Optional[str] = None
    label: Optional[str] = None
    disabled: bool = False
    actions: Optional[Tuple[LinkedAction, ...]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "iconUrl": self.icon_url,
            "label": self.label,
            "disabled": self.disabled,
            "links": {"actions": [a.to_dict() for a in self.actions or ()]},
        }
        if self.error:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: Any, url: Optional[str] = None) -> 'ActionMetadata':
        if not isinstance(data, dict):
            raise ActionSchemaError("metadata must be a JSON object", url=url)

        disabled = data.get("disabled", False)
        if not isinstance(disabled, bool):
            raise ActionSchemaError("'disabled' must be a boolean", url=url, path="disabled")

        actions = None
        links = data.get("links")
        if links is not None:
            if not isinstance(links, dict) or not isinstance(links.get("actions"), list):
                raise ActionSchemaError("'links.actions' must be a list", url=url, path="links.actions")
            actions = tuple(
                LinkedAction.from_dict(a, f"links.actions[{i}]", url)
                for i, a in enumerate(links["actions"])
            )

        # Endpoints report soft failures as {"error": {"message": ...}}
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error is not None and not isinstance(error, str):
            error = str(error)

        return cls(
            title=_require_str(data, "title", "title", url),
            description=_optional_str(data, "description", "description", url) or "",
            icon_url=_optional_str(data, "icon", "icon", url),
            label=_optional_str(data, "label", "label", url),
            disabled=disabled,
            actions=actions,
            error=error,
        )


@dataclass(frozen=True)
class ActionTransaction:
    """
    Unsigned transaction returned by the POST phase.

    Opaque to the pipeline: it is handed unchanged to the simulator or the
    signer, which work on their own copies.
    """
    encoded_transaction: str
    message: Optional[str] = None
    signers: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"transaction": self.encoded_transaction, "message": self.message}
        if self.signers:
            d["signers"] = list(self.signers)
        return d

    @classmethod
    def from_response(cls, data: Any, url: str) -> 'ActionTransaction':
        if not isinstance(data, dict):
            raise ActionSchemaError("transaction response must be a JSON object", url=url)
        encoded = data.get("transaction")
        if not isinstance(encoded, str) or not encoded.strip():
            message = data.get("message")
            if isinstance(message, str) and message:
                raise ActionTransactionError(url, f"Action response contains no transaction: {message}")
            raise ActionTransactionError(url)
        message = data.get("message")
        if message is not None and not isinstance(message, str):
            raise ActionSchemaError("'message' must be a string", url=url, path="message")
        signers = data.get("signers")
        if signers is not None:
            if not isinstance(signers, list) or not all(isinstance(s, str) for s in signers):
                raise ActionSchemaError("'signers' must be a list of addresses", url=url, path="signers")
            signers = tuple(signers)
        return cls(encoded_transaction=encoded.strip(), message=message, signers=signers)


@dataclass(frozen=True)
class InspectResult:
    """Externally visible artifact of a successful inspection."""
    canonical_url: str
    trusted: bool
    trust_status: TrustStatus
    metadata: ActionMetadata
    actions: Tuple[LinkedAction, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonicalUrl": self.canonical_url,
            "trusted": self.trusted,
            "trustStatus": self.trust_status.value,
            "metadata": self.metadata.to_dict(),
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass(frozen=True)
class SimulationResult:
    success: bool
    units_consumed: Optional[int] = None
    error: Optional[Any] = None
    logs: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success, "unitsConsumed": self.units_consumed}
        if self.error is not None:
            d["error"] = self.error
        if self.logs:
            d["logs"] = list(self.logs)
        return d


@dataclass
class ExecutionRequest:
    """
    Caller-supplied execution request, validated on construction.

    Unknown params are passed to the endpoint verbatim.
    """
    raw_url: str
    account: str
    params: Dict[str, ParamValue] = field(default_factory=dict)
    dry_run: bool = False

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not isinstance(self.raw_url, str) or not self.raw_url.strip():
            raise InvalidRequest("url must not be empty", field="url")
        if not isinstance(self.account, str) or not is_valid_address(self.account):
            raise InvalidRequest(f"Invalid ledger address: {self.account!r}", field="account")
        if not isinstance(self.params, dict):
            raise InvalidRequest("params must be an object", field="params")
        for key, value in self.params.items():
            if not isinstance(key, str) or not key:
                raise InvalidRequest("param names must be non-empty strings", field="params")
            if key == "account":
                raise InvalidRequest("'account' cannot be passed as a param", field="params.account")
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise InvalidRequest(f"param {key!r} must be a string or number", field=f"params.{key}")
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidRequest(f"param {key!r} must be a finite number", field=f"params.{key}")


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one execute call: a simulation or a submission, never both."""
    canonical_url: str
    trusted: bool
    trust_status: TrustStatus
    dry_run: bool
    message: Optional[str] = None
    simulation: Optional[SimulationResult] = None
    signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "canonicalUrl": self.canonical_url,
            "trusted": self.trusted,
            "trustStatus": self.trust_status.value,
            "dryRun": self.dry_run,
            "message": self.message,
        }
        if self.simulation is not None:
            d["simulationResult"] = self.simulation.to_dict()
        if self.signature is not None:
            d["signature"] = self.signature
        return d
