"""ADM provider and destination configuration schemas."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Final

from pydantic import BaseModel, Field, ValidationError

from push_relay.core.exceptions import DestinationConfigError, ProviderConfigError
from push_relay.types import ConfigMap

__all__ = [
    "ADMDestinationConfig",
    "ADMProviderConfig",
    "parse_destination_settings",
    "parse_provider_settings",
]

# Reason codes reported for a missing or empty key, in validation order
_PROVIDER_REASONS: Final[dict[str, str]] = {
    "service": "NoService",
    "clientid": "NoClientID",
    "clientsecret": "NoClientSecret",
}
_DESTINATION_REASONS: Final[dict[str, str]] = {
    "service": "NoService",
    "subscriber": "NoSubscriber",
    "regid": "NoRegId",
}


class ADMProviderConfig(BaseModel):
    """Pydantic schema for an ADM provider account."""

    service: Annotated[
        str,
        Field(min_length=1, description="Application service name"),
    ]
    clientid: Annotated[
        str,
        Field(min_length=1, description="Security profile client ID"),
    ]
    clientsecret: Annotated[
        str,
        Field(min_length=1, repr=False, description="Security profile client secret"),
    ]


class ADMDestinationConfig(BaseModel):
    """Pydantic schema for one ADM device registration."""

    service: Annotated[
        str,
        Field(min_length=1, description="Application service name"),
    ]
    subscriber: Annotated[
        str,
        Field(min_length=1, description="Subscriber owning the device"),
    ]
    regid: Annotated[
        str,
        Field(min_length=1, description="Registration ID issued to the app instance"),
    ]


def _first_reason(error: ValidationError, reasons: Mapping[str, str]) -> str:
    for detail in error.errors():
        if detail["loc"]:
            reason = reasons.get(str(detail["loc"][0]))
            if reason is not None:
                return reason
    return "InvalidConfig"


def parse_provider_settings(settings: ConfigMap) -> ADMProviderConfig:
    """Validate flat provider settings.

    Raises:
        ProviderConfigError: With reason ``NoService``, ``NoClientID`` or
            ``NoClientSecret`` for the first missing or empty key
    """
    try:
        return ADMProviderConfig.model_validate(dict(settings))
    except ValidationError as exc:
        raise ProviderConfigError(_first_reason(exc, _PROVIDER_REASONS)) from exc


def parse_destination_settings(settings: ConfigMap) -> ADMDestinationConfig:
    """Validate flat destination settings.

    Raises:
        DestinationConfigError: With reason ``NoService``, ``NoSubscriber`` or
            ``NoRegId`` for the first missing or empty key
    """
    try:
        return ADMDestinationConfig.model_validate(dict(settings))
    except ValidationError as exc:
        raise DestinationConfigError(_first_reason(exc, _DESTINATION_REASONS)) from exc
