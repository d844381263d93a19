"""Pipeline definition decoding and managed service account bindings."""

from __future__ import annotations

import base64
import binascii
import copy
import json
from collections.abc import Mapping
from typing import Any

from pipeline_tasks.errors import TaskInputError
from pipeline_tasks.models import MANAGED_SERVICE_ACCOUNT_SUFFIX


def decode_pipeline(payload: str | Mapping[str, Any] | None) -> dict[str, Any]:
    """Decode the stage's ``pipeline`` payload into a mutable definition.

    The payload is normally a base64-encoded JSON object; an already decoded
    mapping is accepted and deep-copied.
    """

    if payload is None:
        raise TaskInputError("pipeline context must be provided")
    if isinstance(payload, Mapping):
        return copy.deepcopy(dict(payload))
    if not isinstance(payload, str):
        raise TaskInputError(
            "'pipeline' context key must be a base64-encoded string, "
            f"got {type(payload).__name__}",
        )
    try:
        raw = base64.b64decode(payload, validate=True)
        decoded = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as error:
        raise TaskInputError("pipeline must be encoded as base64") from error
    if not isinstance(decoded, dict):
        raise TaskInputError("decoded pipeline must be a JSON object")
    return decoded


def encode_pipeline(pipeline: Mapping[str, Any]) -> str:
    """Inverse of ``decode_pipeline`` for string payloads."""

    return base64.b64encode(json.dumps(dict(pipeline)).encode("utf-8")).decode("ascii")


def is_managed_account(name: str | None) -> bool:
    return bool(name) and str(name).endswith(MANAGED_SERVICE_ACCOUNT_SUFFIX)


def service_account_name(pipeline: Mapping[str, Any]) -> str:
    """Explicit ``serviceAccount`` if set, else ``<lowercased id>@managed-service-account``."""

    explicit = pipeline.get("serviceAccount")
    if explicit:
        return str(explicit)
    pipeline_id = pipeline.get("id")
    if not pipeline_id:
        raise TaskInputError("pipeline id is required to derive a managed service account")
    return f"{str(pipeline_id).lower()}{MANAGED_SERVICE_ACCOUNT_SUFFIX}"


def pipeline_roles(pipeline: Mapping[str, Any]) -> list[str]:
    roles = pipeline.get("roles")
    if roles is None:
        return []
    if not isinstance(roles, list):
        raise TaskInputError("pipeline roles must be a list of role names")
    return [str(role) for role in roles]


def bind_triggers(pipeline: dict[str, Any], account_name: str) -> None:
    """Point automated triggers at the managed account, in place.

    Triggers running as a user-chosen (non-managed) identity are left alone.
    With no roles the managed binding is removed instead.
    """

    triggers = pipeline.get("triggers")
    if not account_name or not isinstance(triggers, list):
        return

    roles = pipeline.get("roles")
    if not roles:
        for trigger in triggers:
            if isinstance(trigger, dict) and is_managed_account(trigger.get("runAsUser")):
                del trigger["runAsUser"]
        return

    for trigger in triggers:
        if not isinstance(trigger, dict):
            continue
        run_as_user = trigger.get("runAsUser")
        if run_as_user is None or is_managed_account(run_as_user):
            trigger["runAsUser"] = account_name
