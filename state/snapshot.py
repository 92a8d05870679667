"""Session export and import helpers for the workflow."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from constants.keys import ConfigFields
from core.errors import InvalidSnapshot
from core.merge import get_in
from models.session import Session
from state.session_store import SessionStore
from wizard.step_registry import resolve_variant

SNAPSHOT_SCHEMA_VERSION = 1

SnapshotPayload = dict[str, Any]


def _coerce_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            return int(cleaned)
        except ValueError:
            return None
    return None


def build_snapshot(session: Session) -> SnapshotPayload:
    """Return a portable snapshot that can be downloaded and imported later."""

    meta: dict[str, Any] = {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "captured_at": datetime.now(timezone.utc).isoformat(),
        "variant": resolve_variant(session.config).value,
    }
    step_index = _coerce_int(get_in(session.config, f"{ConfigFields.WORKFLOW}.currentStep"))
    if step_index is not None:
        meta["step_index"] = step_index
    return {"session": session.to_record(), "meta": meta}


def _is_safe_session_id(session_id: str) -> bool:
    return not ("/" in session_id or "\\" in session_id or session_id.startswith("."))


def _resolve_snapshot_components(payload: Mapping[str, Any]) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    if "session" in payload:
        candidate = payload.get("session")
        session_data = candidate if isinstance(candidate, Mapping) else {}
        meta_raw = payload.get("meta")
        meta = meta_raw if isinstance(meta_raw, Mapping) else {}
        return session_data, meta
    return payload, {}


def parse_snapshot(payload: Mapping[str, Any] | bytes | str) -> Session:
    """Normalise an uploaded snapshot (or a bare session record) into a :class:`Session`."""

    if isinstance(payload, (bytes, str)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidSnapshot(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise InvalidSnapshot("Snapshot must be a JSON object")
    session_data, meta = _resolve_snapshot_components(payload)
    version = _coerce_int(meta.get("schema_version"))
    if version is not None and version > SNAPSHOT_SCHEMA_VERSION:
        raise InvalidSnapshot(f"Unsupported snapshot schema version {version}")
    record = dict(session_data)
    config = record.get("config")
    if not record.get("sessionId") and isinstance(config, Mapping):
        record["sessionId"] = config.get(ConfigFields.GAME_ID)
    try:
        session = Session.model_validate(record)
    except ValidationError as exc:
        raise InvalidSnapshot(f"Snapshot does not describe a session: {exc}") from exc
    if not _is_safe_session_id(session.session_id):
        raise InvalidSnapshot(f"Snapshot session id {session.session_id!r} is not allowed")
    config = dict(session.config)
    config[ConfigFields.GAME_ID] = session.session_id
    return session.model_copy(update={"config": config})


def serialize_snapshot(snapshot: Mapping[str, Any]) -> bytes:
    """Return a JSON representation of ``snapshot`` for download."""

    return json.dumps(snapshot, ensure_ascii=False, indent=2).encode("utf-8")


def export_session(store: SessionStore, session_id: str) -> bytes:
    return serialize_snapshot(build_snapshot(store.load(session_id)))


def import_snapshot(store: SessionStore, payload: Mapping[str, Any] | bytes | str) -> Session:
    """Persist an uploaded snapshot and make it the active session."""

    session = parse_snapshot(payload)
    stored = store.persist(session.session_id, session.config)
    store.set_active(session.session_id)
    return stored


__all__ = [
    "SNAPSHOT_SCHEMA_VERSION",
    "build_snapshot",
    "export_session",
    "import_snapshot",
    "parse_snapshot",
    "serialize_snapshot",
]
