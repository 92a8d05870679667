"""Post-mount check that the resolved session is backed by persisted data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from constants.keys import ConfigFields
from core.errors import PersistenceWriteFailure, SessionNotFoundError
from state.config_store import ConfigStore
from state.session_store import SessionStore
from wizard.session_identity import IdentitySource, SessionIdentityResolver

logger = logging.getLogger(__name__)


class ValidationStatus(StrEnum):
    PENDING = "pending"
    VALID = "valid"
    CORRECTED = "corrected"
    INVALID = "invalid"


@dataclass(frozen=True)
class ValidationResult:
    status: ValidationStatus
    session_id: str | None = None
    source: IdentitySource | None = None
    redirect_to: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in {ValidationStatus.VALID, ValidationStatus.CORRECTED}


class SessionValidator:
    """Confirm that a session id resolves to a stored record, repairing once if needed."""

    def __init__(
        self,
        resolver: SessionIdentityResolver,
        session_store: SessionStore,
        config_store: ConfigStore,
        *,
        safe_default_location: str = "/home",
    ) -> None:
        self._resolver = resolver
        self._session_store = session_store
        self._config_store = config_store
        self._safe_default_location = safe_default_location

    def validate(self, *, initialized: bool) -> ValidationResult:
        """Validate the current session.

        Returns ``PENDING`` while initialization has not settled so a session
        that is still being created is never reported as missing.
        """

        if not initialized:
            return ValidationResult(ValidationStatus.PENDING)

        in_memory_id = self._config_store.session_id()
        unbacked: list[tuple[IdentitySource, str]] = []
        for source, session_id in self._resolver.candidates():
            try:
                session = self._session_store.load(session_id)
            except SessionNotFoundError:
                unbacked.append((source, session_id))
                continue
            if in_memory_id and in_memory_id != session_id:
                logger.info(
                    "Skipping stored session '%s'; configuration in memory belongs to '%s'",
                    session_id,
                    in_memory_id,
                )
                continue
            if not in_memory_id:
                self._config_store.load(session.config)
                logger.info("Hydrated configuration from stored session '%s'", session_id)
            self._resolver.remember(session_id)
            return ValidationResult(ValidationStatus.VALID, session_id=session_id, source=source)

        repair_target = next(
            (candidate for candidate in unbacked if candidate[1] == in_memory_id),
            unbacked[0] if unbacked else None,
        )
        if repair_target is not None:
            source, session_id = repair_target
            if self._repair(session_id):
                return ValidationResult(ValidationStatus.CORRECTED, session_id=session_id, source=source)

        missing = repair_target[1] if repair_target else None
        logger.warning(
            "Session is not backed by stored data; redirecting to %s",
            self._safe_default_location,
            exc_info=SessionNotFoundError(missing or "<none>"),
        )
        self._resolver.forget()
        return ValidationResult(
            ValidationStatus.INVALID,
            session_id=missing,
            redirect_to=self._safe_default_location,
        )

    def _repair(self, session_id: str) -> bool:
        """Persist whatever partial configuration is in memory under ``session_id``."""

        config = self._config_store.snapshot()
        if not any(key != ConfigFields.WORKFLOW for key in config):
            return False
        if config.get(ConfigFields.GAME_ID) not in (None, "", session_id):
            return False
        config[ConfigFields.GAME_ID] = session_id
        try:
            self._session_store.persist(session_id, config)
            self._session_store.set_active(session_id)
        except PersistenceWriteFailure:
            logger.exception("Could not restore session '%s' from memory", session_id)
            return False
        if self._config_store.session_id() != session_id:
            self._config_store.load(config)
        self._resolver.remember(session_id)
        logger.info("Restored missing session '%s' from in-memory configuration", session_id)
        return True


__all__ = ["SessionValidator", "ValidationResult", "ValidationStatus"]
