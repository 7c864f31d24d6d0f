"""Crash-safe secret change for the open store.

A transition snapshots the store, checkpoints the write-ahead log, then
either re-keys the file in place (secret to different secret) or exports
it into a fresh file (plaintext <-> encrypted) and swaps that in. The
executor records the step it is in; what to clean up after a failure
depends only on that step (see :func:`recovery_for`).

Every run ends in one of two states:

- committed: new secret active, backup deleted;
- rolled back: old secret active, original contents, backup deleted.

The only exception is a failure of the rollback itself, in which case the
backup is kept for :func:`strongbox.database.files.recover_interrupted_transition`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from . import files
from .connection import ConnectionManager, StoreHandle, normalize_secret
from .errors import TransitionFailure

logger = logging.getLogger(__name__)


class TransitionStep(Enum):
    SNAPSHOT = "snapshot"
    CHECKPOINT = "checkpoint"
    EXPORT = "export"
    SWAP = "swap"
    REKEY = "rekey"
    REOPEN = "reopen"
    CLEANUP = "cleanup"


class TransitionKind(Enum):
    MODE_CHANGE = "mode change"
    PASSWORD_CHANGE = "password change"
    NOOP = "no-op"


class Recovery(Enum):
    DISCARD_BACKUP = "discard backup"
    DISCARD_TEMP_AND_BACKUP = "discard temp and backup"
    RESTORE_BACKUP = "restore backup"


_RECOVERY: dict[TransitionStep, Recovery] = {
    TransitionStep.SNAPSHOT: Recovery.DISCARD_BACKUP,
    TransitionStep.CHECKPOINT: Recovery.DISCARD_BACKUP,
    TransitionStep.EXPORT: Recovery.DISCARD_TEMP_AND_BACKUP,
    TransitionStep.SWAP: Recovery.RESTORE_BACKUP,
    TransitionStep.REKEY: Recovery.RESTORE_BACKUP,
    TransitionStep.REOPEN: Recovery.RESTORE_BACKUP,
    TransitionStep.CLEANUP: Recovery.RESTORE_BACKUP,
}


def recovery_for(step: TransitionStep) -> Recovery:
    """Return the cleanup required after a failure during ``step``.

    Before EXPORT completes the live handle is never closed, so dropping the
    artifacts is enough. From SWAP/REKEY on the primary file may have
    changed and the backup has to be put back. CLEANUP restores too: a
    change is not reported as committed while its backup is still on disk.
    """
    return _RECOVERY[step]


def transition_kind(old_secret: str | None, new_secret: str | None) -> TransitionKind:
    """Classify a change between two already-normalized secrets."""
    if (old_secret is None) != (new_secret is None):
        return TransitionKind.MODE_CHANGE
    if old_secret is None:
        return TransitionKind.NOOP
    return TransitionKind.PASSWORD_CHANGE


@dataclass
class TransitionReport:
    """Result of a committed transition."""

    kind: TransitionKind
    steps: list[TransitionStep] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "success": True,
            "message": f"{self.kind.value} committed",
            "items": [step.value for step in self.steps],
        }


class SecretTransition:
    """Step-by-step executor for one secret change on a manager's store."""

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self.paths = manager.paths
        self.steps: list[TransitionStep] = []

    @property
    def step(self) -> TransitionStep | None:
        """The step most recently entered, or None before the first one."""
        return self.steps[-1] if self.steps else None

    def _enter(self, step: TransitionStep) -> None:
        logger.debug("Transition step: %s", step.value)
        self.steps.append(step)

    def run(self, old_secret: str | None, new_secret: str | None) -> TransitionReport:
        """Change the store's secret from ``old_secret`` to ``new_secret``.

        Args:
            old_secret: Secret the open handle uses (None/"" = plaintext).
            new_secret: Secret to switch to (None/"" = plaintext).

        Returns:
            TransitionReport for the committed change.

        Raises:
            NotOpenError: If no handle is open; nothing is touched.
            ValueError: If the open handle does not use ``old_secret``.
            TransitionFailure: If any step fails. ``recovered`` tells whether
                the store was returned to its pre-change state.

        Logs:
            - INFO: "Changing store secret ({kind})" and "Secret change committed".
            - ERROR: traceback of the failure before rolling back.
            - CRITICAL: when the rollback itself fails.

        Side Effects:
            - Creates and removes the backup (and, for mode changes, temp)
              artifacts next to the store file.
            - Closes and reopens the manager's handle.
        """
        old_secret = normalize_secret(old_secret)
        new_secret = normalize_secret(new_secret)
        kind = transition_kind(old_secret, new_secret)

        with self.manager.exclusive():
            handle = self.manager.get_current()
            if handle.secret != old_secret:
                msg = "The open store does not use the given current secret"
                raise ValueError(msg)

            if kind is TransitionKind.NOOP:
                logger.info("Store is already unencrypted; nothing to change")
                return TransitionReport(kind)

            logger.info("Changing store secret (%s)", kind.value)
            self.steps = []
            try:
                self._execute(handle, kind, new_secret)
            except Exception as exc:
                logger.exception("Secret change failed during %s", self.step.value)
                raise self._recover(self.step, old_secret, exc) from exc

        logger.info("Secret change committed (%s)", kind.value)
        return TransitionReport(kind, steps=list(self.steps))

    def _execute(self, handle: StoreHandle, kind: TransitionKind, new_secret: str | None) -> None:
        self._enter(TransitionStep.SNAPSHOT)
        files.snapshot(self.paths)

        self._enter(TransitionStep.CHECKPOINT)
        handle.checkpoint()

        if kind is TransitionKind.MODE_CHANGE:
            self._enter(TransitionStep.EXPORT)
            self._export(handle, new_secret)

            self._enter(TransitionStep.SWAP)
            self.manager.close()
            files.swap_in_temp(self.paths)
        else:
            self._enter(TransitionStep.REKEY)
            handle.rekey(new_secret)
            self.manager.close()

        self._enter(TransitionStep.REOPEN)
        self.manager.open(new_secret)

        self._enter(TransitionStep.CLEANUP)
        files.discard_backup(self.paths)

    def _export(self, handle: StoreHandle, new_secret: str | None) -> None:
        # Switching cipher state needs a new container; rekey cannot do it.
        files.discard_temp(self.paths)
        compatibility = self.manager.settings.cipher_compatibility
        with handle.attached(
            self.paths.temp, new_secret, cipher_compatibility=compatibility
        ) as alias:
            handle.export_into(alias)

    def _recover(
        self,
        step: TransitionStep,
        old_secret: str | None,
        cause: Exception,
    ) -> TransitionFailure:
        action = recovery_for(step)
        logger.warning("Recovering from failed %s: %s", step.value, action.value)
        try:
            if action is Recovery.RESTORE_BACKUP:
                self.manager.close()
                files.discard_temp(self.paths)
                files.restore_backup(self.paths)
                self.manager.open(old_secret)
            else:
                if action is Recovery.DISCARD_TEMP_AND_BACKUP:
                    files.discard_temp(self.paths)
                files.discard_backup(self.paths)
        except Exception as recovery_exc:
            logger.critical(
                "Rollback after failed %s did not complete; backup left at %s",
                step.value,
                self.paths.backup,
                exc_info=recovery_exc,
            )
            return TransitionFailure(step, cause, recovered=False, recovery_error=recovery_exc)
        return TransitionFailure(step, cause)


def change_secret(
    manager: ConnectionManager,
    old_secret: str | None,
    new_secret: str | None,
) -> TransitionReport:
    """Run one :class:`SecretTransition` on ``manager``'s store."""
    return SecretTransition(manager).run(old_secret, new_secret)
