"""CLI commands for store lifecycle management."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from ...context import AppContext
from ...database import is_plaintext_store
from ..base import BaseCLI

store_app = typer.Typer(help="Encrypted store lifecycle commands.")

HomeOption = Annotated[
    Path | None,
    typer.Option(
        "--home",
        help="Base directory of the store (defaults to $STRONGBOX_HOME or ~/.strongbox)",
    ),
]


def _prompt_secret(label: str, *, confirm: bool = False) -> str:
    return typer.prompt(
        label,
        default="",
        show_default=False,
        hide_input=True,
        confirmation_prompt=confirm,
    )


class StoreCLI(BaseCLI):
    """CLI helpers for store lifecycle management."""

    def __init__(self) -> None:
        super().__init__("store")

    def status(self, *, home: Path | None) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="store status",
            op_callable=lambda: self._status_operation(home=home),
        )

    def init(self, *, home: Path | None, secret: str) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="store init",
            op_callable=lambda: self._init_operation(home=home, secret=secret),
            pre_message="Opening store...",
        )

    def change_secret(self, *, home: Path | None, current: str, new: str) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="store change-secret",
            op_callable=lambda: self._change_secret_operation(home=home, current=current, new=new),
            pre_message="Changing store secret...",
        )

    def migrate_legacy(self, *, home: Path | None) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="store migrate-legacy",
            op_callable=lambda: self._migrate_legacy_operation(home=home),
            pre_message="Checking for legacy encryption...",
        )

    def recover(self, *, home: Path | None) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="store recover",
            op_callable=lambda: self._recover_operation(home=home),
        )

    def _status_operation(self, *, home: Path | None) -> dict[str, Any]:
        """Describe the store files without opening a connection."""
        paths = AppContext.from_environment(home).paths
        plaintext = is_plaintext_store(paths.primary)
        if plaintext is None:
            encryption = "n/a"
        else:
            encryption = "plaintext" if plaintext else "encrypted"
        return {
            "success": True,
            "details": {
                "store": paths.primary,
                "exists": paths.primary.exists(),
                "encryption": encryption,
                "backup present": paths.backup.exists(),
                "temp present": paths.temp.exists(),
            },
        }

    def _init_operation(self, *, home: Path | None, secret: str) -> dict[str, Any]:
        """Open (creating if needed) the store, then close it again.

        Raises:
            DatabaseError: If the store cannot be opened with ``secret``
                (handled by handle_cli_operation).
        """
        ctx = AppContext.from_environment(home)
        try:
            handle = ctx.open(secret)
            tables = handle.table_names()
        finally:
            ctx.close()
        return {
            "success": True,
            "message": f"Store ready at {ctx.paths.primary}",
            "details": {"encrypted": handle.secret is not None, "tables": ", ".join(tables)},
        }

    def _change_secret_operation(
        self, *, home: Path | None, current: str, new: str
    ) -> dict[str, Any]:
        """Open with the current secret and run the transition.

        Raises:
            TransitionFailure: If the change rolls back (handled by
                handle_cli_operation). The store keeps the current secret.
        """
        ctx = AppContext.from_environment(home)
        try:
            ctx.open(current)
            report = ctx.change_secret(current, new)
        finally:
            ctx.close()
        return report.as_dict()

    def _migrate_legacy_operation(self, *, home: Path | None) -> dict[str, Any]:
        ctx = AppContext.from_environment(home)
        try:
            migrated = ctx.run_legacy_migration()
        finally:
            ctx.close()
        message = "Legacy encryption removed" if migrated else "Nothing to migrate"
        return {"success": True, "message": message}

    def _recover_operation(self, *, home: Path | None) -> dict[str, Any]:
        recovered = AppContext.from_environment(home).recover()
        message = "Interrupted secret change rolled back" if recovered else "Nothing to recover"
        return {"success": True, "message": message}


cli = StoreCLI()


@store_app.command("status")
def status_command(home: HomeOption = None) -> None:
    """Show where the store lives and whether it is encrypted."""
    cli.status(home=home)


@store_app.command("init")
def init_command(home: HomeOption = None) -> None:
    """Create (or open) the store and make sure all tables exist.

    Prompts for a secret; leave it blank for an unencrypted store.
    """
    secret = _prompt_secret("Secret (blank for none)", confirm=True)
    cli.init(home=home, secret=secret)


@store_app.command("change-secret")
def change_secret_command(home: HomeOption = None) -> None:
    """Change the store secret, or switch encryption on or off.

    Prompts for the current and the new secret; a blank secret means an
    unencrypted store. If the change fails, the store is rolled back and
    keeps the current secret. Exits with code 1 on failure.
    """
    current = _prompt_secret("Current secret (blank for none)")
    new = _prompt_secret("New secret (blank for none)", confirm=True)
    cli.change_secret(home=home, current=current, new=new)


@store_app.command("migrate-legacy")
def migrate_legacy_command(home: HomeOption = None) -> None:
    """Remove legacy encryption using the key from the secret vault.

    The key is read from $STRONGBOX_SECRET_DATABASE_KEY.
    """
    cli.migrate_legacy(home=home)


@store_app.command("recover")
def recover_command(home: HomeOption = None) -> None:
    """Roll back a secret change interrupted by a crash."""
    cli.recover(home=home)


app = store_app
