"""Composition root and headless command line for the client core."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..adapters.credential_store import JsonCredentialStore
from ..adapters.http_client import HttpConfig, RequestExecutor
from ..adapters.notification_rest import NotificationRestAdapter
from ..domain.errors import UseCaseError
from ..domain.notifications import SyncResult
from ..domain.ports import CredentialStore, PollSchedulerPort, PushPlatformPort
from ..domain.routing import CredentialScope
from ..usecases.notification_sync import NotificationSyncEngine
from ..usecases.retry_policy import RetryPolicy, linear_backoff
from ..usecases.session_auth import Login, Logout
from ..utils import logging as logging_utils
from .polling_scheduler import headless_scheduler
from .settings import ClientSettings


@dataclass
class ClientApp:
    """Objects shared for one application session."""

    settings: ClientSettings
    store: CredentialStore
    executor: RequestExecutor
    notifications: NotificationRestAdapter
    sync: NotificationSyncEngine

    def close(self) -> None:
        self.sync.stop_polling()
        self.executor.close()


def build_client(
    settings: ClientSettings,
    *,
    store: Optional[CredentialStore] = None,
    scheduler: Optional[PollSchedulerPort] = None,
    push_platform: Optional[PushPlatformPort] = None,
    session: object = None,
) -> ClientApp:
    """Wire store -> executor -> adapter -> sync engine for one session."""
    settings = settings.validated()
    store = store if store is not None else JsonCredentialStore(settings.credentials_path)
    executor = RequestExecutor(
        settings.base_url,
        store,
        cfg=HttpConfig(
            request_timeout_s=settings.request_timeout_s,
            upload_timeout_s=settings.upload_timeout_s,
        ),
        session=session,
    )
    adapter = NotificationRestAdapter(executor)
    engine = NotificationSyncEngine(
        adapter,
        scheduler if scheduler is not None else headless_scheduler(),
        poll_interval_ms=settings.poll_interval_ms,
        push_platform=push_platform,
        retry_policy=RetryPolicy(
            max_attempts=settings.retry_attempts,
            backoff=linear_backoff(settings.retry_base_delay_s),
        ),
    )
    return ClientApp(
        settings=settings,
        store=store,
        executor=executor,
        notifications=adapter,
        sync=engine,
    )


cli = typer.Typer(no_args_is_help=True, help="Resident society client diagnostics.")
_console = Console()


def _bootstrap(base_url: Optional[str]) -> ClientApp:
    settings = ClientSettings.from_env()
    if base_url:
        settings = replace(settings, base_url=base_url)
    logging_utils.configure_root(logging.DEBUG if settings.debug_logging else logging.INFO)
    return build_client(settings)


def _scope(admin: bool) -> CredentialScope:
    return CredentialScope.ELEVATED if admin else CredentialScope.STANDARD


@cli.command()
def doctor(base_url: Optional[str] = typer.Option(None, help="Override RESIDENT_BASE_URL.")) -> None:
    """Check backend reachability and stored sessions."""
    app = _bootstrap(base_url)
    try:
        table = Table(title="Resident client doctor")
        table.add_column("Check", style="bright_green", no_wrap=True)
        table.add_column("Status", style="white")
        table.add_column("Details", style="dim")
        healthy = app.executor.health_check()
        table.add_row("Backend", "OK" if healthy else "FAIL", app.settings.base_url)
        for scope in CredentialScope:
            stored = bool(app.store.get(scope.token_key))
            table.add_row(f"{scope.value} session", "OK" if stored else "MISSING", scope.token_key)
        _console.print(table)
    finally:
        app.close()


@cli.command()
def login(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    admin: bool = typer.Option(False, help="Use the admin session."),
    base_url: Optional[str] = typer.Option(None, help="Override RESIDENT_BASE_URL."),
) -> None:
    """Log in and store the session token."""
    app = _bootstrap(base_url)
    try:
        result = Login(app.executor, app.store)({"email": email, "password": password}, scope=_scope(admin))
    except UseCaseError as err:
        _console.print(f"[red]{err.code}[/red] {err.message}")
        raise typer.Exit(code=1)
    finally:
        app.close()
    _console.print(f"Logged in ({result.scope.value} session).")


@cli.command()
def logout(admin: bool = typer.Option(False, help="Clear the admin session.")) -> None:
    """Remove the stored session token."""
    app = _bootstrap(None)
    try:
        Logout(app.store)(_scope(admin))
    finally:
        app.close()
    _console.print("Logged out.")


@cli.command()
def watch(base_url: Optional[str] = typer.Option(None, help="Override RESIDENT_BASE_URL.")) -> None:
    """Poll notifications and print every reconciliation cycle until Ctrl+C."""
    app = _bootstrap(base_url)
    stop = threading.Event()

    def _print(result: SyncResult) -> None:
        marker = "[yellow]changed[/yellow]" if result.has_changes else "unchanged"
        stale = f" (stale: {', '.join(sorted(result.failed_slices))})" if result.failed_slices else ""
        _console.print(
            f"notifications={len(result.notifications)} "
            f"announcements={len(result.announcements)} "
            f"unread={result.unread_count} {marker}{stale}"
        )

    app.sync.start_polling(_print)
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        _console.print("Stopping.")
    finally:
        app.close()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
