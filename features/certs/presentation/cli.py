"""証明書更新のコマンドラインインターフェース"""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.logging_config import setup_cli_logging
from core.settings import RenewalSettings
from core.time import format_residual
from features.certs.application.manager import RenewalManager
from features.certs.application.renew_all import RenewAllCertificatesUseCase, RenewalStatus
from features.certs.domain.exceptions import CertificateError

console = Console()
app = typer.Typer(
    name="pki-renewal",
    help="Control-plane certificate renewal utilities",
    no_args_is_help=True,
    add_completion=False,
)

# ---------------------------------------------------------------------------
# sub-app: certs
certs_app = typer.Typer(name="certs", help="Inspect and renew control-plane certificates")
app.add_typer(certs_app, name="certs")

# sub-app: config
config_app = typer.Typer(name="config", help="Show and validate configuration")
app.add_typer(config_app, name="config")

_ALL = "all"


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=lambda v: (_print_version() if v else None),
        is_eager=True,
        help="Show version and exit.",
    )
):
    return


def _print_version() -> None:
    from cli import __version__

    console.print(f"[bold]pki-renewal[/] version {__version__}")
    raise typer.Exit(code=0)


def _load_manager() -> RenewalManager:
    settings = RenewalSettings.from_env()
    _, errs = settings.validate()
    if errs:
        console.print("[red]Configuration error[/]: " + "; ".join(errs))
        raise typer.Exit(1)
    setup_cli_logging(settings.log_level)
    try:
        return RenewalManager.from_topology(settings.topology(), settings.kubeconfig_dir)
    except CertificateError as exc:
        console.print(f"[red]Configuration error[/]: {exc}")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# certs subcommands


@certs_app.command("list", help="List the certificates and CAs managed for this topology")
def certs_list() -> None:
    manager = _load_manager()
    table = Table(title="Managed certificates")
    table.add_column("Certificate", style="bold")
    table.add_column("Certificate authority")
    table.add_column("Present")
    table.add_column("Description")
    for handler in manager.certificates():
        present = manager.certificate_exists(handler.name)
        table.add_row(handler.name, handler.ca_name, "yes" if present else "no", handler.long_name)
    for handler in manager.cas():
        present = manager.ca_exists(handler.name)
        table.add_row(handler.name, "", "yes" if present else "no", handler.long_name)
    console.print(table)


@certs_app.command("check-expiration", help="Show expiration dates of certificates and CAs")
def certs_check_expiration() -> None:
    manager = _load_manager()
    failed = False

    table = Table(title="Certificates")
    table.add_column("Certificate", style="bold")
    table.add_column("Expires")
    table.add_column("Residual time")
    table.add_column("Certificate authority")
    table.add_column("Externally managed")
    for handler in manager.certificates():
        try:
            if not manager.certificate_exists(handler.name):
                table.add_row(f"!MISSING! {handler.name}", "", "", handler.ca_name, "")
                continue
            info = manager.get_certificate_expiration_info(handler.name)
        except CertificateError as exc:
            console.print(f"[red]ERROR[/] {exc}")
            failed = True
            continue
        table.add_row(
            info.name,
            info.expiration_date.strftime("%b %d, %Y %H:%M UTC"),
            format_residual(info.residual_time()),
            handler.ca_name,
            "yes" if info.externally_managed else "no",
        )
    console.print(table)

    ca_table = Table(title="Certificate authorities")
    ca_table.add_column("Certificate authority", style="bold")
    ca_table.add_column("Expires")
    ca_table.add_column("Residual time")
    ca_table.add_column("Externally managed")
    for handler in manager.cas():
        try:
            if not manager.ca_exists(handler.name):
                ca_table.add_row(f"!MISSING! {handler.name}", "", "", "")
                continue
            info = manager.get_ca_expiration_info(handler.name)
        except CertificateError as exc:
            console.print(f"[red]ERROR[/] {exc}")
            failed = True
            continue
        ca_table.add_row(
            info.name,
            info.expiration_date.strftime("%b %d, %Y %H:%M UTC"),
            format_residual(info.residual_time()),
            "yes" if info.externally_managed else "no",
        )
    console.print(ca_table)

    if failed:
        raise typer.Exit(1)


@certs_app.command("renew", help="Renew a certificate by name, or every certificate with 'all'")
def certs_renew(
    name: str = typer.Argument(..., help="Certificate name or 'all'"),
    csr_only: bool = typer.Option(
        False, "--csr-only", help="Create CSRs for an external CA instead of renewing"
    ),
    csr_dir: Optional[str] = typer.Option(
        None, "--csr-dir", help="Directory receiving <name>.key and <name>.csr"
    ),
) -> None:
    manager = _load_manager()
    if csr_only and not csr_dir:
        console.print("[red]ERROR[/] --csr-dir is required with --csr-only")
        raise typer.Exit(2)
    if csr_dir and not csr_only:
        console.print("[red]ERROR[/] --csr-dir can only be used with --csr-only")
        raise typer.Exit(2)

    if name == _ALL:
        results = RenewAllCertificatesUseCase(manager).execute(csr_dir=csr_dir)
        for result in results:
            if result.status == RenewalStatus.ERROR:
                console.print(f"[red]ERROR[/] {result.name}: {result.reason}")
            elif result.status == RenewalStatus.SKIPPED:
                console.print(f"[yellow]SKIPPED[/] {result.name} ({result.reason})")
            else:
                console.print(f"[green]{result.status.value.upper()}[/] {result.name}")
        if any(result.status == RenewalStatus.ERROR for result in results):
            raise typer.Exit(1)
        return

    try:
        if csr_only:
            key_path, csr_path = manager.create_renew_csr(name, csr_dir or "")
            console.print(f"[green]CSR-CREATED[/] {name}: {csr_path}, {key_path}")
            return
        certificate = manager.renew_using_local_ca(name)
    except CertificateError as exc:
        console.print(f"[red]ERROR[/] {exc}")
        raise typer.Exit(1)
    console.print(
        f"[green]RENEWED[/] {name} (expires {certificate.not_valid_after_utc.isoformat()})"
    )


# ---------------------------------------------------------------------------
# config subcommands


@config_app.command("show", help="Display settings loaded from environment variables")
def config_show() -> None:
    cfg = RenewalSettings.from_env()
    table = Table(title="Renewal settings")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    for k, v in cfg.as_dict().items():
        table.add_row(k, str(v))
    console.print(table)


@config_app.command("check", help="Validate settings and show errors/warnings")
def config_check() -> None:
    cfg = RenewalSettings.from_env()
    warns, errs = cfg.validate()
    if warns:
        console.print("[yellow]WARN[/] " + " | ".join(warns))
    if errs:
        console.print("[red]ERROR[/] " + " | ".join(errs))
        raise typer.Exit(code=1)
    console.print("[green]OK[/] Configuration is valid")


__all__ = ["app"]
