# localec/cli.py
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from localec.config import ConfigError, default_config_yaml, find_config_path
from localec.extractors.context import (
    context_path_for,
    generate_context_template,
    validate_context_file,
)
from localec.factory import build_compiler
from localec.providers.router import AllProvidersExhaustedError
from localec.reporting import ReportingSystem


# Carga .env una sola vez, antes que cualquier otra cosa
load_dotenv()


# ------------------------------------------------------------------
# Grupo raíz
# ------------------------------------------------------------------

@click.group()
@click.version_option(package_name="localec")
@click.option(
    "--config", "config_path",
    default = None,
    metavar = "PATH",
    help    = "Ruta a localec.yaml (por defecto: ./localec.yaml o $LOCALEC_CONFIG_PATH)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str]):
    """
    localec: compilador incremental de traducciones.

    Extrae los strings de tus archivos de locales, traduce con IA solo
    lo que cambió y nunca pisa una edición hecha a mano.
    """
    logging.basicConfig(
        level  = logging.WARNING,
        format = "%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ------------------------------------------------------------------
# localec init
# ------------------------------------------------------------------

@main.command()
@click.option("--force", is_flag=True, help="Sobrescribe la config existente")
@click.pass_context
def init(ctx: click.Context, force: bool):
    """Crea un localec.yaml con valores por defecto."""
    path = find_config_path(ctx.obj["config_path"])

    if path.exists() and not force:
        _abort(f"{path} ya existe. Usa --force para sobrescribirlo.")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config_yaml(), encoding="utf-8")
    click.echo(f"[localec] ✓ Config creada en {path}")
    click.echo("[localec]   Define tus API keys en el entorno o en un .env y ejecuta 'localec sync'")


# ------------------------------------------------------------------
# localec sync
# ------------------------------------------------------------------

@main.command()
@click.option("--force", is_flag=True, help="Regenera también las traducciones editadas a mano")
@click.option("--verbose", "-v", is_flag=True, help="Muestra cada traducción rechazada y logs de depuración")
@click.pass_context
def sync(ctx: click.Context, force: bool, verbose: bool):
    """Traduce las claves nuevas o modificadas."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    compiler = _build(ctx)
    if verbose:
        compiler.set_verbose(True)

    try:
        with compiler:
            stats = compiler.sync(force=force)

    except KeyboardInterrupt:
        click.echo(
            "\n[localec] Proceso interrumpido. "
            "Ejecuta 'localec sync' de nuevo: solo se traducirá lo pendiente."
        )
        sys.exit(0)

    except Exception as e:
        _unexpected(e)

    _print_run_summary(stats)

    if stats.providers_exhausted:
        _error(
            "Sin proveedores disponibles para algunos batches. "
            "Quedaron como FAILED: ejecuta 'localec retry' cuando haya quota."
        )
        sys.exit(2)


# ------------------------------------------------------------------
# localec status
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Estado del proyecto: cobertura por idioma y última ejecución."""
    compiler = _build(ctx, with_router=False)

    with compiler:
        reporting = ReportingSystem(compiler.ledger)
        stats     = reporting.project_stats(compiler.config.target_languages)
        click.echo(reporting.format_report(stats))
        click.echo("")
        click.echo(reporting.format_run(reporting.latest_run_summary()))


# ------------------------------------------------------------------
# localec retry
# ------------------------------------------------------------------

@main.command()
@click.option("--lang", default=None, metavar="CODE", help="Reintenta solo este idioma")
@click.option("--dry-run", is_flag=True, help="Muestra qué se reintentaría, sin llamar al modelo")
@click.pass_context
def retry(ctx: click.Context, lang: Optional[str], dry_run: bool):
    """Retraduce las traducciones que fallaron."""
    compiler = _build(ctx, with_router=not dry_run)

    try:
        with compiler:
            stats = compiler.retry_failed(lang=lang, dry_run=dry_run)
    except Exception as e:
        _unexpected(e)

    if dry_run:
        click.echo(f"[localec] Dry-run: {len(stats.pending)} traducciones se reintentarían")
        for key_path, code in stats.pending:
            click.echo(f"[localec]   - {key_path} ({code})")
    else:
        click.echo(f"[localec]   Recuperadas : {stats.recovered}/{stats.found}")
        click.echo(f"[localec]   Pendientes  : {stats.remaining_failed}")

    if stats.orphaned:
        click.echo(
            click.style(
                f"[localec]   {stats.orphaned} claves fallidas ya no existen en el origen",
                fg="yellow",
            )
        )

    if stats.providers_exhausted:
        _error("Sin proveedores disponibles. Reintenta cuando haya quota.")
        sys.exit(2)


# ------------------------------------------------------------------
# localec check
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def check(ctx: click.Context):
    """Valida las traducciones existentes sin modificar nada."""
    compiler = _build(ctx, with_router=False)

    try:
        with compiler:
            report = compiler.check()
    except Exception as e:
        _unexpected(e)

    click.echo(
        f"[localec] {report.checked} traducciones revisadas, "
        f"{report.missing} ausentes, {report.warnings} warnings"
    )

    for failure in report.failures:
        messages = "; ".join(issue.message for issue in failure.errors)
        click.echo(click.style(f"[localec] ✗ {failure.key_path} ({failure.lang_code}): {messages}", fg="red"))

    if report.has_errors:
        sys.exit(1)

    click.echo(click.style("[localec] ✓ Sin errores", fg="green"))


# ------------------------------------------------------------------
# localec import
# ------------------------------------------------------------------

@main.command(name="import")
@click.option("--source", default=None, type=click.Path(), help="Archivo origen (por defecto: el del primer extractor)")
@click.option(
    "--target", "targets",
    multiple = True,
    metavar  = "CODE=PATH",
    help     = "Archivo traducido de un idioma. Repetible. Por defecto: los archivos de salida existentes",
)
@click.option("--dry-run", is_flag=True, help="Analiza sin escribir en el ledger")
@click.pass_context
def import_(ctx: click.Context, source: Optional[str], targets: tuple[str, ...], dry_run: bool):
    """Importa traducciones existentes al ledger."""
    target_map = _parse_targets(targets) if targets else None
    compiler   = _build(ctx, with_router=False)

    try:
        with compiler:
            report = compiler.import_existing(
                source  = Path(source) if source else None,
                targets = target_map,
                dry_run = dry_run,
            )
    except (FileNotFoundError, ValueError) as e:
        _abort(str(e))
    except Exception as e:
        _unexpected(e)

    click.echo(f"[localec] Origen: {report.source}")
    for code, coverage in report.coverage.items():
        click.echo(
            f"[localec]   {code}: {coverage.matched_keys}/{coverage.total_keys} "
            f"({coverage.coverage:.1f}%)"
        )

    if report.stats is None:
        click.echo(f"[localec] Dry-run: {len(report.records)} traducciones se importarían")
        return

    stats = report.stats
    click.echo(
        f"[localec] ✓ Importadas {stats.imported}, omitidas {stats.skipped}, "
        f"errores {stats.errors} ({stats.duration:.2f}s)"
    )
    for code, keys in report.pending.items():
        if keys:
            click.echo(f"[localec]   Sin traducir en {code}: {len(keys)} (las traducirá la próxima sync)")


# ------------------------------------------------------------------
# localec context
# ------------------------------------------------------------------

@main.group()
def context():
    """Gestiona archivos de contexto (notas para el traductor)."""


@context.command(name="generate")
@click.option("--source", required=True, type=click.Path(), help="Archivo origen JSON")
@click.option("--output", default=None, type=click.Path(), help="Destino (por defecto: <origen>.context.json)")
@click.option("--merge", is_flag=True, help="Conserva el contexto ya escrito")
def context_generate(source: str, output: Optional[str], merge: bool):
    """Crea la plantilla de contexto de un archivo origen."""
    source_path = Path(source)
    if not source_path.is_file():
        _abort(f"Archivo no encontrado: {source}")

    output_path = Path(output) if output else context_path_for(source_path)
    try:
        leaves = generate_context_template(source_path, output_path, merge=merge)
    except ValueError as e:
        _abort(f"{source}: JSON inválido ({e})")

    click.echo(f"[localec] ✓ {output_path}: {leaves} entradas")


@context.command(name="validate")
@click.option("--source", required=True, type=click.Path(), help="Archivo origen JSON")
@click.option("--context", "context_file", default=None, type=click.Path(), help="Archivo de contexto")
def context_validate(source: str, context_file: Optional[str]):
    """Comprueba que el archivo de contexto coincide con el origen."""
    source_path  = Path(source)
    context_path = Path(context_file) if context_file else context_path_for(source_path)

    errors, warnings = validate_context_file(source_path, context_path)

    for warning in warnings:
        click.echo(click.style(f"[localec] ⚠ {warning}", fg="yellow"))
    for error in errors:
        click.echo(click.style(f"[localec] ✗ {error}", fg="red"), err=True)

    if errors:
        sys.exit(1)

    click.echo(click.style("[localec] ✓ Contexto válido", fg="green"))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _build(ctx: click.Context, with_router: bool = True):
    try:
        return build_compiler(config_path=ctx.obj["config_path"], with_router=with_router)
    except (FileNotFoundError, ConfigError, RuntimeError) as e:
        _abort(str(e))


def _parse_targets(targets: tuple[str, ...]) -> dict[str, Path]:
    parsed = {}
    for entry in targets:
        code, sep, path = entry.partition("=")
        if not sep or not code or not path:
            _abort(f"--target espera CODE=PATH, recibido '{entry}'")
        parsed[code.strip()] = Path(path.strip())
    return parsed


def _print_run_summary(stats) -> None:
    click.echo("")
    click.echo("─" * 50)
    if stats.failed_units:
        click.echo("[localec] ⚠ Sync completada con fallos")
    else:
        click.echo("[localec] ✓ Sync completada")
    click.echo(f"[localec]   Strings      : {stats.total_units}")
    click.echo(f"[localec]   Traducidas   : {stats.translated_units}/{stats.planned_units}")
    click.echo(f"[localec]   Al día       : {stats.skipped_units}")

    if stats.failed_units:
        click.echo(
            click.style(
                f"[localec]   Fallidas     : {stats.failed_units} (ejecuta 'localec retry')",
                fg="yellow",
            )
        )

    if stats.manual_detected:
        click.echo(f"[localec]   Manuales     : {stats.manual_detected} protegidas")

    click.echo(f"[localec]   Tokens       : {stats.tokens_in} + {stats.tokens_out}")
    click.echo(f"[localec]   Coste        : ${stats.cost_usd:.4f}")
    click.echo(f"[localec]   Run          : {stats.run_id}")
    click.echo("─" * 50)


def _unexpected(e: Exception) -> None:
    if isinstance(e, AllProvidersExhaustedError):
        _error(f"Sin proveedores disponibles. {e}")
        sys.exit(2)
    _error(f"Error inesperado: {type(e).__name__}: {e}")
    sys.exit(1)


def _abort(message: str) -> None:
    """Error de validación: culpa del usuario."""
    click.echo(click.style(f"[localec] Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _error(message: str) -> None:
    """Error de sistema: no es culpa del usuario."""
    click.echo(click.style(f"[localec] {message}", fg="red"), err=True)
