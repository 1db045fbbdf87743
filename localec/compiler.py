# localec/compiler.py
import logging
import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import click

from localec.config import LocalecConfig, config_hash
from localec.extractors import JsonExtractor, extract_all
from localec.hashing import compute_context_signature, compute_hash
from localec.importer import FileCoverage, TranslationImporter
from localec.planner.manual_override import ManualOverrideDetector
from localec.planner.models import SourceUnit, TargetLanguage, TranslationBatch
from localec.planner.planner import IncrementalTranslationPlanner
from localec.prompts import PromptManager
from localec.providers.models import BatchTranslation, TranslationResult
from localec.providers.router import AllProvidersExhaustedError, ProviderRouter
from localec.storage.ledger import Ledger
from localec.storage.models import ImportRecord, ImportStats, SyncStatus
from localec.validation.models import ValidationIssue
from localec.validation.pipeline import TranslationValidationPipeline
from localec.writer import AtomicFileWriter

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Resultados: lo que el CLI consume
# ------------------------------------------------------------------

@dataclass
class RunStatistics:
    run_id:              str
    total_units:         int   = 0     # strings extraídos del origen
    planned_units:       int   = 0     # pares (clave, idioma) enviados al modelo
    skipped_units:       int   = 0     # pares al día que no se enviaron
    translated_units:    int   = 0
    failed_units:        int   = 0
    batches:             int   = 0
    manual_detected:     int   = 0
    manual_reset:        int   = 0
    tokens_in:           int   = 0
    tokens_out:          int   = 0
    estimated_cost:      float = 0.0
    cost_usd:            float = 0.0
    duration:            float = 0.0
    providers_exhausted: bool  = False

    @property
    def up_to_date(self) -> bool:
        return self.planned_units == 0


@dataclass
class RetryStatistics:
    found:               int   = 0
    recovered:           int   = 0
    remaining_failed:    int   = 0
    orphaned:            int   = 0     # FAILED cuya clave ya no existe en el origen
    tokens_in:           int   = 0
    tokens_out:          int   = 0
    cost_usd:            float = 0.0
    pending:             list[tuple[str, str]] = field(default_factory=list)   # (key_path, lang) en dry-run
    providers_exhausted: bool  = False


@dataclass
class CheckFailure:
    key_path:  str
    lang_code: str
    errors:    list[ValidationIssue]


@dataclass
class CheckReport:
    checked:  int                = 0
    missing:  int                = 0
    warnings: int                = 0
    failures: list[CheckFailure] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.failures)


@dataclass
class ImportReport:
    source:   Path
    records:  list[ImportRecord]
    coverage: dict[str, FileCoverage] = field(default_factory=dict)
    stats:    Optional[ImportStats]   = None   # None en dry-run
    # idioma → claves del origen que siguen sin traducción tras el import
    pending:  dict[str, list[str]]    = field(default_factory=dict)


@dataclass
class _BatchOutcome:
    translated: int = 0
    failed:     int = 0


# ------------------------------------------------------------------
# Compilador
# ------------------------------------------------------------------

class TranslationCompiler:
    """
    Dirige el pipeline completo: extraer → detectar ediciones manuales →
    planificar → traducir → validar → escribir → registrar.
    No tiene lógica de decisión propia; coordina módulos.

    Solo el hilo que llama a sync() toca el ledger. Los batches se
    traducen en un pool de hilos y sus resultados se validan y confirman
    aquí, a medida que terminan.
    """

    def __init__(
        self,
        config:    LocalecConfig,
        ledger:    Ledger,
        router:    Optional[ProviderRouter]                 = None,
        writer:    Optional[AtomicFileWriter]               = None,
        extract:   Optional[Callable[[], list[SourceUnit]]] = None,
    ):
        self._config    = config
        self._ledger    = ledger
        self._router    = router
        self._writer    = writer or AtomicFileWriter(indent=config.output.indent, root=config.root)
        self._planner   = IncrementalTranslationPlanner(ledger, batch_size=config.advanced.batch_size)
        self._detector  = ManualOverrideDetector(ledger)
        self._validator = TranslationValidationPipeline(config.validation)
        self._prompts   = PromptManager(config.prompts)
        self._extract   = extract or (lambda: extract_all(config.extractors, root=config.root))
        self._verbose   = config.advanced.verbose

    def __enter__(self) -> "TranslationCompiler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._ledger.close()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def config(self) -> LocalecConfig:
        return self._config

    def set_verbose(self, verbose: bool) -> None:
        self._verbose = verbose

    # ------------------------------------------------------------------
    # sync
    # ------------------------------------------------------------------

    def sync(self, force: bool = False) -> RunStatistics:
        """
        Una pasada incremental completa. Idempotente: sin cambios en el
        origen, una segunda llamada no envía nada al modelo.

        force=True devuelve los overrides MANUAL a DIRTY antes de planificar,
        para regenerarlos.
        """
        router  = self._require_router()
        started = time.perf_counter()

        units = self._extract()
        self._log(f"{len(units)} strings extraídos")

        run_id = self._ledger.start_run(router.model_fingerprint, config_hash(self._config))
        stats  = RunStatistics(run_id=run_id, total_units=len(units))

        stats.manual_detected = self._detect_manual_edits(units)
        if stats.manual_detected:
            self._log(f"{stats.manual_detected} ediciones manuales detectadas, quedan protegidas")

        if force:
            codes = [l.short_code for l in self._config.target_languages]
            stats.manual_reset = self._ledger.reset_manual_overrides(codes)
            if stats.manual_reset:
                self._log(f"--force: {stats.manual_reset} overrides manuales se regenerarán")

        plan = self._planner.create_plan(units, self._config.target_languages)
        stats.planned_units  = plan.total_units
        stats.skipped_units  = len(units) * len(self._config.target_languages) - plan.total_units
        stats.batches        = len(plan.batches)
        stats.estimated_cost = plan.estimated_cost

        if plan.is_empty:
            self._log("✓ Todas las traducciones están al día")
        else:
            self._log(
                f"Plan: {plan.total_units} traducciones en {len(plan.batches)} batches "
                f"(~${plan.estimated_cost:.4f})"
            )
            self._execute(plan.batches, stats)

        # Después de procesar: si el proceso muere antes, los cambios
        # siguen siendo detectables en la próxima ejecución.
        self._record_source_hashes(units, run_id)

        stats.duration = time.perf_counter() - started
        self._ledger.complete_run(run_id, stats.tokens_in, stats.tokens_out, stats.cost_usd)
        self._ledger.cleanup_history(self._config.advanced.history_retention)
        return stats

    # ------------------------------------------------------------------
    # retry
    # ------------------------------------------------------------------

    def retry_failed(self, lang: Optional[str] = None, dry_run: bool = False) -> RetryStatistics:
        """
        Retraduce los pares FAILED. Re-extrae el origen para conocer el
        texto actual de cada clave; las claves que ya no existen se
        cuentan como huérfanas y no se tocan.

        No registra hashes de origen: solo se retraducen los idiomas FAILED
        y el resto de idiomas de la clave tiene que seguir viendo el cambio
        en la próxima sync.
        """
        failed = self._ledger.get_failed_items(lang)
        stats  = RetryStatistics(found=len(failed))

        if not failed:
            self._log("✓ No hay traducciones fallidas")
            return stats

        units_by_key = {u.key_path: u for u in self._extract()}
        by_lang: dict[str, list[SourceUnit]] = {}
        for item in failed:
            unit = units_by_key.get(item.key_path)
            if unit is None:
                stats.orphaned += 1
                continue
            by_lang.setdefault(item.lang_code, []).append(unit)

        if dry_run:
            stats.pending = [
                (unit.key_path, code) for code, units in by_lang.items() for unit in units
            ]
            stats.remaining_failed = stats.found
            return stats

        router = self._require_router()
        run_id = self._ledger.start_run(router.model_fingerprint, config_hash(self._config))
        run    = RunStatistics(run_id=run_id)

        batches: list[TranslationBatch] = []
        for code, units in by_lang.items():
            language = self._config.language_by_code(code)
            if language is None:
                logger.warning("Idioma %s ya no está en la configuración, se omite", code)
                stats.orphaned += len(units)
                continue
            plan = self._planner.create_plan(units, [language])
            batches.extend(plan.batches)

        if batches:
            self._log(f"Reintentando {sum(len(b.source_units) for b in batches)} traducciones")
            self._execute(batches, run)

        self._ledger.complete_run(run_id, run.tokens_in, run.tokens_out, run.cost_usd)

        stats.recovered           = run.translated_units
        stats.remaining_failed    = stats.found - run.translated_units
        stats.tokens_in           = run.tokens_in
        stats.tokens_out          = run.tokens_out
        stats.cost_usd            = run.cost_usd
        stats.providers_exhausted = run.providers_exhausted
        return stats

    # ------------------------------------------------------------------
    # check
    # ------------------------------------------------------------------

    def check(self) -> CheckReport:
        """Valida las traducciones que ya están en los archivos destino. No escribe nada."""
        report = CheckReport()
        units  = self._extract()

        for language in self._config.target_languages:
            current = self._writer.read_flat(self._output_path(language))
            for unit in units:
                text = current.get(unit.key_path)
                if text is None:
                    report.missing += 1
                    continue

                result = self._validator.validate(TranslationResult(unit.unit_id, text), unit)
                report.checked  += 1
                report.warnings += len(result.warnings)
                if not result.is_valid:
                    report.failures.append(
                        CheckFailure(unit.key_path, language.short_code, result.errors)
                    )

        return report

    # ------------------------------------------------------------------
    # import
    # ------------------------------------------------------------------

    def import_existing(
        self,
        source:  Optional[Path]            = None,
        targets: Optional[dict[str, Path]] = None,
        dry_run: bool                      = False,
    ) -> ImportReport:
        """
        Siembra el ledger con traducciones hechas antes de adoptar localec,
        para que la primera sync no las vuelva a pagar.
        Sin source se usa el primer archivo del primer extractor; sin
        targets, el archivo de salida de cada idioma que ya exista.
        """
        extractor_config = self._config.extractors[0]
        source = Path(source) if source else self._default_source()

        if targets is None:
            targets = {
                lang.short_code: self._output_path(lang)
                for lang in self._config.target_languages
                if self._output_path(lang).exists()
            }

        importer = TranslationImporter(key_prefix=extractor_config.key_prefix)
        records  = importer.import_from_multiple_files(source, targets)
        coverage = {code: importer.analyze_coverage(source, path) for code, path in targets.items()}

        report = ImportReport(source=source, records=records, coverage=coverage)
        if not dry_run:
            report.stats = self._ledger.bulk_import_translations(records)
            keys = [u.key_path for u in self._extract()]
            report.pending = {
                lang.short_code: self._ledger.get_missing_keys(keys, lang.short_code)
                for lang in self._config.target_languages
            }
        return report

    # ------------------------------------------------------------------
    # Helpers privados
    # ------------------------------------------------------------------

    def _execute(self, batches: list[TranslationBatch], stats: RunStatistics) -> None:
        router  = self._require_router()
        workers = max(1, min(self._config.advanced.concurrency, len(batches)))
        total   = len(batches)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {}
            for batch in batches:
                language = self._language(batch.target_language)
                prompt   = self._prompts.build(batch, language)
                futures[pool.submit(router.translate, batch, prompt)] = batch

            for done, future in enumerate(as_completed(futures), start=1):
                batch = futures[future]
                try:
                    translation = future.result()
                    outcome = self._commit_batch(batch, translation)
                    stats.tokens_in  += translation.tokens_input
                    stats.tokens_out += translation.tokens_output
                    stats.cost_usd   += translation.cost_usd

                except sqlite3.Error:
                    raise

                except AllProvidersExhaustedError as e:
                    logger.error("Todos los proveedores agotados: %s", e)
                    stats.providers_exhausted = True
                    outcome = self._fail_batch(batch)

                except Exception as e:
                    logger.warning("Error en batch %s: %s", batch.batch_id, e)
                    outcome = self._fail_batch(batch)
                    self._log(
                        f"⚠ Batch {done}/{total} ({batch.target_language}) falló "
                        f"({type(e).__name__}), continuando"
                    )

                stats.translated_units += outcome.translated
                stats.failed_units     += outcome.failed
                self._log(
                    f"Traduciendo... {done}/{total} ({int(done / total * 100)}%) "
                    f"{batch.target_language}: {outcome.translated} ok, {outcome.failed} fallidas"
                )

    def _commit_batch(self, batch: TranslationBatch, translation: BatchTranslation) -> _BatchOutcome:
        """Valida cada resultado; escribe los válidos y después los marca CLEAN."""
        results = {r.unit_id: r for r in translation.results}
        accepted: list[tuple[SourceUnit, str]] = []
        rejected: list[SourceUnit] = []

        for unit in batch.source_units:
            result = results.get(unit.unit_id) or TranslationResult(unit.unit_id, "")
            validation = self._validator.validate(result, unit)
            if validation.is_valid:
                accepted.append((unit, result.translated_text))
            else:
                rejected.append(unit)
                if self._verbose:
                    self._log(
                        f"✗ {unit.key_path} ({batch.target_language}): "
                        + "; ".join(i.message for i in validation.errors)
                    )
                logger.debug("Validación fallida %s: %s", unit.key_path, validation.errors)

        # Archivo primero: si la escritura falla, el ledger no afirma nada falso
        if accepted:
            language = self._language(batch.target_language)
            self._writer.write_translations(
                self._output_path(language),
                {unit.key_path: text for unit, text in accepted},
            )

        with self._ledger.transaction():
            for unit, text in accepted:
                self._ledger.update_sync_status(
                    unit.key_path,
                    batch.target_language,
                    compute_hash(text),
                    SyncStatus.CLEAN,
                    model_fingerprint = translation.model_fingerprint,
                    prompt_version    = self._prompts.prompt_version,
                )
            for unit in rejected:
                self._mark_failed(unit.key_path, batch.target_language)

        return _BatchOutcome(translated=len(accepted), failed=len(rejected))

    def _fail_batch(self, batch: TranslationBatch) -> _BatchOutcome:
        with self._ledger.transaction():
            for unit in batch.source_units:
                self._mark_failed(unit.key_path, batch.target_language)
        return _BatchOutcome(failed=len(batch.source_units))

    def _mark_failed(self, key_path: str, lang_code: str) -> None:
        # Conserva el hash de la última traducción buena, si la hubo
        previous = self._ledger.get_sync_status(key_path, lang_code)
        target_hash = previous.target_hash if previous and previous.target_hash else ""
        self._ledger.update_sync_status(key_path, lang_code, target_hash, SyncStatus.FAILED)

    def _detect_manual_edits(self, units: list[SourceUnit]) -> int:
        """
        Compara cada par CLEAN con el archivo destino actual.
        Hash distinto → MANUAL. Clave desaparecida del archivo → DIRTY.
        """
        detected = 0

        for language in self._config.target_languages:
            code    = language.short_code
            current = self._writer.read_flat(self._output_path(language))

            with self._ledger.transaction():
                for unit in units:
                    record = self._ledger.get_sync_status(unit.key_path, code)
                    if record is None or record.status != SyncStatus.CLEAN:
                        continue

                    text = current.get(unit.key_path)
                    if text is None:
                        self._ledger.update_sync_status(
                            unit.key_path, code, record.target_hash, SyncStatus.DIRTY,
                            record.model_fingerprint, record.prompt_version,
                        )
                        continue

                    current_hash = compute_hash(text)
                    if self._detector.is_manual_override(unit.key_path, code, current_hash):
                        self._detector.mark_as_manual_override(unit.key_path, code, current_hash)
                        detected += 1

        return detected

    def _record_source_hashes(self, units: list[SourceUnit], run_id: str) -> None:
        with self._ledger.transaction():
            for unit in units:
                self._ledger.update_source_hash(
                    unit.key_path,
                    unit.source_hash,
                    context_sig = compute_context_signature(unit.context),
                    run_id      = run_id,
                )

    def _default_source(self) -> Path:
        files = JsonExtractor(self._config.root).find_files(self._config.extractors[0])
        if not files:
            raise FileNotFoundError(
                "Ningún archivo origen coincide con el patrón del primer extractor"
            )
        return files[0]

    def _output_path(self, language: TargetLanguage) -> Path:
        return self._writer.output_path(language, self._config.output)

    def _language(self, code: str) -> TargetLanguage:
        return self._config.language_by_code(code) or TargetLanguage(language=code, short_code=code)

    def _require_router(self) -> ProviderRouter:
        if self._router is None:
            raise RuntimeError("Este comando necesita un proveedor configurado")
        return self._router

    @staticmethod
    def _log(message: str) -> None:
        click.echo(f"[localec] {message}")
