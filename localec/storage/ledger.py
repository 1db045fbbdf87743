# storage/ledger.py
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from localec.storage.db import get_connection, init_schema
from localec.storage.models import (
    FailedItem,
    ImportRecord,
    ImportStats,
    LanguageCoverage,
    RunRecord,
    SyncStatus,
    SyncStatusRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Un par con alguno de estos estados ya tiene traducción en el archivo destino
_TRANSLATED_STATUSES = (SyncStatus.CLEAN.value, SyncStatus.MANUAL.value)


class Ledger:
    """
    Única interfaz entre el resto de la aplicación y SQLite.
    Dueño exclusivo de las filas persistidas: planner, detector y
    validador solo leen o piden cambios a través de estos métodos.

    Una conexión por proceso, abierta en el constructor y cerrada en close()
    (o al salir del bloque `with`). Recibe un db_path para testing con :memory:.
    Los errores de SQLite se propagan tal cual; el Ledger no reintenta.
    """

    def __init__(self, db_path: str | None = None):
        self._conn  = get_connection(db_path)
        self._depth = 0
        try:
            init_schema(self._conn)
        except BaseException:
            self._conn.close()
            raise

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transacciones
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["Ledger"]:
        """
        Todas las escrituras dentro del bloque se confirman juntas o ninguna.
        Las transacciones anidadas se unen a la exterior.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._depth = 0

    def run_in_transaction(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Ejecuta fn dentro de una transacción y devuelve su resultado."""
        with self.transaction():
            return fn(*args, **kwargs)

    # ------------------------------------------------------------------
    # Source hashes
    # ------------------------------------------------------------------

    def get_source_hash(self, key_path: str) -> str | None:
        row = self._conn.execute(
            "SELECT value_hash FROM source_hashes WHERE key_path = ?", (key_path,)
        ).fetchone()
        return row["value_hash"] if row else None

    def update_source_hash(
        self,
        key_path:    str,
        value_hash:  str,
        context_sig: Optional[str] = None,
        run_id:      Optional[str] = None,
    ) -> None:
        """
        Upsert con reemplazo completo de la fila: un context_sig o run_id
        omitido queda en NULL, no conserva el valor anterior.
        """
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO source_hashes (key_path, value_hash, context_sig, last_seen_run, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (key_path) DO UPDATE SET
                    value_hash    = excluded.value_hash,
                    context_sig   = excluded.context_sig,
                    last_seen_run = excluded.last_seen_run,
                    updated_at    = excluded.updated_at
                """,
                (key_path, value_hash, context_sig, run_id, _now()),
            )

    # ------------------------------------------------------------------
    # Sync status
    # ------------------------------------------------------------------

    def get_sync_status(self, key_path: str, lang_code: str) -> SyncStatusRecord | None:
        row = self._conn.execute(
            "SELECT * FROM sync_status WHERE key_path = ? AND lang_code = ?",
            (key_path, lang_code),
        ).fetchone()
        return self._row_to_status(row) if row else None

    def update_sync_status(
        self,
        key_path:          str,
        lang_code:         str,
        target_hash:       Optional[str],
        status:            SyncStatus,
        model_fingerprint: Optional[str] = None,
        prompt_version:    Optional[int] = None,
    ) -> None:
        """Upsert por (key_path, lang_code). Cada transición reemplaza la fila entera."""
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO sync_status
                    (key_path, lang_code, target_hash, status,
                     model_fingerprint, prompt_version, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (key_path, lang_code) DO UPDATE SET
                    target_hash       = excluded.target_hash,
                    status            = excluded.status,
                    model_fingerprint = excluded.model_fingerprint,
                    prompt_version    = excluded.prompt_version,
                    updated_at        = excluded.updated_at
                """,
                (key_path, lang_code, target_hash, status.value,
                 model_fingerprint, prompt_version, _now()),
            )

    def get_dirty_keys(self, lang_code: str) -> list[str]:
        rows = self._conn.execute(
            """
            SELECT key_path FROM sync_status
            WHERE lang_code = ? AND status IN (?, ?)
            ORDER BY key_path
            """,
            (lang_code, SyncStatus.DIRTY.value, SyncStatus.FAILED.value),
        ).fetchall()
        return [r["key_path"] for r in rows]

    def get_failed_items(self, lang_code: Optional[str] = None) -> list[FailedItem]:
        query = """
            SELECT ss.*, sh.value_hash
            FROM sync_status ss
            LEFT JOIN source_hashes sh ON ss.key_path = sh.key_path
            WHERE ss.status = ?
        """
        params: list = [SyncStatus.FAILED.value]

        if lang_code:
            query += " AND ss.lang_code = ?"
            params.append(lang_code)

        query += " ORDER BY ss.lang_code, ss.key_path"
        rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_failed(r) for r in rows]

    def reset_manual_overrides(self, lang_codes: Optional[Iterable[str]] = None) -> int:
        """
        Regeneración forzada: MANUAL → DIRTY para que el planner vuelva a
        incluir esos pares. Devuelve cuántas filas cambiaron.
        """
        query  = "UPDATE sync_status SET status = ?, updated_at = ? WHERE status = ?"
        params: list = [SyncStatus.DIRTY.value, _now(), SyncStatus.MANUAL.value]

        codes = list(lang_codes) if lang_codes is not None else None
        if codes is not None:
            if not codes:
                return 0
            query += f" AND lang_code IN ({', '.join('?' for _ in codes)})"
            params.extend(codes)

        with self.transaction():
            cursor = self._conn.execute(query, params)
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Run history
    # ------------------------------------------------------------------

    def start_run(self, model_used: str, config_hash: str) -> str:
        """Registra el inicio de un run y devuelve su id (tiempo + sufijo aleatorio)."""
        run_id = f"run_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO run_history (run_id, started_at, model_used, config_hash)
                VALUES (?, ?, ?, ?)
                """,
                (run_id, _now(), model_used, config_hash),
            )
        logger.debug("Run iniciado: %s", run_id)
        return run_id

    def complete_run(
        self,
        run_id:            str,
        tokens_in:         int,
        tokens_out:        int,
        cost_estimate_usd: float,
    ) -> None:
        """Best-effort: si el run_id no existe no hace nada."""
        with self.transaction():
            cursor = self._conn.execute(
                """
                UPDATE run_history
                SET finished_at = ?, tokens_in = ?, tokens_out = ?, cost_estimate_usd = ?
                WHERE run_id = ?
                """,
                (_now(), tokens_in, tokens_out, cost_estimate_usd, run_id),
            )
        if cursor.rowcount == 0:
            logger.debug("complete_run: run %s no existe, se ignora", run_id)

    def get_run(self, run_id: str) -> RunRecord | None:
        row = self._conn.execute(
            "SELECT * FROM run_history WHERE run_id = ?", (run_id,)
        ).fetchone()
        return self._row_to_run(row) if row else None

    def get_latest_run(self) -> RunRecord | None:
        row = self._conn.execute(
            "SELECT * FROM run_history ORDER BY started_at DESC, rowid DESC LIMIT 1"
        ).fetchone()
        return self._row_to_run(row) if row else None

    def count_runs(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) AS n FROM run_history").fetchone()
        return row["n"]

    def cleanup_history(self, keep_last: int = 100) -> None:
        """Conserva solo los keep_last runs más recientes por fecha de inicio."""
        with self.transaction():
            self._conn.execute(
                """
                DELETE FROM run_history
                WHERE run_id NOT IN (
                    SELECT run_id FROM run_history
                    ORDER BY started_at DESC, rowid DESC
                    LIMIT ?
                )
                """,
                (max(keep_last, 0),),
            )

    # ------------------------------------------------------------------
    # Estadísticas
    # ------------------------------------------------------------------

    def get_project_stats(self) -> dict[str, int]:
        total = self._conn.execute(
            "SELECT COUNT(DISTINCT key_path) AS n FROM source_hashes"
        ).fetchone()
        manual = self._conn.execute(
            "SELECT COUNT(*) AS n FROM sync_status WHERE status = ?",
            (SyncStatus.MANUAL.value,),
        ).fetchone()
        return {"total_keys": total["n"], "manual_count": manual["n"]}

    def get_language_stats(self, lang_code: str) -> dict[str, int]:
        translated = self._conn.execute(
            "SELECT COUNT(*) AS n FROM sync_status WHERE lang_code = ? AND status = ?",
            (lang_code, SyncStatus.CLEAN.value),
        ).fetchone()
        failed = self._conn.execute(
            "SELECT COUNT(*) AS n FROM sync_status WHERE lang_code = ? AND status IN (?, ?)",
            (lang_code, SyncStatus.FAILED.value, SyncStatus.DIRTY.value),
        ).fetchone()
        return {"translated": translated["n"], "failed": failed["n"]}

    def get_missing_keys(self, key_paths: list[str], lang_code: str) -> list[str]:
        """Claves de key_paths sin traducción (CLEAN o MANUAL) en el idioma."""
        if not key_paths:
            return []
        translated = self._translated_keys_for_lang(lang_code)
        return [key for key in key_paths if key not in translated]

    def get_language_coverage_stats(self, lang_codes: list[str]) -> list[LanguageCoverage]:
        rows = self._conn.execute(
            "SELECT key_path FROM source_hashes ORDER BY key_path"
        ).fetchall()
        all_keys = [r["key_path"] for r in rows]
        total    = len(all_keys)

        result = []
        for code in lang_codes:
            translated = self._translated_keys_for_lang(code)
            missing    = [k for k in all_keys if k not in translated]
            done       = total - len(missing)
            result.append(LanguageCoverage(
                lang_code       = code,
                total_keys      = total,
                translated_keys = done,
                coverage        = (done / total * 100) if total else 0.0,
                missing_keys    = missing,
            ))
        return result

    # ------------------------------------------------------------------
    # Importación de traducciones existentes
    # ------------------------------------------------------------------

    def import_existing_translation(
        self,
        key_path:    str,
        lang_code:   str,
        source_hash: str,
        target_hash: str,
    ) -> None:
        """Marca el par como CLEAN sin pasar por ningún proveedor."""
        with self.transaction():
            self.update_source_hash(key_path, source_hash)
            self.update_sync_status(key_path, lang_code, target_hash, SyncStatus.CLEAN)

    def bulk_import_translations(self, records: Iterable[ImportRecord]) -> ImportStats:
        """
        Importa en una sola transacción. Los pares que ya están CLEAN se
        saltan; una fila con datos inválidos se cuenta como error sin
        abortar el resto. Errores de I/O de SQLite se propagan.
        """
        started   = time.perf_counter()
        stats     = ImportStats()
        languages: set[str] = set()

        with self.transaction():
            for record in records:
                stats.total_records += 1
                existing = self.get_sync_status(record.key_path, record.lang_code)
                if existing and existing.status == SyncStatus.CLEAN:
                    stats.skipped += 1
                    continue

                try:
                    self.import_existing_translation(
                        record.key_path, record.lang_code,
                        record.source_hash, record.target_hash,
                    )
                except sqlite3.IntegrityError as e:
                    logger.warning(
                        "Import inválido para %s (%s): %s",
                        record.key_path, record.lang_code, e,
                    )
                    stats.errors += 1
                    continue

                stats.imported += 1
                languages.add(record.lang_code)

        stats.languages = sorted(languages)
        stats.duration  = time.perf_counter() - started
        logger.info(
            "Import: %d importados, %d saltados, %d errores",
            stats.imported, stats.skipped, stats.errors,
        )
        return stats

    # ------------------------------------------------------------------
    # Helpers privados
    # ------------------------------------------------------------------

    def _translated_keys_for_lang(self, lang_code: str) -> set[str]:
        rows = self._conn.execute(
            "SELECT key_path FROM sync_status WHERE lang_code = ? AND status IN (?, ?)",
            (lang_code, *_TRANSLATED_STATUSES),
        ).fetchall()
        return {r["key_path"] for r in rows}

    # ------------------------------------------------------------------
    # Mapeo de rows a dataclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_status(row: sqlite3.Row) -> SyncStatusRecord:
        return SyncStatusRecord(
            key_path          = row["key_path"],
            lang_code         = row["lang_code"],
            status            = SyncStatus(row["status"]),
            updated_at        = row["updated_at"],
            target_hash       = row["target_hash"],
            model_fingerprint = row["model_fingerprint"],
            prompt_version    = row["prompt_version"],
        )

    @staticmethod
    def _row_to_failed(row: sqlite3.Row) -> FailedItem:
        return FailedItem(
            key_path          = row["key_path"],
            lang_code         = row["lang_code"],
            status            = SyncStatus(row["status"]),
            updated_at        = row["updated_at"],
            target_hash       = row["target_hash"],
            model_fingerprint = row["model_fingerprint"],
            prompt_version    = row["prompt_version"],
            value_hash        = row["value_hash"],
        )

    @staticmethod
    def _row_to_run(row: sqlite3.Row) -> RunRecord:
        return RunRecord(
            run_id            = row["run_id"],
            started_at        = row["started_at"],
            finished_at       = row["finished_at"],
            model_used        = row["model_used"],
            tokens_in         = row["tokens_in"],
            tokens_out        = row["tokens_out"],
            cost_estimate_usd = row["cost_estimate_usd"],
            config_hash       = row["config_hash"],
        )

    def close(self) -> None:
        self._conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
