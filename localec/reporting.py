# localec/reporting.py
from dataclasses import dataclass, field
from typing import Optional

import click

from localec.planner.models import TargetLanguage
from localec.storage.ledger import Ledger
from localec.storage.models import LanguageCoverage, RunRecord


@dataclass
class ProjectStats:
    total_strings:      int
    translated_strings: int
    failed_strings:     int
    manual_overrides:   int
    # "Spanish (es)" → cobertura; traducida = CLEAN o MANUAL
    language_coverage:  dict[str, LanguageCoverage] = field(default_factory=dict)


class ReportingSystem:
    """Resúmenes de solo lectura sobre el ledger, para `localec status`."""

    def __init__(self, ledger: Ledger):
        self._ledger = ledger

    def latest_run_summary(self) -> Optional[RunRecord]:
        return self._ledger.get_latest_run()

    def project_stats(self, target_languages: list[TargetLanguage]) -> ProjectStats:
        base     = self._ledger.get_project_stats()
        labels   = {l.short_code: f"{l.language} ({l.short_code})" for l in target_languages}
        coverage = {
            labels[c.lang_code]: c
            for c in self._ledger.get_language_coverage_stats(list(labels))
        }
        failed = sum(
            self._ledger.get_language_stats(code)["failed"] for code in labels
        )

        return ProjectStats(
            total_strings      = base["total_keys"],
            translated_strings = sum(c.translated_keys for c in coverage.values()),
            failed_strings     = failed,
            manual_overrides   = base["manual_count"],
            language_coverage  = coverage,
        )

    def format_report(self, stats: ProjectStats) -> str:
        lines = [
            click.style("Estado de traducción del proyecto", bold=True),
            "─" * 50,
            f"Claves únicas     : {stats.total_strings}",
            f"Traducidas        : {click.style(str(stats.translated_strings), fg='green')}",
            f"Fallidas/Dirty    : {click.style(str(stats.failed_strings), fg='red')}",
            f"Overrides manuales: {click.style(str(stats.manual_overrides), fg='yellow')}",
            "",
            click.style("Cobertura por idioma:", bold=True),
        ]

        for label, cov in stats.language_coverage.items():
            color = "green" if not cov.missing_keys else "yellow"
            lines.append(
                f"  {label:<20} "
                f"{click.style(f'{cov.translated_keys}/{cov.total_keys}', fg=color)} "
                f"({cov.coverage:.1f}%)"
            )

        return "\n".join(lines)

    def format_run(self, run: Optional[RunRecord]) -> str:
        if run is None:
            return "Todavía no hay ejecuciones registradas."

        finished = run.finished_at or click.style("sin terminar", fg="yellow")
        return "\n".join([
            click.style("Última ejecución", bold=True),
            f"  Run      : {run.run_id}",
            f"  Inicio   : {run.started_at}",
            f"  Fin      : {finished}",
            f"  Modelo   : {run.model_used or '-'}",
            f"  Tokens   : {run.tokens_in or 0} + {run.tokens_out or 0}",
            f"  Coste    : ${run.cost_estimate_usd or 0:.4f}",
            f"  Historial: {self._ledger.count_runs()} runs guardados",
        ])
