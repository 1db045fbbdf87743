# localec/config.py
import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from localec.hashing import compute_hash
from localec.planner.models import TargetLanguage

DEFAULT_CONFIG_FILENAME = "localec.yaml"

PROVIDER_TYPES = (
    "anthropic",
    "gemini",
    "openai",
    "groq",
    "local",
    "azure-openai",
    "openrouter",
)
EXTRACTOR_TYPES = ("json",)
FORMATTING_STYLES = ("formal", "casual", "technical")


class ConfigError(ValueError):
    """Configuración inválida. Lleva la lista completa de problemas."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(
            "Configuración inválida:\n" + "\n".join(f"  - {p}" for p in problems)
        )


# ------------------------------------------------------------------
# Secciones
# ------------------------------------------------------------------

@dataclass
class ValidationConfig:
    preserve_placeholders:  bool      = True
    max_length_ratio:       float     = 3.0
    prevent_source_leakage: bool      = True
    brand_names:            list[str] = field(default_factory=list)


@dataclass
class ExtractorConfig:
    pattern:      list[str]
    type:         str           = "json"
    key_prefix:   Optional[str] = None
    exclude:      list[str]     = field(default_factory=list)
    context_file: Optional[str] = None


@dataclass
class ProviderConfig:
    name:            str
    type:            str
    model:           str
    api_key:         Optional[str] = None   # None si el proveedor no la necesita (local)
    base_url:        Optional[str] = None
    api_version:     Optional[str] = None
    temperature:     float         = 0.3
    max_retries:     int           = 3
    timeout_seconds: int           = 60
    fallback:        Optional[str] = None   # nombre de otro proveedor


@dataclass
class OutputConfig:
    dir:         str = "./locales"
    file_naming: str = "{shortCode}.json"
    indent:      int = 2


@dataclass
class PromptConfig:
    user_prompt:    list[str]      = field(default_factory=list)
    custom_context: Optional[str]  = None
    formatting:     Optional[str]  = None
    glossary:       dict[str, str] = field(default_factory=dict)
    brand_voice:    Optional[str]  = None


@dataclass
class AdvancedConfig:
    batch_size:        int  = 20
    concurrency:       int  = 3
    ledger_path:       str  = "./.localec/ledger.sqlite"
    history_retention: int  = 100
    verbose:           bool = False


@dataclass
class LocalecConfig:
    source_language:  str
    target_languages: list[TargetLanguage]
    extractors:       list[ExtractorConfig]
    providers:        list[ProviderConfig]
    validation:       ValidationConfig = field(default_factory=ValidationConfig)
    output:           OutputConfig     = field(default_factory=OutputConfig)
    prompts:          PromptConfig     = field(default_factory=PromptConfig)
    advanced:         AdvancedConfig   = field(default_factory=AdvancedConfig)
    # Directorio del archivo de config: base para resolver rutas relativas
    root:             Path             = field(default_factory=Path.cwd)

    def resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else (self.root / p)

    @property
    def primary_provider(self) -> ProviderConfig:
        return self.providers[0]

    def provider_by_name(self, name: str) -> Optional[ProviderConfig]:
        return next((p for p in self.providers if p.name == name), None)

    def language_by_code(self, code: str) -> Optional[TargetLanguage]:
        return next((l for l in self.target_languages if l.short_code == code), None)


# ------------------------------------------------------------------
# Carga
# ------------------------------------------------------------------

def find_config_path(config_path: Optional[str] = None) -> Path:
    return Path(
        config_path
        or os.environ.get("LOCALEC_CONFIG_PATH")
        or DEFAULT_CONFIG_FILENAME
    )


def load_config(config_path: Optional[str] = None) -> LocalecConfig:
    """
    Carga y valida la configuración YAML.
    Resuelve variables de entorno en los apiKey (${VAR}).
    Lanza FileNotFoundError si no existe y ConfigError si es inválida.
    """
    path = find_config_path(config_path)

    if not path.exists():
        raise FileNotFoundError(
            f"Config no encontrada en {path}. "
            f"Ejecuta 'localec init' para crear una."
        )

    with path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError([f"{path}: se esperaba un mapa YAML en la raíz"])

    return parse_config(raw, root=path.resolve().parent)


def parse_config(raw: dict[str, Any], root: Optional[Path] = None) -> LocalecConfig:
    """Convierte el dict crudo en LocalecConfig acumulando todos los problemas."""
    problems: list[str] = []

    source_language = raw.get("sourceLanguage")
    if not isinstance(source_language, str) or len(source_language) < 2:
        problems.append("sourceLanguage: código de idioma origen requerido")

    target_languages = _parse_target_languages(raw.get("targetLanguages"), problems)
    extractors       = _parse_extractors(raw.get("extractors"), problems)
    providers        = _parse_providers(raw.get("providers"), problems)
    validation       = _parse_validation(raw.get("validation") or {}, problems)
    output           = _parse_output(raw.get("output") or {}, problems)
    prompts          = _parse_prompts(raw.get("prompts") or {}, problems)
    advanced         = _parse_advanced(raw.get("advanced") or {}, problems)

    names = {p.name for p in providers}
    for p in providers:
        if p.fallback and p.fallback not in names:
            problems.append(f"providers.{p.name}.fallback: proveedor desconocido '{p.fallback}'")

    if problems:
        raise ConfigError(problems)

    return LocalecConfig(
        source_language  = source_language,
        target_languages = target_languages,
        extractors       = extractors,
        providers        = providers,
        validation       = validation,
        output           = output,
        prompts          = prompts,
        advanced         = advanced,
        root             = root or Path.cwd(),
    )


def config_hash(config: LocalecConfig) -> str:
    """Hash estable de la config, sin API keys ni rutas locales."""
    data = asdict(config)
    data.pop("root", None)
    for provider in data["providers"]:
        provider.pop("api_key", None)
    return compute_hash(json.dumps(data, sort_keys=True, default=str))


# ------------------------------------------------------------------
# Parsers por sección
# ------------------------------------------------------------------

def _parse_target_languages(raw: Any, problems: list[str]) -> list[TargetLanguage]:
    if not isinstance(raw, list) or not raw:
        problems.append("targetLanguages: se requiere al menos un idioma destino")
        return []

    languages = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            problems.append(f"targetLanguages.{i}: se esperaba un mapa")
            continue
        language = entry.get("language")
        code     = entry.get("shortCode")
        if not language:
            problems.append(f"targetLanguages.{i}.language: nombre del idioma requerido")
        if not isinstance(code, str) or len(code) < 2:
            problems.append(f"targetLanguages.{i}.shortCode: código corto requerido")
        if language and isinstance(code, str) and len(code) >= 2:
            languages.append(TargetLanguage(language=str(language), short_code=code))
    return languages


def _parse_extractors(raw: Any, problems: list[str]) -> list[ExtractorConfig]:
    if not isinstance(raw, list) or not raw:
        problems.append("extractors: se requiere al menos un extractor")
        return []

    extractors = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            problems.append(f"extractors.{i}: se esperaba un mapa")
            continue
        kind    = entry.get("type", "json")
        pattern = entry.get("pattern")
        if kind not in EXTRACTOR_TYPES:
            problems.append(f"extractors.{i}.type: tipo no soportado '{kind}'")
        if isinstance(pattern, str):
            pattern = [pattern]
        if not pattern or not all(isinstance(p, str) for p in pattern):
            problems.append(f"extractors.{i}.pattern: patrón (o lista de patrones) requerido")
            continue
        extractors.append(ExtractorConfig(
            type         = kind,
            pattern      = list(pattern),
            key_prefix   = entry.get("keyPrefix"),
            exclude      = list(entry.get("exclude") or []),
            context_file = entry.get("contextFile"),
        ))
    return extractors


def _parse_providers(raw: Any, problems: list[str]) -> list[ProviderConfig]:
    if not isinstance(raw, list) or not raw:
        problems.append("providers: se requiere al menos un proveedor")
        return []

    providers = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            problems.append(f"providers.{i}: se esperaba un mapa")
            continue
        name  = entry.get("name")
        kind  = entry.get("type")
        model = entry.get("model")
        ok = True
        if not name:
            problems.append(f"providers.{i}.name: nombre requerido")
            ok = False
        if kind not in PROVIDER_TYPES:
            problems.append(
                f"providers.{i}.type: '{kind}' no es uno de {', '.join(PROVIDER_TYPES)}"
            )
            ok = False
        if not model:
            problems.append(f"providers.{i}.model: modelo requerido")
            ok = False

        temperature = entry.get("temperature", 0.3)
        if not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
            problems.append(f"providers.{i}.temperature: debe estar entre 0 y 2")
            ok = False

        max_retries = entry.get("maxRetries", 3)
        if not _is_int(max_retries) or max_retries < 0:
            problems.append(f"providers.{i}.maxRetries: entero >= 0")
            ok = False

        if ok:
            providers.append(ProviderConfig(
                name            = str(name),
                type            = kind,
                model           = str(model),
                api_key         = _resolve_env(entry.get("apiKey")),
                base_url        = entry.get("baseUrl"),
                api_version     = entry.get("apiVersion"),
                temperature     = float(temperature),
                max_retries     = max_retries,
                timeout_seconds = entry.get("timeoutSeconds", 60),
                fallback        = entry.get("fallback"),
            ))
    return providers


def _parse_validation(raw: dict, problems: list[str]) -> ValidationConfig:
    ratio = raw.get("maxLengthRatio", 3)
    if not isinstance(ratio, (int, float)) or ratio < 0:
        problems.append("validation.maxLengthRatio: número >= 0")
        ratio = 3

    brands = raw.get("brandNames") or []
    if not isinstance(brands, list):
        problems.append("validation.brandNames: se esperaba una lista de strings")
        brands = []

    return ValidationConfig(
        preserve_placeholders  = bool(raw.get("preservePlaceholders", True)),
        max_length_ratio       = float(ratio),
        prevent_source_leakage = bool(raw.get("preventSourceLeakage", True)),
        brand_names            = [str(b) for b in brands],
    )


def _parse_output(raw: dict, problems: list[str]) -> OutputConfig:
    indent = raw.get("indent", 2)
    if not _is_int(indent) or not 0 <= indent <= 8:
        problems.append("output.indent: entero entre 0 y 8")
        indent = 2
    return OutputConfig(
        dir         = raw.get("dir", "./locales"),
        file_naming = raw.get("fileNaming", "{shortCode}.json"),
        indent      = indent,
    )


def _parse_prompts(raw: dict, problems: list[str]) -> PromptConfig:
    formatting = raw.get("formatting")
    if formatting is not None and formatting not in FORMATTING_STYLES:
        problems.append(f"prompts.formatting: uno de {', '.join(FORMATTING_STYLES)}")
        formatting = None

    user_prompt = raw.get("userPrompt") or []
    if isinstance(user_prompt, str):
        user_prompt = [user_prompt]

    return PromptConfig(
        user_prompt    = [str(line) for line in user_prompt],
        custom_context = raw.get("customContext"),
        formatting     = formatting,
        glossary       = dict(raw.get("glossary") or {}),
        brand_voice    = raw.get("brandVoice"),
    )


def _parse_advanced(raw: dict, problems: list[str]) -> AdvancedConfig:
    batch_size  = raw.get("batchSize", 20)
    concurrency = raw.get("concurrency", 3)
    retention   = raw.get("historyRetention", 100)

    if not _is_int(batch_size) or batch_size < 1:
        problems.append("advanced.batchSize: entero >= 1")
        batch_size = 20
    if not _is_int(concurrency) or not 1 <= concurrency <= 10:
        problems.append("advanced.concurrency: entero entre 1 y 10")
        concurrency = 3
    if not _is_int(retention) or retention < 1:
        problems.append("advanced.historyRetention: entero >= 1")
        retention = 100

    return AdvancedConfig(
        batch_size        = batch_size,
        concurrency       = concurrency,
        ledger_path       = raw.get("ledgerPath", "./.localec/ledger.sqlite"),
        history_retention = retention,
        verbose           = bool(raw.get("verbose", False)),
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _resolve_env(value: Optional[str]) -> Optional[str]:
    """Expande ${VAR_NAME} desde el entorno."""
    if not value or not value.startswith("${"):
        return value
    var_name = value.strip("${}").strip()
    return os.environ.get(var_name)


# ------------------------------------------------------------------
# Plantilla para `localec init`
# ------------------------------------------------------------------

_DEFAULT_CONFIG_YAML = """\
# localec: configuración del compilador de traducciones
sourceLanguage: en

targetLanguages:
  - language: Spanish
    shortCode: es
  - language: French
    shortCode: fr
  - language: German
    shortCode: de

extractors:
  - type: json
    pattern: src/locales/en/**/*.json
    # contextFile: src/locales/en/common.context.json

providers:
  - name: primary
    type: openai
    model: gpt-4o-mini
    apiKey: ${OPENAI_API_KEY}
    temperature: 0.3
    maxRetries: 3
    fallback: backup
  - name: backup
    type: anthropic
    model: claude-haiku-4-5-20251001
    apiKey: ${ANTHROPIC_API_KEY}

validation:
  preservePlaceholders: true
  maxLengthRatio: 3
  preventSourceLeakage: true
  brandNames: []

output:
  dir: ./locales
  fileNaming: "{shortCode}.json"
  indent: 2

# prompts:
#   userPrompt:
#     - Please translate the following strings.
#   customContext: This is a mobile banking application.
#   formatting: formal
#   brandVoice: Professional, trustworthy and approachable
#   glossary:
#     Account: Cuenta

advanced:
  batchSize: 20
  concurrency: 3
  ledgerPath: ./.localec/ledger.sqlite
  historyRetention: 100
"""


def default_config_yaml() -> str:
    return _DEFAULT_CONFIG_YAML
