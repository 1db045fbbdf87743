# localec/prompts.py
import json
from typing import Optional

from localec.config import PromptConfig
from localec.planner.models import SourceUnit, TargetLanguage, TranslationBatch
from localec.providers.models import PromptTemplate


_CORE_SYSTEM = """\
You are a professional translator specializing in software localization.

Your task is to translate the provided strings accurately into {language} ({code}).

CRITICAL RULES:
1. Preserve all placeholders exactly as they appear: {{variable}}, {{{{variable}}}}, ${{variable}}, $1, %s, %d and any other template syntax
2. Maintain the same structure: return the translations in the same JSON array format and order
3. Context awareness: consider the context of UI strings, messages and technical terms
4. Natural language: produce idiomatic translations that native speakers would use
5. Consistency: keep terminology consistent across all translations
6. No additions or omissions: translate only what is provided

OUTPUT FORMAT:
Return ONLY a valid JSON array of translated strings in the same order as the input.
Do not include explanations, comments or markdown formatting."""

_FORMATTING_STYLES = {
    "formal":    "Use formal language and respectful address. Suitable for professional, business or official contexts.",
    "casual":    "Use casual, friendly language. Suitable for consumer apps and informal communication.",
    "technical": "Use precise technical terminology. Prioritize accuracy over naturalness. Keep technical terms in English when appropriate.",
}


class PromptManager:
    """
    Arma el prompt de cada batch.

    El system prompt siempre parte del núcleo fijo; la configuración del
    proyecto solo añade secciones (tono, glosario, voz de marca, contexto).
    """

    def __init__(self, config: Optional[PromptConfig] = None):
        self._config = config or PromptConfig()

    @property
    def prompt_version(self) -> int:
        # 1 = prompt por defecto; 2 = el proyecto lo personalizó
        return 2 if (self._config.user_prompt or self._config.custom_context) else 1

    def build(self, batch: TranslationBatch, language: TargetLanguage) -> PromptTemplate:
        return PromptTemplate(
            system = self.system_prompt(language, batch.source_units),
            user   = self.user_prompt([u.source_text for u in batch.source_units]),
        )

    def system_prompt(
        self,
        language: TargetLanguage,
        units:    Optional[list[SourceUnit]] = None,
    ) -> str:
        sections = [_CORE_SYSTEM.format(language=language.language, code=language.short_code)]

        if self._config.formatting:
            sections.append(f"Tone and style: {_FORMATTING_STYLES[self._config.formatting]}")

        if self._config.glossary:
            terms = "\n".join(
                f'- "{source}" -> "{target}"' for source, target in self._config.glossary.items()
            )
            sections.append(f"GLOSSARY - Use these exact translations for the following terms:\n{terms}")

        if self._config.brand_voice:
            sections.append(f"Brand voice: {self._config.brand_voice}")

        if self._config.custom_context:
            sections.append(self._config.custom_context)

        notes = _context_notes(units or [])
        if notes:
            sections.append(notes)

        return "\n\n".join(sections)

    def user_prompt(self, source_texts: list[str]) -> str:
        payload = json.dumps(source_texts, ensure_ascii=False)
        if self._config.user_prompt:
            return "\n".join(self._config.user_prompt) + "\n\n" + payload
        return payload


def _context_notes(units: list[SourceUnit]) -> str:
    """Notas por string, indexadas por su posición en el array de entrada."""
    lines = [
        f"[{i}] {unit.key_path}: {unit.context}"
        for i, unit in enumerate(units)
        if unit.context
    ]
    if not lines:
        return ""
    return "CONTEXT NOTES (by input position):\n" + "\n".join(lines)
