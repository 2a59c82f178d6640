"""
Bilingual marketing copy and ES/EN translation.
"""

from ..agents.prompts import COPY_PROMPT, TRANSLATE_PROMPT
from ..agents.schemas import CopyResult, TranslationResult
from ..logging_config import get_logger
from ..results import AdapterResult
from .llm import LLMClient, extract_json_object

logger = get_logger("content")

COPY_TEMPLATES = {
    "hero": {
        "spanish": "{name}: Experiencias Excepcionales, Cada Momento",
        "english": "{name}: Exceptional Experiences, Every Moment",
    },
    "cta": {
        "spanish": "Reserve en {name} Ahora",
        "english": "Book {name} Now",
    },
    "about": {
        "spanish": "En {name} estamos comprometidos con la excelencia en cada detalle",
        "english": "At {name} we are committed to excellence in every detail",
    },
    "contact": {
        "spanish": "Contacte a {name} para una experiencia personalizada",
        "english": "Contact {name} for a personalized experience",
    },
    "services": {
        "spanish": "Servicios Premium de {name}",
        "english": "{name} Premium Services",
    },
}

COPY_SECTIONS = tuple(COPY_TEMPLATES)

LANGUAGES = {"es": "Spanish", "en": "English"}


def template_copy(business_name: str, section: str) -> CopyResult:
    """Fixed copy for a section; unknown sections use the hero template."""
    template = COPY_TEMPLATES.get(section, COPY_TEMPLATES["hero"])
    return CopyResult(
        section=section,
        spanish=template["spanish"].format(name=business_name),
        english=template["english"].format(name=business_name),
        source="fallback",
    )


async def generate_copy(llm: LLMClient, business_name: str, sector: str, section: str) -> CopyResult:
    section = section.lower()
    prompt = COPY_PROMPT.format(business_name=business_name, sector=sector, section=section)

    result = await llm.complete(prompt, max_tokens=512)
    if not result.success:
        logger.info(f"Copy for '{business_name}' ({section}) using template: {result.reason}")
        return template_copy(business_name, section)

    data = extract_json_object(result.payload)
    if data is None:
        # Unstructured reply: keep it as the Spanish copy
        return CopyResult(section=section, spanish=result.payload.strip()[:200])

    spanish = str(data.get("spanish") or "")
    english = str(data.get("english") or "")
    if not (spanish or english):
        return template_copy(business_name, section)
    return CopyResult(section=section, spanish=spanish, english=english)


async def translate_text(llm: LLMClient, text: str, target_lang: str = "es") -> AdapterResult[TranslationResult]:
    """Translate between English and Spanish. target_lang is "es" or "en"."""
    target_lang = target_lang.lower()
    if target_lang not in LANGUAGES:
        return AdapterResult.fail(f"Unsupported language '{target_lang}' (use es or en)")

    to_lang = LANGUAGES[target_lang]
    from_lang = LANGUAGES["en" if target_lang == "es" else "es"]
    prompt = TRANSLATE_PROMPT.format(from_lang=from_lang, to_lang=to_lang, text=text)

    result = await llm.complete(prompt)
    if not result.success:
        return result

    return AdapterResult.ok(TranslationResult(
        original=text,
        translated=result.payload.strip(),
        from_lang=from_lang,
        to_lang=to_lang,
    ))
