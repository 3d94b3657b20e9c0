"""Natural-language descriptions of cron expressions.

A thin adapter over ``cron_descriptor``. Description is best-effort: any
failure inside the descriptor degrades to ``None`` ("no description
available") and never affects validation or occurrence computation.
"""

from __future__ import annotations

import logging

from cron_descriptor import ExpressionDescriptor, Options

from cronguru.scheduling.cron import CronExpression

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

# Short language tags to the locale codes cron_descriptor ships catalogs for
LOCALE_CODES: dict[str, str] = {
    "en": "en_US",
    "zh": "zh_CN",
    "zh-cn": "zh_CN",
    "zh-tw": "zh_TW",
    "de": "de_DE",
    "fr": "fr_FR",
    "es": "es_ES",
    "it": "it_IT",
    "ja": "ja_JP",
    "ko": "ko_KR",
    "nl": "nl_NL",
    "pl": "pl_PL",
    "pt": "pt_PT",
    "pt-br": "pt_BR",
    "ru": "ru_RU",
    "sv": "sv_SE",
    "tr": "tr_TR",
    "uk": "uk_UA",
    "cs": "cs_CZ",
}


def to_locale_code(locale: str) -> str:
    """Map a locale tag (``zh-CN``, ``zh_CN``, ``de``) to a descriptor code."""
    tag = (locale or DEFAULT_LOCALE).strip().replace("_", "-").lower()
    if tag in LOCALE_CODES:
        return LOCALE_CODES[tag]
    language, _, region = tag.partition("-")
    if region:
        return f"{language}_{region.upper()}"
    return LOCALE_CODES.get(language, LOCALE_CODES[DEFAULT_LOCALE])


def describe(
    expression: CronExpression | str,
    locale: str = DEFAULT_LOCALE,
    *,
    use_24hour: bool = True,
) -> str | None:
    """Describe an expression in prose.

    Args:
        expression: A validated expression, or raw text.
        locale: Locale tag such as ``en`` or ``zh-CN``.
        use_24hour: Render times as ``14:00`` rather than ``02:00 PM``.

    Returns:
        The description, or None when none can be produced.
    """
    if isinstance(expression, CronExpression):
        text = expression.canonical
    else:
        text = " ".join(expression.split())
    if not text:
        return None

    options = Options()
    options.locale_code = to_locale_code(locale)
    options.use_24hour_time_format = use_24hour

    try:
        return ExpressionDescriptor(text, options).get_description()
    except Exception as e:  # degrade, never block the caller
        logger.debug("No description for %r (%s): %s", text, locale, e)
        return None
