"""
Module: archive.naming

Purpose:
    Suggested download file name for an exported quiz, derived from the
    quiz name: Cyrillic transliterated to Latin, lower-cased, characters
    that are invalid in file names replaced, runs of whitespace and
    underscores collapsed.
"""

from __future__ import annotations

import re

_CYRILLIC_TO_LATIN = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'е': 'e', 'ё': 'yo',
    'ж': 'zh', 'з': 'z', 'и': 'i', 'й': 'y', 'к': 'k', 'л': 'l', 'м': 'm',
    'н': 'n', 'о': 'o', 'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'у': 'u',
    'ф': 'f', 'х': 'h', 'ц': 'ts', 'ч': 'ch', 'ш': 'sh', 'щ': 'sch',
    'ъ': '', 'ы': 'y', 'ь': '', 'э': 'e', 'ю': 'yu', 'я': 'ya',
    'А': 'A', 'Б': 'B', 'В': 'V', 'Г': 'G', 'Д': 'D', 'Е': 'E', 'Ё': 'Yo',
    'Ж': 'Zh', 'З': 'Z', 'И': 'I', 'Й': 'Y', 'К': 'K', 'Л': 'L', 'М': 'M',
    'Н': 'N', 'О': 'O', 'П': 'P', 'Р': 'R', 'С': 'S', 'Т': 'T', 'У': 'U',
    'Ф': 'F', 'Х': 'H', 'Ц': 'Ts', 'Ч': 'Ch', 'Ш': 'Sh', 'Щ': 'Sch',
    'Ъ': '', 'Ы': 'Y', 'Ь': '', 'Э': 'E', 'Ю': 'Yu', 'Я': 'Ya',
}

_INVALID = re.compile(r'[/\\?%*:|"<>]')
_RUNS = re.compile(r'[\s_]+')

DEFAULT_STEM = "quiz"


def sanitize_file_stem(name: str) -> str:
    """
    Convert a quiz name to a file-name stem.

    Examples:
        >>> sanitize_file_stem("Контрольная работа")
        'kontrolnaya_rabota'
        >>> sanitize_file_stem("  Unit 3: Forces / Motion ")
        'unit_3_forces_motion'
        >>> sanitize_file_stem("")
        'quiz'
    """
    transliterated = "".join(_CYRILLIC_TO_LATIN.get(ch, ch) for ch in name)
    sanitized = _INVALID.sub("_", transliterated.strip().lower())
    sanitized = _RUNS.sub("_", sanitized).strip("_")
    return sanitized or DEFAULT_STEM


def suggested_filename(name: str) -> str:
    return f"{sanitize_file_stem(name)}.zip"
