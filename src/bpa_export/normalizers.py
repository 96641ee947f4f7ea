from __future__ import annotations

import re
import unicodedata
from datetime import date

_DATE_SEPARATORS = ("/", "-", ".")
_MAX_PLAIN_AGE = 150


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalize_key(text: str | None) -> str:
    """Trim, uppercase and drop diacritics; used for every dictionary lookup."""

    if not text:
        return ""
    return strip_accents(text.strip().upper())


def digits_only(text: str | None) -> str:
    if not text:
        return ""
    return re.sub(r"[^0-9]", "", str(text))


def _date_token(value: str) -> str:
    # "2023-09-25T10:00:00" and "25/09/2023 10:00" keep only the date part.
    token = value.strip().split()[0] if value.strip() else ""
    return token.split("T")[0]


def _split_date(value: str) -> list[str]:
    token = _date_token(value)
    for separator in _DATE_SEPARATORS:
        if separator in token:
            return [part.strip() for part in token.split(separator)]
    return []


def normalize_competency(value: str | None) -> str:
    """Convert a billing period in any common shape to ``AAAAMM``.

    Accepts ``AAAAMM``, ``DD/MM/AAAA``, ``AAAA-MM-DD``, ``MM/AAAA`` and free
    digit strings. Never raises: unparseable input yields whatever digits are
    available, so the result may be shorter than six characters.
    """

    if not value:
        return ""
    clean = value.strip()
    if re.fullmatch(r"\d{6}", clean):
        return clean

    parts = _split_date(clean)
    if len(parts) == 3:
        if len(parts[0]) == 4:
            year, month = parts[0], parts[1]
        else:
            year, month = parts[2], parts[1]
        if len(year) == 2:
            year = f"20{year}"
        candidate = f"{digits_only(year)}{digits_only(month).zfill(2)}"
        if len(candidate) == 6:
            return candidate

    if len(parts) == 2:
        first, second = parts
        if len(first) == 4 and first.isdigit():
            return f"{first}{digits_only(second).zfill(2)}"
        if len(second) == 4 and second.isdigit():
            return f"{second}{digits_only(first).zfill(2)}"

    return digits_only(clean)[:6]


def _parse_date(value: str) -> date | None:
    token = _date_token(value)
    if "/" in token:
        parts = token.split("/")
    elif "-" in token:
        parts = token.split("-")
    else:
        return None
    if len(parts) != 3:
        return None

    if len(parts[0].strip()) == 4:
        year_text, month_text, day_text = parts
    else:
        day_text, month_text, year_text = parts
    try:
        return date(int(year_text), int(month_text), int(day_text))
    except (ValueError, OverflowError):
        return None


def normalize_age(value: str | None, today: date | None = None) -> str:
    """Return the patient age in whole years.

    Plain ages (1 to 3 digits, under 150) pass through. Birth dates are
    converted relative to ``today``.
    """

    if not value:
        return ""
    clean = value.strip()
    if re.fullmatch(r"\d{1,3}", clean) and int(clean) < _MAX_PLAIN_AGE:
        return clean

    birth_date = _parse_date(clean)
    if birth_date is not None:
        reference = today or date.today()
        age = reference.year - birth_date.year
        if (reference.month, reference.day) < (birth_date.month, birth_date.day):
            age -= 1
        return str(max(0, age))

    return digits_only(clean)[:3]


def normalize_sex(value: str | None) -> str:
    if not value:
        return ""
    clean = value.strip().upper()
    if clean in {"M", "F"}:
        return clean
    # MASCULINO, MASC, MALE / FEMININO, FEM, FEMALE
    if clean.startswith("M"):
        return "M"
    if clean.startswith("F"):
        return "F"
    return clean[:1]


def _expand_two_digit_year(year: str, today: date | None = None) -> str:
    pivot = (today or date.today()).year % 100
    return f"19{year}" if int(year) > pivot else f"20{year}"


def normalize_full_date(value: str | None, competency: str, today: date | None = None) -> str:
    """Convert a free-form date to ``AAAAMMDD``.

    Missing or unparseable input falls back to the first day of the
    competency month.
    """

    fallback = digits_only(competency)[:6].zfill(6) + "01"
    if not value or not value.strip():
        return fallback

    clean = value.strip()
    if re.fullmatch(r"\d{8}", clean):
        return clean

    parts = _split_date(clean)
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return fallback

    if len(parts[0]) == 4:
        year, month, day = parts
    else:
        day, month, year = parts
    if len(year) == 2:
        year = _expand_two_digit_year(year, today)
    if len(year) != 4:
        return fallback
    return f"{year}{month.zfill(2)[-2:]}{day.zfill(2)[-2:]}"
