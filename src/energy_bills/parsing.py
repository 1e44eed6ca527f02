"""Number and reference-month normalisation for Brazilian energy bills."""
from __future__ import annotations
import math
import re

# Portuguese month abbreviations as printed on the bills (JAN/2024, SET/2024...)
MONTH_ABBREVIATIONS = (
    "JAN", "FEV", "MAR", "ABR", "MAI", "JUN",
    "JUL", "AGO", "SET", "OUT", "NOV", "DEZ",
)

_NUMERIC_MONTH = re.compile(r"^(\d{1,2})[/\-.](\d{4})$")
_UNIT_OR_CURRENCY = re.compile(r"(R\$|kwh|kw|reais|brl)", re.IGNORECASE)


def parse_number(raw: object) -> float:
    """Coerce a value emitted by the model into a float.

    Handles:
    - ints and floats (``bool`` is rejected)
    - Brazilian format: "1.234,56" -> 1234.56, "45,67" -> 45.67
    - US format: "1,234.56" -> 1234.56
    - currency and unit noise: "R$ 45,67", "526 kWh"
    - negative credits: "-438,17", "(438,17)", "438,17-"

    Raises ``ValueError`` for anything non-numeric or non-finite.
    """
    if isinstance(raw, bool):
        raise ValueError(f"Expected a number, got boolean {raw!r}")

    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        value = _parse_numeric_string(raw)
    else:
        raise ValueError(f"Expected a number, got {type(raw).__name__}")

    if not math.isfinite(value):
        raise ValueError(f"Number is not finite: {raw!r}")
    return value


def _parse_numeric_string(raw: str) -> float:
    cleaned = _UNIT_OR_CURRENCY.sub("", raw).strip()
    if not cleaned:
        raise ValueError(f"No numeric content in: {raw!r}")

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]
    elif cleaned.endswith("-"):
        negative = True
        cleaned = cleaned[:-1]
    elif cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[1:]

    cleaned = re.sub(r"\s", "", cleaned)

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            # 1.234,56
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", ".")

    if not re.fullmatch(r"\d+(\.\d+)?|\.\d+", cleaned):
        raise ValueError(f"Not a number: {raw!r}")

    value = float(cleaned)
    return -value if negative else value


def normalize_reference_month(raw: object) -> str:
    """Return the canonical ``MMM/YYYY`` upper-case form when recognisable.

    "set/2024" -> "SET/2024", "SET / 2024" -> "SET/2024", "09/2024" -> "SET/2024".
    Unrecognised but non-empty strings are returned trimmed and upper-cased.
    """
    text = re.sub(r"\s+", "", str(raw if raw is not None else "")).upper()
    match = _NUMERIC_MONTH.match(text)
    if match:
        month = int(match.group(1))
        if 1 <= month <= 12:
            return f"{MONTH_ABBREVIATIONS[month - 1]}/{match.group(2)}"
    return text
