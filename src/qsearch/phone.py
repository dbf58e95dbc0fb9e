from __future__ import annotations

MIN_COUNTRY_CODE_LENGTH = 1
MAX_COUNTRY_CODE_LENGTH = 3
MIN_NUMBER_DIGITS = 7


def extract_digits(number: str) -> str:
    return "".join(ch for ch in number if ch.isdigit())


def has_country_code(number: str) -> bool:
    trimmed = number.strip()
    return len(trimmed) > 1 and trimmed[0] == "+" and trimmed[1].isdigit()


def _strip_country_code(with_code: str, without_code: str) -> bool:
    for code_len in range(MIN_COUNTRY_CODE_LENGTH, MAX_COUNTRY_CODE_LENGTH + 1):
        if len(with_code) > code_len and with_code[code_len:] == without_code:
            return True
    return False


def is_same_number(a: str, b: str) -> bool:
    """True when two numbers differ at most by a leading country code.

    "+14155550123" and "4155550123" -> True
    "+914155550123" and "4155550123" -> True
    """
    digits_a = extract_digits(a)
    digits_b = extract_digits(b)
    if digits_a == digits_b:
        return True

    code_a = has_country_code(a)
    code_b = has_country_code(b)
    if code_a == code_b:
        return False

    if code_a:
        return _strip_country_code(digits_a, digits_b)
    return _strip_country_code(digits_b, digits_a)


def is_valid_number(number: str) -> bool:
    if not number or not number.strip():
        return False
    return len(extract_digits(number)) >= MIN_NUMBER_DIGITS


def clean_number(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    trimmed = raw.strip()
    digits = extract_digits(trimmed)
    if len(digits) < MIN_NUMBER_DIGITS:
        return None
    return f"+{digits}" if trimmed.startswith("+") else digits


def merge_number(numbers: list[str], new_number: str) -> list[str]:
    """Add ``new_number`` unless an equivalent number is already present.

    When the two forms are equivalent the one carrying a country code is kept.
    """
    if new_number in numbers:
        return numbers
    for idx, existing in enumerate(numbers):
        if not is_same_number(existing, new_number):
            continue
        if has_country_code(new_number) and not has_country_code(existing):
            numbers[idx] = new_number
        return numbers
    numbers.append(new_number)
    return numbers


def _format_international(number: str) -> str:
    digits = extract_digits(number)
    if len(digits) <= 3:
        return number

    if len(digits) >= 10:
        code_len = 1
    elif len(digits) >= 9:
        code_len = 2
    else:
        code_len = 3

    prefix = "+" if number.startswith("+") else ""
    rest = digits[code_len:]
    chunks: list[str] = []
    idx = 0
    while idx < len(rest):
        size = 4 if len(rest) - idx <= 4 else 3
        chunks.append(rest[idx : idx + size])
        idx += size
    return f"{prefix}{digits[:code_len]} " + " ".join(chunks)


def format_for_display(number: str) -> str:
    if not number.strip():
        return number
    digits = extract_digits(number)
    if not digits:
        return number
    if number.strip().startswith("+"):
        return _format_international(f"+{digits}")
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return _format_international(digits)
