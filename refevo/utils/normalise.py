"""
Input normalisation for names, emails and UK phone numbers.
"""
import re

UK_MOBILE_PATTERN = re.compile(r'^07\d{9}$')
E164_PATTERN = re.compile(r'^\+\d{8,15}$')
_APOSTROPHE_SPLIT = re.compile(r"(['’])")


def trim_all(data):
    """Strip whitespace from every string value in a (possibly nested) dict or list."""
    if isinstance(data, dict):
        return {k: trim_all(v) for k, v in data.items()}
    if isinstance(data, list):
        return [trim_all(v) for v in data]
    if isinstance(data, str):
        return data.strip()
    return data


def normalise_email(email):
    return (email or '').strip().lower()


def _cap(part):
    return part[:1].upper() + part[1:] if part else part


def _case_segment(segment):
    pieces = _APOSTROPHE_SPLIT.split(segment)
    cased = ''.join(p if i % 2 == 1 else _cap(p) for i, p in enumerate(pieces))
    lowered = cased.lower()
    if re.match(r'^mc[a-z]', lowered):
        return 'Mc' + _cap(cased[2:])
    if re.match(r'^mac[a-z]{3,}', lowered):
        return 'Mac' + _cap(cased[3:])
    return cased


def title_case_name(raw):
    """
    Title-case a person's name, respecting hyphens, apostrophes and Mc/Mac.

    "mary o'neill-jones" -> "Mary O'Neill-Jones", "  sam   lee " -> "Sam Lee"
    """
    clean = ' '.join((raw or '').split()).lower()
    if not clean:
        return ''
    return ' '.join(
        '-'.join(_case_segment(seg) for seg in token.split('-'))
        for token in clean.split(' ')
    )


def is_uk_mobile(value):
    return bool(UK_MOBILE_PATTERN.match(value or ''))


def uk_mobile_to_e164(raw):
    """Convert a UK number to +44 E.164. Empty input returns an empty string."""
    if not raw:
        return ''
    digits = re.sub(r'\D', '', raw)
    if digits.startswith('00'):
        digits = digits[2:]
    if digits.startswith('0'):
        digits = '44' + digits[1:]
    if not digits.startswith('44'):
        digits = '44' + digits
    return '+' + digits
