import hmac
import re
import secrets

CODE_MIN = 100000
CODE_MAX = 999999

_CODE_RE = re.compile(r'[0-9]{6}')


def generate_code():
    """Return a 6-digit one-time code in [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def is_well_formed(code):
    return isinstance(code, str) and bool(_CODE_RE.fullmatch(code))


def codes_match(expected, submitted):
    # Constant time: the submitted code must not leak through timing
    return hmac.compare_digest(str(expected).encode('utf-8'), str(submitted).encode('utf-8'))
