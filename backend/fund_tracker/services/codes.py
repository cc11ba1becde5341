"""Fund code parsing and validation for free-text queries."""

import re

from fund_tracker.config import MAX_QUERY_CODES

# Whitespace, ASCII/fullwidth comma, ASCII/fullwidth slash
_DELIMITERS = re.compile(r"[\s,，/／]+")
_FUND_CODE = re.compile(r"[0-9]{6}")


def parse_codes(text: str, limit: int = MAX_QUERY_CODES) -> list[str]:
    """Split free text into an ordered, de-duplicated list of at most ``limit`` tokens."""
    codes: list[str] = []
    for token in _DELIMITERS.split(text.strip()):
        if token and token not in codes:
            codes.append(token)
        if len(codes) >= limit:
            break
    return codes


def is_valid_code(code: str) -> bool:
    return _FUND_CODE.fullmatch(code) is not None


def extract_valid_codes(text: str, limit: int = MAX_QUERY_CODES) -> tuple[list[str], list[str]]:
    """Return (valid, rejected) tokens from ``text``; rejected tokens never reach the tracker."""
    valid: list[str] = []
    rejected: list[str] = []
    for token in parse_codes(text, limit):
        (valid if is_valid_code(token) else rejected).append(token)
    return valid, rejected
