from __future__ import annotations

import re

MULTI_SPACE_RE = re.compile(r"\s{2,}")
STANDALONE_VALUE_RE = re.compile(r"^\$?[\d,]+\.?\d*$")


def _looks_standalone(token: str) -> bool:
    return (
        bool(STANDALONE_VALUE_RE.match(token))
        or len(token) <= 3
        or "$" in token
        or "%" in token
    )


def _group_words(line: str) -> list[str]:
    fields: list[str] = []
    current: list[str] = []
    for token in line.split():
        if _looks_standalone(token):
            if current:
                fields.append(" ".join(current))
                current = []
            fields.append(token)
        else:
            current.append(token)
    if current:
        fields.append(" ".join(current))
    return [item.strip() for item in fields if item.strip()]


def tokenize(line: str) -> list[str]:
    """
    Split one pasted line into fields.

    Tabs win (spreadsheet copy), then runs of two or more spaces, then a
    word-grouping fallback that keeps numbers, money and short codes as
    their own fields and merges the words between them.
    """
    if "\t" in line:
        return [item.strip() for item in line.split("\t")]
    if "  " in line:
        return [item.strip() for item in MULTI_SPACE_RE.split(line)]
    return _group_words(line)


def split_pasted_text(text: str) -> list[list[str]]:
    """
    Tokenize every line of a pasted block, stripping each line first.

    Blank lines come back as empty rows so row indices match line numbers.
    """
    return [tokenize(line.strip()) if line.strip() else [] for line in text.splitlines()]
