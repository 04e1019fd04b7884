"""Identity keys derived from customer document and report file names."""

import re

_EXTENSION_RE = re.compile(r"\.[^.]*$")
_TRAILING_COUNTER_RE = re.compile(r"\s*\(\d+\)$")


def _strip_extension(name: str) -> str:
    return _EXTENSION_RE.sub("", name, count=1)


def document_key(name: str) -> str:
    """Identity of a customer document: the name without its extension.

    Parenthetical suffixes such as ``(1)`` are kept, so ``fileA1 (1).pdf``
    and ``fileA1.pdf`` stay distinct documents.
    """
    return _strip_extension(name or "").lower().strip()


def report_key(name: str) -> str:
    """Identity of the document a report belongs to.

    Removes the extension and then exactly one trailing ``(N)`` counter:
    ``fileA1 (1) (2).pdf`` -> ``filea1 (1)``.
    """
    base = _strip_extension(name or "")
    base = _TRAILING_COUNTER_RE.sub("", base, count=1)
    return base.lower().strip()


def has_trailing_counter(name: str) -> bool:
    return _TRAILING_COUNTER_RE.search(_strip_extension(name or "")) is not None
