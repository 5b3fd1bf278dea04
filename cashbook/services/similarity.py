import re
from typing import Protocol

PROVENANCE_TAG_RE = re.compile(r"^\s*(\[[^\]]*\]\s*)+")


def strip_provenance_tag(text: str) -> str:
    """Drop leading bracketed source tags such as '[نظام المصروفات] '."""
    if not text:
        return ""
    return PROVENANCE_TAG_RE.sub("", text).strip()


class SimilarityStrategy(Protocol):
    def is_similar(self, a: str, b: str) -> bool:
        ...


class SubstringSimilarity:
    """Two descriptions are similar when one contains the other once tags are stripped."""

    def is_similar(self, a: str, b: str) -> bool:
        left = strip_provenance_tag(a)
        right = strip_provenance_tag(b)
        if not left or not right:
            return False
        return left in right or right in left


class NormalizedSimilarity(SubstringSimilarity):
    """Substring match after case folding and whitespace collapsing."""

    WHITESPACE_RE = re.compile(r"\s+")

    def _normalize(self, text: str) -> str:
        return self.WHITESPACE_RE.sub(" ", strip_provenance_tag(text)).casefold()

    def is_similar(self, a: str, b: str) -> bool:
        return super().is_similar(self._normalize(a), self._normalize(b))
