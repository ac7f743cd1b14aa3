"""Activity scores derived from which work-data sections carry real content.

Both scores are stateless functions of a `WorkDataDocument`. A section counts
only when it is non-empty and not equal to its sentinel placeholder.
"""

from workdigest.types import Section, WorkDataDocument

MAX_SCORE = 100

PRODUCTIVITY_WEIGHTS: dict[Section, int] = {
    Section.COMMITS: 30,
    Section.PULL_REQUESTS: 25,
    Section.TICKETS: 20,
    Section.DOCUMENTS: 15,
    Section.CUSTOMER_ISSUES: 10,
}

COLLABORATION_WEIGHTS: dict[Section, int] = {
    Section.REVIEWS: 30,
    Section.CHAT: 25,
    Section.MEETINGS: 25,
    Section.CUSTOMER_ISSUES: 20,
}


def has_activity(document: WorkDataDocument, section: Section) -> bool:
    """Return True if the section holds something other than its placeholder"""
    text = document.get(section)
    if text is None or not text.strip():
        return False
    return text.strip() != section.sentinel


def _weighted(document: WorkDataDocument, weights: dict[Section, int]) -> int:
    total = sum(weight for section, weight in weights.items() if has_activity(document, section))
    return max(0, min(total, MAX_SCORE))


def productivity_score(document: WorkDataDocument) -> int:
    return _weighted(document, PRODUCTIVITY_WEIGHTS)


def collaboration_score(document: WorkDataDocument) -> int:
    return _weighted(document, COLLABORATION_WEIGHTS)


def score(document: WorkDataDocument) -> tuple[int, int]:
    """Return `(productivity, collaboration)`, each an integer in [0, 100]"""
    return productivity_score(document), collaboration_score(document)
