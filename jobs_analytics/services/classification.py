from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from jobs_analytics.services.taxonomy import (
    DEFAULT_TAXONOMY,
    LEADERSHIP_CATEGORY,
    LEADERSHIP_TITLE_INDICATORS,
    STOP_WORDS,
    Category,
    Taxonomy,
)

logger = logging.getLogger(__name__)

CORE_KEYWORD_WEIGHT = 40
SUPPORT_KEYWORD_WEIGHT = 20
CONTEXT_PAIR_BONUS = 25
TITLE_KEYWORD_BONUS = 20
LEADERSHIP_OVERRIDE_CONFIDENCE = 95
FALLBACK_CONFIDENCE = 25
LOW_CONFIDENCE_THRESHOLD = 40
AMBIGUOUS_RUNNER_UP_THRESHOLD = 60
SECONDARY_MIN_SCORE = 30
MAX_SECONDARY = 2
MAX_EMERGING_TERMS = 5
MIN_EMERGING_TERMS = 4

_WORD_RE = re.compile(r"[a-z][a-z'-]*[a-z]")
_EXECUTIVE_GRADES = {"ASG", "USG", "SG", "DSG"}
_D_GRADE_RE = re.compile(r"^D-?[12]$")
_P_GRADE_RE = re.compile(r"^P-?(\d+)$")
_PSA_GRADE_RE = re.compile(r"^PSA-?(\d+)$")
_NPSA_GRADE_RE = re.compile(r"^NPSA-?(\d+)$")
_GS_GRADE_RE = re.compile(r"^G(?:S)?-?(\d+)")


@dataclass(slots=True)
class ClassificationFlags:
    low_confidence: bool = False
    ambiguous: bool = False
    emerging_terms: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ClassificationResult:
    primary: str
    confidence: int
    secondary: list[tuple[str, int]]
    reasoning: list[str]
    flags: ClassificationFlags


@dataclass(slots=True)
class CategoryScore:
    category_id: str
    score: float


def classify(
    title: str | None,
    description: str | None,
    labels: str | None,
    grade: str | None,
    *,
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
) -> ClassificationResult:
    """Assign a posting to one taxonomy category.

    A non-empty grade is authoritative for the leadership override: a
    qualifying grade forces ``leadership-executive`` and a non-qualifying one
    disables the title-based override. Everything else goes through keyword
    scoring. Never raises; internal errors yield the fallback result.
    """
    try:
        return _classify(title, description, labels, grade, taxonomy)
    except Exception:
        logger.exception("classification failed title=%r grade=%r", title, grade)
        return fallback_result(taxonomy)


def fallback_result(taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> ClassificationResult:
    return ClassificationResult(
        primary=taxonomy.fallback_category,
        confidence=FALLBACK_CONFIDENCE,
        secondary=[],
        reasoning=["Fallback classification due to processing error"],
        flags=ClassificationFlags(low_confidence=True),
    )


def is_leadership_grade(grade: str | None) -> bool:
    normalized = (grade or "").strip().upper()
    if not normalized:
        return False
    if normalized in _EXECUTIVE_GRADES or normalized == "NOD":
        return True
    if _D_GRADE_RE.match(normalized):
        return True
    match = _P_GRADE_RE.match(normalized)
    if match:
        return 5 <= int(match.group(1)) <= 7
    match = _PSA_GRADE_RE.match(normalized)
    if match:
        return int(match.group(1)) >= 10
    match = _NPSA_GRADE_RE.match(normalized)
    if match:
        return int(match.group(1)) >= 10
    return False


def seniority_level(grade: str | None) -> str:
    normalized = (grade or "").strip().upper()
    if not normalized:
        return "Unknown"
    if normalized in _EXECUTIVE_GRADES or _D_GRADE_RE.match(normalized):
        return "Executive"

    match = _P_GRADE_RE.match(normalized)
    if match:
        level = int(match.group(1))
        if level >= 5:
            return "Senior"
        if level >= 3:
            return "Mid-Level"
        return "Entry"

    if normalized.startswith("NO"):
        if normalized == "NOD":
            return "Senior"
        if normalized == "NOC":
            return "Mid-Level"
        return "Entry"

    match = _GS_GRADE_RE.match(normalized)
    if match:
        level = int(match.group(1))
        if level >= 6:
            return "Senior"
        if level >= 4:
            return "Mid-Level"
        return "Entry"

    if "INTERN" in normalized:
        return "Intern"
    if "CONSULT" in normalized:
        return "Consultant"
    if "UNV" in normalized or "VOLUNTEER" in normalized:
        return "Volunteer"
    return "Unknown"


def score_categories(title: str, combined: str, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> list[CategoryScore]:
    """Score every category, sorted best first with taxonomy order breaking ties."""
    scores = [CategoryScore(category_id=category.id, score=_score_category(category, title, combined)) for category in taxonomy.categories]
    return sorted(scores, key=lambda item: -item.score)


def _classify(
    title: str | None,
    description: str | None,
    labels: str | None,
    grade: str | None,
    taxonomy: Taxonomy,
) -> ClassificationResult:
    title_text = (title or "").lower()
    description_text = (description or "").lower()
    label_text = " ".join(label.strip().lower() for label in (labels or "").split(","))
    combined = f"{title_text} {description_text} {label_text}"

    override_reason = _leadership_override(grade, title_text)
    if override_reason is not None:
        return ClassificationResult(
            primary=LEADERSHIP_CATEGORY,
            confidence=LEADERSHIP_OVERRIDE_CONFIDENCE,
            secondary=[],
            reasoning=[f"Leadership override: {override_reason}"],
            flags=ClassificationFlags(),
        )

    ranked = score_categories(title_text, combined, taxonomy)
    top = ranked[0]
    flags = ClassificationFlags(
        low_confidence=top.score < LOW_CONFIDENCE_THRESHOLD,
        ambiguous=len(ranked) > 1 and ranked[1].score > AMBIGUOUS_RUNNER_UP_THRESHOLD,
        emerging_terms=_emerging_terms(combined, taxonomy),
    )

    if top.score <= 0:
        fallback = taxonomy.get(taxonomy.fallback_category)
        fallback_name = fallback.name if fallback is not None else taxonomy.fallback_category
        return ClassificationResult(
            primary=taxonomy.fallback_category,
            confidence=0,
            secondary=[],
            reasoning=[
                f"No taxonomy keywords matched; defaulted to {fallback_name}",
                "Low confidence classification - manual review recommended",
            ],
            flags=flags,
        )

    secondary = [
        (item.category_id, round(item.score))
        for item in ranked[1 : 1 + MAX_SECONDARY]
        if item.score > SECONDARY_MIN_SCORE
    ]
    return ClassificationResult(
        primary=top.category_id,
        confidence=round(top.score),
        secondary=secondary,
        reasoning=_reasoning(taxonomy.get(top.category_id), top.score),
        flags=flags,
    )


def _leadership_override(grade: str | None, title_text: str) -> str | None:
    stripped_grade = (grade or "").strip()
    if stripped_grade:
        if is_leadership_grade(stripped_grade):
            return f"Leadership grade {stripped_grade} detected"
        return None

    for indicator in LEADERSHIP_TITLE_INDICATORS:
        if indicator in title_text:
            return f'Leadership title "{indicator}" detected'
    return None


def _score_category(category: Category, title_text: str, combined: str) -> float:
    score = 0.0
    for pattern in category.core_patterns:
        score += CORE_KEYWORD_WEIGHT * len(pattern.findall(combined))
        if pattern.search(title_text):
            score += TITLE_KEYWORD_BONUS
    for pattern in category.support_patterns:
        score += SUPPORT_KEYWORD_WEIGHT * len(pattern.findall(combined))
    for first, second in category.context_pairs:
        if first.lower() in combined and second.lower() in combined:
            score += CONTEXT_PAIR_BONUS
    return max(0.0, min(100.0, score))


def _emerging_terms(combined: str, taxonomy: Taxonomy) -> list[str]:
    counts: Counter[str] = Counter()
    for word in _WORD_RE.findall(combined):
        if len(word) <= 3 or word in STOP_WORDS or word in taxonomy.known_words:
            continue
        counts[word] += 1
    if len(counts) < MIN_EMERGING_TERMS:
        return []
    # Counter.most_common keeps insertion order for equal counts.
    return [word for word, _ in counts.most_common(MAX_EMERGING_TERMS)]


def _reasoning(category: Category | None, score: float) -> list[str]:
    if category is None:
        return []
    reasoning = [f"Classified as {category.name} based on keyword analysis"]
    if score > 80:
        reasoning.append("High confidence classification with strong keyword matches")
    elif score > 60:
        reasoning.append("Moderate confidence classification")
    else:
        reasoning.append("Low confidence classification - manual review recommended")
    return reasoning
