"""Lexicon-based sentiment scoring of customer feedback.

Each text is scored with the AFINN word list; the comparative score
(lexicon score per token) decides its classification.
"""

import math
import re
from collections import Counter, defaultdict
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Tuple

from afinn import Afinn

POSITIVE_THRESHOLD = 0.1
NEGATIVE_THRESHOLD = -0.1
DEFAULT_LANGUAGE = "en"
MAX_TOPICS = 10

STOP_WORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they", "my", "your", "his", "her",
    "its", "our", "their", "me", "him", "us", "them", "very", "too", "so",
])

ISSUE_KEYWORDS = {
    "quality": ("poor", "bad", "terrible", "awful", "worst", "defective", "broken", "damaged"),
    "service": ("rude", "slow", "unprofessional", "unhelpful", "ignored", "waiting", "delay"),
    "price": ("expensive", "overpriced", "costly", "pricey", "waste", "money"),
    "cleanliness": ("dirty", "unclean", "messy", "filthy", "unhygienic"),
    "availability": ("unavailable", "out of stock", "closed", "missing"),
}

_PUNCTUATION = re.compile(r"[^\w\s]")


@lru_cache(maxsize=1)
def _lexicon() -> Afinn:
    return Afinn(language="en")


def tokenize(text: str) -> List[str]:
    return _PUNCTUATION.sub("", text.lower()).split()


def _round(value: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(value + 0.5))


def to_percent_score(comparative: float) -> int:
    """Map an average comparative score from [-1, 1] onto 0-100, clamped."""
    return max(0, min(100, _round((comparative + 1) / 2 * 100)))


def classify(comparative: float) -> str:
    if comparative > POSITIVE_THRESHOLD:
        return "positive"
    if comparative < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def score_text(text: str) -> Tuple[float, float]:
    """(lexicon score, comparative score) for one feedback text."""
    tokens = tokenize(text)
    score = float(_lexicon().score(text.lower()))
    return score, (score / len(tokens) if tokens else 0.0)


def empty_analysis() -> Dict[str, Any]:
    return {
        "overallScore": 0,
        "distribution": {"positive": 0, "neutral": 0, "negative": 0},
        "keyTopics": [],
        "negativeIssues": [],
        "languageBreakdown": [],
    }


def distribution(classes: List[str]) -> Dict[str, int]:
    """Whole-number percentages per class, summing to exactly 100."""
    total = len(classes)
    counts = Counter(classes)
    result = {name: _round(counts[name] / total * 100) for name in ("positive", "neutral", "negative")}

    diff = 100 - sum(result.values())
    if diff:
        if result["positive"] >= result["neutral"] and result["positive"] >= result["negative"]:
            result["positive"] += diff
        elif result["neutral"] >= result["negative"]:
            result["neutral"] += diff
        else:
            result["negative"] += diff
    return result


def key_topics(scored: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    frequency: Counter = Counter()
    sentiments: Dict[str, Counter] = defaultdict(Counter)
    for item in scored:
        for word in tokenize(item["text"]):
            if len(word) > 3 and word not in STOP_WORDS:
                frequency[word] += 1
                sentiments[word][item["classification"]] += 1

    topics = []
    for word, count in frequency.most_common(MAX_TOPICS):
        votes = sentiments[word]
        if votes["positive"] > votes["neutral"] and votes["positive"] > votes["negative"]:
            dominant = "positive"
        elif votes["negative"] > votes["neutral"]:
            dominant = "negative"
        else:
            dominant = "neutral"
        topics.append({"topic": word, "frequency": count, "sentiment": dominant})
    return topics


def negative_issues(scored: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    negatives = [item["text"].lower() for item in scored if item["classification"] == "negative"]
    if not negatives:
        return []

    issues = []
    for category, keywords in ISSUE_KEYWORDS.items():
        hits = sum(1 for text in negatives for keyword in keywords if keyword in text)
        if not hits:
            continue
        share = hits / len(negatives)
        severity = "high" if share > 0.5 else "medium" if share > 0.25 else "low"
        issues.append({
            "description": f"Issues related to {category}",
            "frequency": hits,
            "severity": severity,
        })
    issues.sort(key=lambda issue: issue["frequency"], reverse=True)
    return issues


def language_breakdown(scored: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_language: Dict[str, List[float]] = defaultdict(list)
    for item in scored:
        by_language[item["language"]].append(item["comparative"])

    breakdown = [
        {
            "language": language,
            "count": len(values),
            "averageSentiment": to_percent_score(sum(values) / len(values)),
        }
        for language, values in by_language.items()
    ]
    breakdown.sort(key=lambda entry: entry["count"], reverse=True)
    return breakdown


def analyze(feedback: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Full analysis of a non-empty list of ``{"text", "language"?}`` items."""
    scored = []
    for item in feedback:
        score, comparative = score_text(item["text"])
        scored.append({
            "text": item["text"],
            "language": item.get("language") or DEFAULT_LANGUAGE,
            "score": score,
            "comparative": comparative,
            "classification": classify(comparative),
        })

    average = sum(item["comparative"] for item in scored) / len(scored)
    return {
        "overallScore": to_percent_score(average),
        "distribution": distribution([item["classification"] for item in scored]),
        "keyTopics": key_topics(scored),
        "negativeIssues": negative_issues(scored),
        "languageBreakdown": language_breakdown(scored),
    }
