
from __future__ import annotations
from typing import List, Optional, AbstractSet
import re

# Stop words per note language. English is the only table shipped; callers
# analysing other languages pass their own set to extract_keywords().
STOPWORDS = {
    "en": frozenset([
        "i", "me", "my", "myself", "we", "our", "ours", "you", "your", "he", "him",
        "his", "she", "her", "it", "its", "they", "them", "their", "what", "which",
        "who", "when", "where", "why", "how", "a", "an", "the", "and", "but", "if",
        "or", "because", "as", "until", "while", "of", "at", "by", "for", "with",
        "about", "against", "between", "into", "through", "during", "before", "after",
        "to", "from", "in", "out", "on", "off", "over", "under", "again", "further",
        "then", "once", "am", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "should", "could",
    ]),
}

DEFAULT_LANG = "en"
MIN_KEYWORD_LEN = 4

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(text: Optional[str], stopwords: Optional[AbstractSet[str]] = None) -> List[str]:
    if not text:
        return []
    stop = STOPWORDS[DEFAULT_LANG] if stopwords is None else stopwords
    tokens = _NON_WORD.sub(" ", text.lower()).split()
    return [t for t in tokens if len(t) >= MIN_KEYWORD_LEN and t not in stop]
