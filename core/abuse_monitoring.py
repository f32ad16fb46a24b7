import re


SPAM_PHRASES = (
    "buy now",
    "click here",
    "free money",
    "limited time offer",
    "guaranteed income",
    "work from home",
    "earn money fast",
    "double your",
    "crypto giveaway",
    "act now",
    "100% free",
    "risk free",
)
ABUSE_TERMS = (
    "idiot",
    "stupid",
    "loser",
    "moron",
    "shut up",
    "hate you",
    "kill yourself",
)
LINK_PATTERN = re.compile(r"(https?://|www\.)\S+", re.IGNORECASE)
EXCESSIVE_LINK_COUNT = 3
SHOUTING_MIN_LETTERS = 20
SHOUTING_UPPERCASE_RATIO = 0.7
SPAM_SIGNAL_THRESHOLD = 2


def _normalized_text(value):
    return re.sub(r"\s+", " ", str(value or "").strip().lower())


def match_terms(text, terms):
    """Return the terms that occur in ``text`` as whole words, case-insensitively."""
    source = _normalized_text(text)
    if not source:
        return []
    found = []
    for term in terms:
        normalized = _normalized_text(term)
        if not normalized:
            continue
        pattern = r"(?<!\w)" + re.escape(normalized).replace(r"\ ", r"\s+") + r"(?!\w)"
        if re.search(pattern, source):
            found.append(normalized)
    return found


def _is_shouting(text):
    letters = [char for char in str(text or "") if char.isalpha()]
    if len(letters) < SHOUTING_MIN_LETTERS:
        return False
    upper = sum(1 for char in letters if char.isupper())
    return upper / len(letters) >= SHOUTING_UPPERCASE_RATIO


def classify_spam(text, phrases=None):
    signals = list(match_terms(text, phrases or SPAM_PHRASES))
    if len(LINK_PATTERN.findall(str(text or ""))) >= EXCESSIVE_LINK_COUNT:
        signals.append("excessive_links")
    if _is_shouting(text):
        signals.append("shouting")

    flagged = len(signals) >= SPAM_SIGNAL_THRESHOLD
    confidence = 0.0
    if signals:
        confidence = min(0.99, round(0.45 + (len(signals) * 0.15), 2))
    return {
        "flagged": flagged,
        "confidence_score": confidence,
        "signals": signals,
    }


def classify_abuse(text, terms=None):
    matches = match_terms(text, terms or ABUSE_TERMS)
    if len(matches) >= 3:
        severity = "high"
    elif len(matches) == 2:
        severity = "medium"
    else:
        severity = "low"
    return {
        "flagged": bool(matches),
        "severity": severity,
        "matches": matches,
    }
