"""Model-free classifiers for raw utterances.

Everything here is pure and deterministic: no model calls, no I/O.
"""

import re
from enum import Enum

_WORD = re.compile(r"[a-z0-9']+")

_ACKNOWLEDGEMENTS = {
    "yes", "y", "yeah", "yep", "sure", "no", "n", "nope", "ok", "okay", "k",
    "thanks", "thank", "you", "thx", "cool", "great", "nice", "hi", "hello",
    "hey", "please", "done", "fine", "good",
}

_CREATION_VERBS = re.compile(
    r"\b(create|creating|build|building|write|writing|draft|drafting|start|starting|make|making|"
    r"develop|developing|design|designing|plan|planning|launch|launching|kick\s*off|put\s+together|"
    r"spin\s+up|set\s+up|switch(?:\s+over)?\s+to|move\s+on\s+to)\b"
)
_DELIVERABLES = re.compile(
    r"\b(project|product|app|application|document|doc|prd|requirements?|spec|specification|design|"
    r"proposal|platform|system|service|tool|feature|mvp|prototype|brief|roadmap|idea|plan)\b"
)
_INTENT_PHRASES = re.compile(
    r"\b(i\s+want\s+to|i'd\s+like\s+to|i\s+would\s+like\s+to|we\s+want\s+to|we\s+need\s+to|"
    r"i\s+need\s+to|let's|lets|help\s+me|can\s+you|i'm\s+going\s+to|we're\s+going\s+to|"
    r"this\s+will\s+be|it\s+will\s+be|i'm\s+building|we're\s+building|i\s+have\s+an\s+idea)\b"
)
_NEW_MARKER = re.compile(r"\b(new|brand[-\s]new|fresh|another)\b")
_PROJECT_DESCRIPTION = re.compile(r"\b(this|it)\s+(will|would|is\s+going\s+to)\s+be\s+an?\s+\w+")
_QUESTION_OPENERS = re.compile(
    r"^(what|why|how|when|where|which|who|is|are|does|do|can|could|should|would)\b"
)

_REVISION_VERBS = re.compile(
    r"\b(fix|fixes|fixing|revise|revising|update|updating|improve|improving|address|addressing|"
    r"refine|refining|edit|editing|amend|correct|correcting|rework|reworking|polish|apply|"
    r"incorporate|resolve|change|tweak|rewrite|expand|clean\s+up)\b"
)
# Nouns naming the authored document or feedback on it; bare pronouns do not count.
_PRIOR_OUTPUT_REFS = re.compile(
    r"\b(document|doc|draft|prd|spec|specification|section|sections|review|reviewer|"
    r"feedback|findings|requirements|design)\b"
)
_REQUEST_OPENERS = re.compile(r"^(can|could|would|will)\s+you\b")

_COMPLETION = re.compile(
    r"^\s*(/done|done|finish|finished|complete|that['’]?s\s+it|looks\s+good|that\s+works)\s*[!.]?\s*$",
    re.IGNORECASE,
)

_AFFIRMATIVE = re.compile(
    r"^\s*(yes|y|yeah|yep|yup|sure|ok|okay|confirm|confirmed|do\s+it|go\s+ahead|proceed|switch)\b",
    re.IGNORECASE,
)
_NEGATIVE = re.compile(
    r"^\s*(no|n|nope|nah|cancel|stop|don't|do\s+not|keep|stay)\b",
    re.IGNORECASE,
)

_TITLE_LEADS = re.compile(
    r"\b(?:for|about|on|called|named|titled|regarding)\s+(?:a\s+|an\s+|the\s+|our\s+|my\s+)?(.+)$",
    re.IGNORECASE,
)


class Confirmation(str, Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def looks_like_kickoff(text: str, min_words: int = 5) -> bool:
    """Does this utterance describe building or creating a new deliverable?

    Short utterances, acknowledgements and bare corrections are never
    kickoffs. Plain questions are conversation, not kickoffs, unless they
    explicitly ask to create something new.
    """
    lower = (text or "").strip().lower()
    words = _words(lower)
    if len(words) < min_words:
        return False
    if all(w in _ACKNOWLEDGEMENTS for w in words):
        return False

    if _PROJECT_DESCRIPTION.search(lower) and _DELIVERABLES.search(lower):
        return True

    has_verb = bool(_CREATION_VERBS.search(lower))
    has_deliverable = bool(_DELIVERABLES.search(lower))
    if not (has_verb and has_deliverable):
        return False

    if _QUESTION_OPENERS.match(lower) and not _NEW_MARKER.search(lower):
        return False
    return bool(_INTENT_PHRASES.search(lower) or _NEW_MARKER.search(lower) or _CREATION_VERBS.match(lower))


def looks_like_revision(text: str) -> bool:
    """Does this utterance ask to revise a previously authored document?

    Questions are not revision requests unless phrased as one ("can you
    update the spec?").
    """
    lower = (text or "").strip().lower()
    if not lower or is_completion(lower):
        return False
    if _NEW_MARKER.search(lower) and looks_like_kickoff(lower):
        return False
    if _QUESTION_OPENERS.match(lower) and not _REQUEST_OPENERS.match(lower):
        return False
    return bool(_REVISION_VERBS.search(lower) and _PRIOR_OUTPUT_REFS.search(lower))


def is_completion(text: str) -> bool:
    """Is this a literal 'done' signal?"""
    return bool(_COMPLETION.match(text or ""))


def parse_confirmation(text: str) -> Confirmation | None:
    """Interpret a yes/no reply. Anything else is None."""
    if _NEGATIVE.match(text or ""):
        return Confirmation.NEGATIVE
    if _AFFIRMATIVE.match(text or ""):
        return Confirmation.AFFIRMATIVE
    return None


def derive_title(text: str, max_words: int = 8) -> str:
    """Best-effort document title from an utterance, without a model call."""
    stripped = (text or "").strip().rstrip(".!?")
    match = _TITLE_LEADS.search(stripped)
    candidate = match.group(1) if match else stripped
    words = candidate.split()[:max_words]
    if not words:
        return "New Document"
    return " ".join(w[:1].upper() + w[1:] for w in words)
