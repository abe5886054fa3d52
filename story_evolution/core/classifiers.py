"""
Keyword classifiers used by the trackers.

Every heuristic label (tone, thread category, emotional intensity, knowledge
significance, decision trait, ...) goes through a classifier object so a
better implementation can be swapped in via `Classifiers` without touching
the tracking logic. Rules are checked in order; the first rule with a keyword
contained in the lowercase text wins.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


class KeywordClassifier:
    """Single-label classifier: ordered (label, keywords) rules plus a default."""

    def __init__(self, rules: Sequence[Tuple[str, Sequence[str]]], default: str):
        self.rules = [(label, tuple(keywords)) for label, keywords in rules]
        self.default = default

    def classify(self, text: str) -> str:
        lower = (text or "").lower()
        for label, keywords in self.rules:
            if any(keyword in lower for keyword in keywords):
                return label
        return self.default

    def __call__(self, text: str) -> str:
        return self.classify(text)


class KeywordTagger:
    """Multi-label tagger: every matching rule contributes its tags, in rule order."""

    def __init__(self, rules: Sequence[Tuple[Sequence[str], Sequence[str]]]):
        self.rules = [(tuple(keywords), tuple(tags)) for keywords, tags in rules]

    def tag(self, text: str) -> List[str]:
        lower = (text or "").lower()
        tags: List[str] = []
        for keywords, rule_tags in self.rules:
            if any(keyword in lower for keyword in keywords):
                for t in rule_tags:
                    if t not in tags:
                        tags.append(t)
        return tags

    def __call__(self, text: str) -> List[str]:
        return self.tag(text)


# ============================================================================
# Default rule sets
# ============================================================================

TONE_CLASSIFIER = KeywordClassifier(
    [
        ("tense", ["tension", "suspense", "fear"]),
        ("hopeful", ["hope", "joy", "triumph"]),
        ("melancholic", ["sad", "loss", "grief"]),
        ("intense", ["anger", "conflict", "fight"]),
        ("romantic", ["romance", "love", "intimate"]),
    ],
    default="neutral",
)

DISCOVERY_TYPE_CLASSIFIER = KeywordClassifier(
    [
        ("backstory", ["past", "history", "was once"]),
        ("motivation", ["wants", "needs", "desires"]),
        ("relationship", ["relationship", "feelings for"]),
        ("skill", ["can", "knows how", "skill"]),
    ],
    default="trait",
)

THREAD_CATEGORY_CLASSIFIER = KeywordClassifier(
    [
        ("mystery", ["secret", "mystery", "unknown"]),
        ("conflict", ["conflict", "against", "fight"]),
        ("relationship", ["relationship", "between", "love"]),
        ("goal", ["must", "goal", "mission"]),
    ],
    default="secret",
)

PAGE_HOOK_CLASSIFIER = KeywordClassifier(
    [
        ("question", ["?", "who", "what", "why"]),
        ("reveal", ["reveal", "sees", "discovers"]),
        ("action_freeze", ["frozen", "mid-", "about to"]),
        ("emotional", ["tears", "emotion", "face"]),
    ],
    default="cliffhanger",
)

VISUAL_BEAT_CLASSIFIER = KeywordClassifier(
    [
        ("reveal", ["reveal", "discover", "sees"]),
        ("action_sequence", ["action", "chase", "fight"]),
        ("emotional_moment", ["emotion", "tears", "moment"]),
        ("establishing", ["exterior", "landscape", "city"]),
    ],
    default="transition",
)

INTENSITY_CLASSIFIER = KeywordClassifier(
    [
        ("extreme", ["furious", "terrified", "devastated", "ecstatic", "enraged", "horrified", "extreme"]),
        ("high", ["angry", "scared", "sad", "happy", "worried", "excited"]),
        ("low", ["slightly", "somewhat"]),
    ],
    default="medium",
)

KNOWLEDGE_SIGNIFICANCE_CLASSIFIER = KeywordClassifier(
    [
        ("story_changing", ["secret", "truth about", "real reason"]),
        ("major", ["discovered", "realized", "found out"]),
        ("moderate", ["learned", "heard"]),
    ],
    default="minor",
)

DECISION_TRAIT_CLASSIFIER = KeywordClassifier(
    [
        ("Prioritizes others over self", ["save", "protect", "help"]),
        ("Values honesty", ["truth", "honest", "reveal"]),
        ("Confronts problems directly", ["fight", "confront", "challenge"]),
        ("Chooses self-preservation", ["run", "escape", "avoid"]),
        ("Capable of sacrifice", ["sacrifice", "give up"]),
    ],
    default="Made difficult choice",
)

CAPABILITY_IMPACT_TAGGER = KeywordTagger(
    [
        (["leg", "ankle", "foot"], ["cannot run", "limited mobility"]),
        (["arm", "hand", "shoulder"], ["limited combat ability", "cannot carry heavy objects"]),
        (["head", "concussion"], ["impaired judgment", "possible confusion"]),
        (["exhausted", "weak"], ["reduced stamina", "needs rest"]),
    ]
)


@dataclass
class Classifiers:
    """The replaceable classifier set shared by the trackers."""
    tone: KeywordClassifier = field(default_factory=lambda: TONE_CLASSIFIER)
    discovery_type: KeywordClassifier = field(default_factory=lambda: DISCOVERY_TYPE_CLASSIFIER)
    thread_category: KeywordClassifier = field(default_factory=lambda: THREAD_CATEGORY_CLASSIFIER)
    page_hook: KeywordClassifier = field(default_factory=lambda: PAGE_HOOK_CLASSIFIER)
    visual_beat: KeywordClassifier = field(default_factory=lambda: VISUAL_BEAT_CLASSIFIER)
    intensity: KeywordClassifier = field(default_factory=lambda: INTENSITY_CLASSIFIER)
    knowledge_significance: KeywordClassifier = field(
        default_factory=lambda: KNOWLEDGE_SIGNIFICANCE_CLASSIFIER
    )
    decision_trait: KeywordClassifier = field(default_factory=lambda: DECISION_TRAIT_CLASSIFIER)
    capability_impact: KeywordTagger = field(default_factory=lambda: CAPABILITY_IMPACT_TAGGER)
