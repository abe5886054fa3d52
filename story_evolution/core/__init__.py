"""
Story Evolution Core Module
Leaf helpers shared by the trackers: errors, name-keyed maps, similarity
matching, keyword classifiers, identifiers and JSON recovery.

The extraction engine, trackers, revision planner and pipeline live in the
sibling modules of this package and are exported from `story_evolution`.
"""

from .exceptions import EvolutionError, FormatMismatchError, GenerationFailure
from .keyed_map import NameKeyedMap, normalize_key
from .matching import (
    EditDistanceMatcher,
    SimilarityMatcher,
    SubstringMatcher,
    TokenOverlapMatcher,
    create_matcher,
)
from .classifiers import Classifiers, KeywordClassifier, KeywordTagger
from .ids import IdSequence
from .json_utils import backoff_delay, extract_json, is_retryable_error, normalize_dict

__all__ = [
    "EvolutionError",
    "FormatMismatchError",
    "GenerationFailure",
    "NameKeyedMap",
    "normalize_key",
    "SimilarityMatcher",
    "SubstringMatcher",
    "TokenOverlapMatcher",
    "EditDistanceMatcher",
    "create_matcher",
    "Classifiers",
    "KeywordClassifier",
    "KeywordTagger",
    "IdSequence",
    "extract_json",
    "normalize_dict",
    "is_retryable_error",
    "backoff_delay",
]
