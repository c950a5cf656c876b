"""English noun inflection and GroupVersionResource derivation."""

from __future__ import annotations

import re

from .kube import GroupVersionResource

_UNCOUNTABLE = frozenset(
    {
        "data",
        "deer",
        "equipment",
        "fish",
        "information",
        "jeans",
        "metadata",
        "money",
        "news",
        "police",
        "rice",
        "series",
        "sheep",
        "species",
    }
)

_IRREGULAR = {
    "cactus": "cacti",
    "child": "children",
    "criterion": "criteria",
    "foot": "feet",
    "goose": "geese",
    "half": "halves",
    "index": "indices",
    "knife": "knives",
    "leaf": "leaves",
    "life": "lives",
    "man": "men",
    "matrix": "matrices",
    "mouse": "mice",
    "movie": "movies",
    "ox": "oxen",
    "person": "people",
    "quiz": "quizzes",
    "shelf": "shelves",
    "tooth": "teeth",
    "vertex": "vertices",
    "wife": "wives",
    "wolf": "wolves",
    "woman": "women",
}
_IRREGULAR_PLURALS = {plural: singular for singular, plural in _IRREGULAR.items()}

# Stems whose singular ends in "us" (status -> statuses -> status).
_US_STEMS = ("stat", "b", "vir", "camp", "bon", "cens", "consens", "radi", "foc", "corp")

_LAST_WORD = re.compile(r"[A-Za-z]+$")


def _is_vowel(char: str) -> bool:
    return char in "aeiou"


def _plural_lower(word: str) -> str:
    if word in _UNCOUNTABLE or word in _IRREGULAR_PLURALS:
        return word
    if word in _IRREGULAR:
        return _IRREGULAR[word]
    if word.endswith("is"):
        return word[:-2] + "es"
    if word.endswith(("ss", "us", "x", "z", "ch", "sh")):
        return word + "es"
    if word.endswith("s"):
        return word
    if word.endswith("y") and len(word) > 1 and not _is_vowel(word[-2]):
        return word[:-1] + "ies"
    return word + "s"


def _singular_lower(word: str) -> str:
    if word in _UNCOUNTABLE or word in _IRREGULAR:
        return word
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith("yses"):
        return word[:-4] + "ysis"
    if word.endswith("sses"):
        return word[:-2]
    if word.endswith("uses"):
        stem = word[:-4]
        return word[:-2] if stem.endswith(_US_STEMS) else word[:-1]
    if word.endswith(("xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("s"):
        return word[:-1]
    return word


def _inflect(word: str, rule) -> str:
    match = _LAST_WORD.search(word)
    if match is None:
        return word
    prefix, tail = word[: match.start()], match.group()
    lowered = tail.lower()
    result = rule(lowered)
    if tail.isupper() and len(tail) > 1:
        return prefix + result.upper()
    common = 0
    for a, b in zip(lowered, result):
        if a != b:
            break
        common += 1
    return prefix + tail[:common] + result[common:]


def pluralize(word):
    """Return the English plural of ``word``, keeping the case of its unchanged part."""
    return _inflect(word, _plural_lower)


def singularize(word):
    """Return the English singular of ``word``, keeping the case of its unchanged part."""
    return _inflect(word, _singular_lower)


def to_group_version_resource(gvk):
    """Derive the resource of a kind: its lower-cased plural."""
    return GroupVersionResource(gvk.group, gvk.version, pluralize(gvk.kind.lower()))