import pytest

from coreprov.gvr import pluralize, singularize, to_group_version_resource
from coreprov.kube import GroupVersionKind, GroupVersionResource


def test_to_group_version_resource():
    gvk = GroupVersionKind("composition.krateo.io", "v1-2-0", "CardTemplate")
    assert to_group_version_resource(gvk) == GroupVersionResource(
        "composition.krateo.io", "v1-2-0", "cardtemplates"
    )


def test_pluralize_consonant_y():
    assert pluralize("policy") == "policies"


def test_pluralize_keeps_case_of_unchanged_part():
    assert pluralize("CardTemplate") == "CardTemplates"


def test_pluralize_irregular():
    assert pluralize("person") == "people"


@pytest.mark.parametrize(
    "word",
    [
        "template",
        "policy",
        "box",
        "class",
        "status",
        "analysis",
        "person",
        "child",
        "key",
        "secret",
        "configmap",
        "match",
        "test-resource",
    ],
)
def test_singularize_reverses_pluralize(word):
    assert singularize(pluralize(word)) == word


@pytest.mark.parametrize("word", ["example", "test-resource", "secret", "status"])
def test_singularize_leaves_singular_words(word):
    assert singularize(word) == word


@pytest.mark.parametrize("word", ["species", "information", "sheep"])
def test_uncountable_words_unchanged(word):
    assert pluralize(word) == word
    assert singularize(word) == word


def test_words_without_letters_unchanged():
    assert pluralize("123") == "123"
    assert singularize("") == ""