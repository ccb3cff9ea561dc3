"""Tests for the label registry and the reference resolution pass."""

from __future__ import annotations

import logging

import pytest
from bs4 import BeautifulSoup

from lutex.registry import (
    EntityKind,
    LabeledEntity,
    LabelRegistry,
    resolve_references,
    unresolved_labels,
)


@pytest.fixture
def registry() -> LabelRegistry:
    """Return a registry holding one equation and one theorem."""
    registry = LabelRegistry()
    registry.register(LabeledEntity(EntityKind.EQUATION, "eq:x", 1, "Eq. (1)", "eq-1"))
    registry.register(LabeledEntity(EntityKind.THEOREM, "thm:main", 2, "Theorem 2", "thm-2"))
    return registry


def test_resolve_known_label(registry: LabelRegistry) -> None:
    html = resolve_references(r"see \autoref{eq:x} and \appref{thm:main}", registry)
    soup = BeautifulSoup(html, "html.parser")
    links = soup.select("a.autoref")
    assert [a["href"] for a in links] == ["#eq-1", "#thm-2"]
    assert [a.get_text() for a in links] == ["Eq.\xa0(1)", "Theorem\xa02"]


def test_unresolved_label_renders_placeholder(registry: LabelRegistry) -> None:
    html = resolve_references(r"see \autoref{nope}", registry)
    soup = BeautifulSoup(html, "html.parser")
    assert soup.select("a.autoref") == []
    placeholder = soup.select_one("span.todo.unresolved-ref")
    assert placeholder is not None, "expected a visible unresolved-reference marker"
    assert placeholder.get_text() == r"\autoref{nope}"


def test_resolution_is_idempotent(registry: LabelRegistry) -> None:
    source = r"\autoref{eq:x} \autoref{nope} \lutexproofref{thm:main} \lutexproofref{gone}"
    once = resolve_references(source, registry)
    assert resolve_references(once, registry) == once
    assert len(registry) == 2, "resolution must not touch the registry"


def test_proof_reference_links_or_degrades(registry: LabelRegistry) -> None:
    html = resolve_references(r"\lutexproofref{thm:main}|\lutexproofref{a<b}", registry)
    linked, bare = html.split("|")
    assert linked == '<a href="#thm-2" class="autoref">Theorem&nbsp;2</a>'
    assert bare == "a&lt;b"


def test_unresolved_labels_are_unique_and_ordered(registry: LabelRegistry) -> None:
    html = r"\autoref{b} \autoref{eq:x} \autoref{a} \autoref{b}"
    assert unresolved_labels(html, registry) == ["b", "a"]


def test_duplicate_label_overwrites_and_logs(
    registry: LabelRegistry, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG, logger="lutex.registry"):
        registry.register(LabeledEntity(EntityKind.EQUATION, "eq:x", 7, "Eq. (7)", "eq-7"))
    entity = registry.lookup("eq:x")
    assert entity is not None
    assert entity.anchor_id == "eq-7"
    assert "eq:x" in registry
    assert "redefined" in caplog.text
    assert [e.label for e in registry] == ["eq:x", "thm:main"]


def test_escaped_labels_resolve_against_raw_registration() -> None:
    registry = LabelRegistry()
    registry.register(LabeledEntity(EntityKind.SECTION, "a&b", 1, "Sec. I", "sec-1"))
    html = resolve_references(r"\autoref{a&amp;b} \autoref{x&lt;y}", registry)
    soup = BeautifulSoup(html, "html.parser")
    assert soup.select_one("a.autoref")["href"] == "#sec-1"
    assert soup.select_one("span.todo.unresolved-ref").get_text() == r"\autoref{x<y}"
    assert unresolved_labels(r"\autoref{a&amp;b} \autoref{x&lt;y}", registry) == ["x<y"]
