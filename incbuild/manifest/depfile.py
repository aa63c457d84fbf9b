"""Parsing of make-style dependency listings.

Compilers in dependency-discovery mode write rules of the form::

    out/libfoo.rlib: lib.rs conn.rs \\
        handlers.rs

    lib.rs:
    conn.rs:

Backslash-newline continues a rule, ``\\ `` escapes a space in a path, ``#``
starts a comment line, and rules with no prerequisites are phony entries
that only exist to keep make quiet about deleted headers.
"""

from __future__ import annotations

import re

from incbuild.graph.models import Edge

_TOKEN = re.compile(r"(?:\\.|[^\s\\])+")
_RULE_SEP = re.compile(r":(?=\s|$)")


class DepfileSyntaxError(ValueError):
    """Raised when a dependency listing cannot be parsed."""


def _split_tokens(text: str) -> list[str]:
    return [m.group(0).replace("\\ ", " ") for m in _TOKEN.finditer(text)]


def parse_depfile(text: str) -> list[tuple[list[str], list[str]]]:
    """Parse a dependency listing into rules.

    Args:
        text: Listing contents.

    Returns:
        List of (targets, prerequisites) pairs, in file order.

    Raises:
        DepfileSyntaxError: If a non-empty line is not a rule.
    """
    rules: list[tuple[list[str], list[str]]] = []
    joined = re.sub(r"\\\r?\n", " ", text)
    for lineno, line in enumerate(joined.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _RULE_SEP.search(stripped)
        if match is None:
            raise DepfileSyntaxError(f"line {lineno}: expected 'target: deps', got {stripped!r}")
        targets = _split_tokens(stripped[: match.start()])
        if not targets:
            raise DepfileSyntaxError(f"line {lineno}: rule has no target")
        rules.append((targets, _split_tokens(stripped[match.end() :])))
    return rules


def relabel_rules(rules: list[tuple[list[str], list[str]]], primary: str) -> list[Edge]:
    """Turn parsed rules into edges owned by ``primary``.

    Whatever the compiler called its outputs, every prerequisite it listed is
    a prerequisite of the primary artifact. Phony rules are dropped.

    Args:
        rules: Output of parse_depfile.
        primary: Name of the primary artifact.

    Returns:
        Deduplicated edges, in listing order.
    """
    edges: list[Edge] = []
    seen: set[str] = set()
    for _targets, prerequisites in rules:
        for source in prerequisites:
            if source not in seen:
                seen.add(source)
                edges.append(Edge(primary, source))
    return edges


__all__ = ["DepfileSyntaxError", "parse_depfile", "relabel_rules"]
