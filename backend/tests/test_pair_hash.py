"""
Tests for pair hashing.
"""

from __future__ import annotations

from backend.utils.pair_hash import hash_pair


def test_same_pair_same_hash():
    assert hash_pair("import SwiftUI", "<div/>") == hash_pair("import SwiftUI", "<div/>")


def test_hash_is_short_hex():
    digest = hash_pair("import SwiftUI", "<div/>")

    assert len(digest) == 16
    int(digest, 16)


def test_field_boundary_matters():
    """Moving text between source and markup changes the hash."""
    assert hash_pair("ab", "c") != hash_pair("a", "bc")


def test_either_side_changes_hash():
    base = hash_pair("import SwiftUI", "<div/>")

    assert hash_pair("import SwiftUI ", "<div/>") != base
    assert hash_pair("import SwiftUI", "<div></div>") != base
