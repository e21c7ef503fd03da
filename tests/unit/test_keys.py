from __future__ import annotations

from datetime import datetime

import pytest

from redmodel.utils.keys import build_key, view_key


def test_build_key_record_and_namespace_forms() -> None:
    assert build_key("food", id="abc", root="app") == "app:food:abc"
    assert build_key("food", root="app") == "app:food"
    assert build_key("food", id=42) == "redmodel:food:42"


def test_build_key_index_takes_precedence_over_id() -> None:
    key = build_key("food", index=("group", "fruit"), id="ignored", root="app")
    assert key == "app:food:group:fruit"


def test_build_key_index_values_use_stored_text() -> None:
    assert build_key("food", index=("calories", 90), root="app") == "app:food:calories:90"
    assert build_key("food", index=("ripe", True), root="app") == "app:food:ripe:true"
    stamp = datetime(2024, 1, 2, 3, 4, 5)
    assert build_key("food", index=("at", stamp), root="app") == "app:food:at:2024-01-02T03:04:05"


def test_build_key_requires_more_than_root() -> None:
    with pytest.raises(ValueError):
        build_key(root="app")
    with pytest.raises(ValueError):
        build_key(id="", root="app")


def test_view_key_lives_under_views_namespace() -> None:
    assert view_key("fruitByCalories", root="app") == "app:views:fruitByCalories"


def test_build_key_leaves_out_empty_index_values() -> None:
    assert build_key("food", index=("group", ""), root="app") == "app:food"
    assert build_key("food", index=("group", None), root="app") == "app:food"
    assert not build_key("food", index=("group", ""), root="app").endswith(":")
