"""Tests for deed classification and state models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from church.hashing import GENESIS_HASH
from church.ledger import new_deed
from church.models import DeedCategory, HarmFlag


def _deed(**kwargs):
    kwargs.setdefault("deed_type", "misc")
    return new_deed(prev_hash=GENESIS_HASH, actor_id="u1", timestamp=0, **kwargs)


def test_category_from_deed_type():
    assert _deed(deed_type="ecological_sustainability").category is DeedCategory.ECOLOGICAL_SUSTAINABILITY


def test_category_falls_back_to_tags():
    event = _deed(deed_type="volunteering", tags=["civic-duty", "homelessness_relief"])
    assert event.category is DeedCategory.HOMELESSNESS_RELIEF


def test_deed_type_wins_over_tags():
    event = _deed(deed_type="math_science_education", tags=["forgiveness"])
    assert event.category is DeedCategory.MATH_SCIENCE_EDUCATION


def test_category_parsing_normalizes_case():
    assert _deed(deed_type=" Forgiveness ").category is DeedCategory.FORGIVENESS


def test_unknown_labels_are_unrecognized():
    event = _deed(deed_type="tree_planting", tags=["civic-duty"])
    assert event.category is DeedCategory.UNRECOGNIZED


def test_unrecognized_label_is_not_a_category_match():
    # "unrecognized" itself must not be treated as a recognized label.
    assert _deed(deed_type="unrecognized", tags=["forgiveness"]).category is DeedCategory.FORGIVENESS


def test_harm_flags_ignore_unknown_labels():
    event = _deed(ethics_flags=["needs_review", "predatory", "pollution"])
    assert event.harm_flags == [HarmFlag.PREDATORY, HarmFlag.POLLUTION]
    assert event.is_harmful


def test_non_harm_flags_are_not_harmful():
    assert not _deed(ethics_flags=["needs_review"]).is_harmful


def test_life_harm_flag_is_harmful():
    assert _deed(life_harm_flag=True).is_harmful


def test_involves_actor_and_targets():
    event = _deed(target_ids=["shelter"])
    assert event.involves("u1")
    assert event.involves("shelter")
    assert not event.involves("u2")


def test_event_is_frozen():
    event = _deed()
    with pytest.raises(ValidationError):
        event.actor_id = "mallory"


def test_negative_timestamp_rejected():
    with pytest.raises(ValidationError):
        new_deed(prev_hash=GENESIS_HASH, actor_id="u1", deed_type="x", timestamp=-1)


@pytest.mark.parametrize("value", [datetime(2020, 1, 1), object(), {"inner": object()}])
def test_context_json_must_be_json(value):
    with pytest.raises(ValidationError):
        _deed(context_json={"payload": value})


def test_context_json_accepts_nested_json():
    event = _deed(context_json={"a": [1, 2.5, None, True], "b": {"c": "d"}})
    assert event.context_json == {"a": [1, 2.5, None, True], "b": {"c": "d"}}
