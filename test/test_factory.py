"""
Factory, mutation and timestamp helper tests.
"""
import re
from datetime import timezone

import pytest

from dice_creator.engine.factory import (
    DEFAULT_FACE_COLORS,
    adjust_faces_for_side_change,
    copy_dice_set,
    copy_die,
    create_default_face,
    create_dice_set,
    create_die,
    create_empty_dice_set,
    create_empty_die,
)
from dice_creator.engine.mutations import (
    add_die_to_set,
    remove_die_from_set,
    reorder_dice,
    update_background_color,
    update_content_type,
    update_dice_set_dice,
    update_dice_set_name,
    update_face,
    update_name,
    update_sides,
    update_text_color,
)
from dice_creator.engine.utils import current_timestamp, generate_uuid, parse_timestamp
from dice_creator.engine.validation import is_die, is_valid_uuid

TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z")


def test_current_timestamp_format():
    ts = current_timestamp()
    assert TIMESTAMP_PATTERN.fullmatch(ts)
    assert parse_timestamp(ts).tzinfo == timezone.utc


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("13/45/2024")
    with pytest.raises(ValueError):
        parse_timestamp(12345)


def test_empty_d6_has_number_faces():
    die = create_empty_die(6, "number")
    assert [f.value for f in die.faces] == ["1", "2", "3", "4", "5", "6"]
    assert [f.id for f in die.faces] == [1, 2, 3, 4, 5, 6]
    assert die.name == ""
    assert die.background_color == "#FFFFFF"
    assert die.text_color == "#000000"
    assert is_valid_uuid(die.id)
    assert die.created_at == die.updated_at


def test_default_faces_per_content_type():
    assert create_default_face(3, "text").value == ""
    color_face = create_default_face(1, "color")
    assert color_face.color == DEFAULT_FACE_COLORS[0]
    # Palette cycles once it runs out
    assert create_default_face(13, "color").color == DEFAULT_FACE_COLORS[0]


def test_adjust_faces_keeps_existing_data():
    die = update_face(create_die("D", 4), 2, value="Two")
    grown = adjust_faces_for_side_change(die.faces, 6, "number")
    assert [f.value for f in grown] == ["1", "Two", "3", "4", "5", "6"]
    shrunk = adjust_faces_for_side_change(die.faces, 2, "number")
    assert [f.value for f in shrunk] == ["1", "Two"]


def test_copy_die_gets_new_identity(d6):
    clone = copy_die(d6)
    assert clone.id != d6.id
    assert clone.name == d6.name
    assert clone.faces == d6.faces
    clone.faces[0].value = "changed"
    assert d6.faces[0].value == "1"


def test_create_dice_set_bounds():
    ids = [generate_uuid() for _ in range(7)]
    assert create_dice_set("", ids[:1]).name == "Untitled Set"
    assert create_dice_set("Max", ids[:6]).dice_ids == ids[:6]
    with pytest.raises(ValueError):
        create_dice_set("Too many", ids)
    with pytest.raises(ValueError):
        create_dice_set("Empty", [])


def test_empty_and_copied_sets():
    empty = create_empty_dice_set()
    assert empty.name == "New Dice Set"
    assert empty.dice_ids == []
    source_set = create_dice_set("Combat", [generate_uuid()])
    clone = copy_dice_set(source_set)
    assert clone.name == "Combat (Copy)"
    assert clone.dice_ids == source_set.dice_ids
    assert clone.id != source_set.id


# ===== Mutations =====

def test_mutations_return_new_copy(d6):
    renamed = update_name(d6, "Renamed")
    assert renamed is not d6
    assert d6.name == "Six"
    assert renamed.name == "Renamed"
    assert renamed.id == d6.id


def test_color_updates(d6):
    changed = update_text_color(update_background_color(d6, "#101010"), "#FAFAFA")
    assert (changed.background_color, changed.text_color) == ("#101010", "#FAFAFA")
    assert (d6.background_color, d6.text_color) == ("#FFFFFF", "#000000")
    assert changed.updated_at >= d6.updated_at


def test_update_sides_clamps_and_adjusts(d6):
    assert update_sides(d6, 1).sides == 2
    big = update_sides(d6, 500)
    assert big.sides == 101
    assert len(big.faces) == 101
    assert is_die(big)


def test_update_content_type_regenerates_faces(d6):
    colored = update_content_type(d6, "color")
    assert all(f.content_type == "color" and f.color for f in colored.faces)
    assert is_die(colored)


def test_update_face(d6):
    changed = update_face(d6, 6, value="Six!")
    assert changed.faces[5].value == "Six!"
    assert d6.faces[5].value == "6"
    with pytest.raises(ValueError):
        update_face(d6, 1, id=9)


def test_set_membership_edits():
    ids = [generate_uuid() for _ in range(6)]
    dice_set = create_dice_set("Set", ids[:5])
    full = add_die_to_set(dice_set, ids[5])
    assert full.dice_ids == ids
    assert add_die_to_set(dice_set, ids[0]) is dice_set
    with pytest.raises(ValueError):
        add_die_to_set(full, generate_uuid())
    assert remove_die_from_set(full, ids[2]).dice_ids == ids[:2] + ids[3:]


def test_reorder_dice():
    a, b, c = (generate_uuid() for _ in range(3))
    dice_set = create_dice_set("Order", [a, b, c])
    assert reorder_dice(dice_set, 0, 2).dice_ids == [b, c, a]
    assert reorder_dice(dice_set, 2, 0).dice_ids == [c, a, b]
    with pytest.raises(ValueError):
        reorder_dice(dice_set, 0, 3)


def test_set_name_and_dice_updates():
    dice_set = create_dice_set("Set", [generate_uuid()])
    assert update_dice_set_name(dice_set, "").name == "Set"
    assert update_dice_set_name(dice_set, "New").name == "New"
    with pytest.raises(ValueError):
        update_dice_set_dice(dice_set, [])
