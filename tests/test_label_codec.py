import pytest

from services.label_codec import (
    FORMAT_CURRENT,
    FORMAT_LEGACY,
    TaskListRef,
    decode_label,
    encode_phase1,
    encode_phase2,
)

TASK_LISTS = [
    TaskListRef(store_id="S1", installation_id="proj-aaa-1", list_id="list-001"),
    TaskListRef(store_id="S2", installation_id="proj-bbb-2", list_id="list-002"),
]


def test_encode_phase1_format():
    assert encode_phase1(1700000000000, 3, "Summer promo") == "[external]1700000000000:3 - Summer promo"


def test_encode_phase2_uses_compact_json():
    label = encode_phase2("1700000000000", 2, "post1", TASK_LISTS[:1], "Marketing", "Summer promo")
    assert label == (
        '[external]1700000000000:2:post1:'
        r'[{"storeId":"S1","installationId":"proj\u002daaa\u002d1","listId":"list\u002d001"}]'
        ':Marketing - Summer promo'
    )


def test_encode_phase2_without_task_lists_or_post():
    label = encode_phase2("17", 1, None, [], "HR", "Holiday hours")
    assert label == "[external]17:1:unknown:unknown:HR - Holiday hours"


def test_phase1_round_trip():
    label = decode_label(encode_phase1("1700000000000", 12, "Store refit week"))
    assert label is not None
    assert label.external_id == "1700000000000"
    assert label.user_count == 12
    assert label.title == "Store refit week"
    assert label.post_id is None
    assert label.task_lists == []
    assert label.task_list_id is None
    assert label.department == "Unknown"


def test_phase2_round_trip_with_task_lists():
    text = encode_phase2("1700000000000", 5, "post-77", TASK_LISTS, "Operations", "Inventory count")
    label = decode_label(text)
    assert label.label_format == FORMAT_CURRENT
    assert label.external_id == "1700000000000"
    assert label.user_count == 5
    assert label.post_id == "post-77"
    assert label.task_lists == TASK_LISTS
    assert label.task_list_id == "list-001"
    assert label.department == "Operations"
    assert label.title == "Inventory count"


def test_hyphen_separator_inside_task_list_ids_is_escaped():
    refs = [TaskListRef(store_id="12 - North", installation_id="proj1", list_id="list - 1")]
    text = encode_phase2("1700000000000", 1, "post1", refs, "Operations", "Refit")

    assert text.count(" - ") == 1

    label = decode_label(text)
    assert label.label_format == FORMAT_CURRENT
    assert label.task_lists == refs
    assert label.department == "Operations"
    assert label.title == "Refit"


def test_phase2_round_trip_without_task_lists():
    label = decode_label(encode_phase2("99", 1, "p9", [], "Finance", "Quarter close"))
    assert label.post_id == "p9"
    assert label.task_lists == []
    assert label.task_list_id is None
    assert label.department == "Finance"
    assert label.title == "Quarter close"


def test_scalar_task_list_payload_is_kept_as_legacy_id():
    label = decode_label("[external]1700000000000:3:post9:list42:HR - Old title")
    assert label.task_lists == []
    assert label.task_list_id == "list42"
    assert label.post_id == "post9"
    assert label.department == "HR"
    assert label.title == "Old title"


def test_numeric_payload_is_not_treated_as_task_lists():
    label = decode_label("[external]1:3:post9:42:HR - Old title")
    assert label.task_lists == []
    assert label.task_list_id == "42"


def test_legacy_label_with_missing_department():
    label = decode_label("[external]1600000000000:4:post5:list7 - Older title")
    assert label.label_format == FORMAT_LEGACY
    assert label.external_id == "1600000000000"
    assert label.user_count == 4
    assert label.post_id == "post5"
    assert label.task_list_id == "list7"
    assert label.task_lists == []
    assert label.department == "Unknown"
    assert label.title == "Older title"


def test_legacy_label_with_only_post_id():
    label = decode_label("[external]1600000000000:4:post5 - Title")
    assert label.label_format == FORMAT_LEGACY
    assert label.post_id == "post5"
    assert label.task_list_id is None
    assert label.title == "Title"


def test_malformed_json_entries_are_dropped():
    label = decode_label('[external]1:2:p:[{"listId":"a","storeId":"S","installationId":"i"},"junk",{}]:IT - T')
    assert [ref.list_id for ref in label.task_lists] == ["a"]


@pytest.mark.parametrize("text", [
    "",
    "Store 12",
    "News for everyone",
    "[external]",
    "[external]abc - no user count",
    "[external]abc:xyz - count is not a number",
    "prefix [external]1:2 - not at start",
])
def test_unmanaged_labels_decode_to_none(text):
    assert decode_label(text) is None


@pytest.mark.parametrize("text", [
    None,
    42,
    "[external]:::: - ",
    "[external]1:2:3:[[[[:x - y",
    "[external]1:2:p:" + "[" * 5000 + ":Ops - deep",
    "[external]1:2:p:{\"a\":1}:Ops - obj",
    "[external]1:2 - line\nbreak",
    "[external]\x00:\x00 - \x00",
    "[external]1:" + "9" * 5000 + " - huge count",
    "[external]1:" + "9" * 5000 + ":p:unknown:Ops - huge count",
])
def test_decode_never_raises(text):
    decode_label(text)
