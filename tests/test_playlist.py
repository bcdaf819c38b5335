from eaglesift.playlist import filter_playable, folder_key, natural_key, order_by_folder_groups
from eaglesift.smart.model import Item


def test_filter_playable_by_extension():
    items = [
        {"id": "1", "ext": "MP4"},
        {"id": "2", "ext": "psd"},
        {"id": "3"},
        Item(id="4", ext="flac"),
    ]
    kept = filter_playable(items)
    assert [entry["id"] if isinstance(entry, dict) else entry.id for entry in kept] == ["1", "4"]


def test_filter_playable_custom_extensions():
    items = [{"id": "1", "ext": "mp4"}, {"id": "2", "ext": "psd"}]
    assert filter_playable(items, [".PSD"]) == [items[1]]


def test_folder_key_ignores_order():
    assert folder_key({"folders": ["b", "a"]}) == "a,b"
    assert folder_key({"folders": None}) == ""
    assert folder_key(Item(id="1", folders=("x",))) == "x"


def test_natural_key_orders_numbers_by_value():
    names = ["clip 10", "Clip 2", "clip 1"]
    assert sorted(names, key=natural_key) == ["clip 1", "Clip 2", "clip 10"]
    assert natural_key(None) == ()


def test_order_by_folder_groups_sorts_within_runs():
    items = [
        {"name": "b 10", "folders": ["A"]},
        {"name": "b 2", "folders": ["A"]},
        {"name": "z", "folders": ["B"]},
        {"name": "a", "folders": ["B"]},
        {"name": "c", "folders": ["A"]},
    ]
    ordered = order_by_folder_groups(items)
    assert [entry["name"] for entry in ordered] == ["b 2", "b 10", "a", "z", "c"]


def test_order_by_folder_groups_empty():
    assert order_by_folder_groups([]) == []
