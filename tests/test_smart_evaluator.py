import json
import logging
from collections.abc import Mapping

from eaglesift.smart.evaluator import SmartFilterEvaluator, evaluate, filter_items
from eaglesift.smart.model import Condition, FilterContext, Item, Rule, SmartFolder, coerce_number


def _folder(*conditions):
    return {"id": "SF1", "name": "Test", "conditions": list(conditions)}


def _cond(*rules, match="OR", boolean="TRUE"):
    return {"match": match, "boolean": boolean, "rules": list(rules)}


def _rule(prop, method, value=None, **extra):
    payload = {"property": prop, "method": method, "value": value}
    payload.update(extra)
    return payload


VACATION_VIDEOS = _folder(
    _cond(
        _rule("type", "equal", "video"),
        _rule("tags", "union", ["vacation"]),
        match="AND",
    )
)


def test_video_with_vacation_tag_matches():
    item = {"id": "1", "name": "beach", "ext": "mp4", "tags": ["vacation", "beach"]}
    assert evaluate(VACATION_VIDEOS, item)


def test_video_without_vacation_tag_does_not_match():
    item = {"id": "1", "name": "meeting", "ext": "mp4", "tags": ["work"]}
    assert not evaluate(VACATION_VIDEOS, item)


def test_negated_condition():
    folder = _folder(_cond(_rule("name", "contain", "draft"), boolean="FALSE"))
    assert not evaluate(folder, {"id": "1", "name": "My Draft v2"})
    assert evaluate(folder, {"id": "2", "name": "final"})


def test_red_palette_accuracy_scenarios():
    red = {"id": "1", "palettes": [{"color": [250, 5, 5], "ratio": 0.5}]}
    faint = {"id": "2", "palettes": [{"color": [250, 5, 5], "ratio": 0.2}]}
    folder = _folder(_cond(_rule("color", "accuracy", "#ff0000")))
    assert evaluate(folder, red)
    assert not evaluate(folder, faint)


def test_or_is_the_default_match_mode():
    folder = _folder(_cond(_rule("name", "contain", "cat"), _rule("name", "contain", "dog"), match="ANY"))
    assert evaluate(folder, {"id": "1", "name": "hotdog"})
    assert not evaluate(folder, {"id": "2", "name": "bird"})


def test_and_requires_every_rule():
    folder = _folder(_cond(_rule("name", "contain", "cat"), _rule("ext", "equal", "png"), match="AND"))
    # unknown property fails the AND
    assert not evaluate(folder, {"id": "1", "name": "cat", "ext": "png"})


def test_all_conditions_must_match():
    folder = _folder(
        _cond(_rule("name", "contain", "cat")),
        _cond(_rule("type", "equal", "video")),
    )
    assert evaluate(folder, {"id": "1", "name": "cat", "ext": "mov"})
    assert not evaluate(folder, {"id": "2", "name": "cat", "ext": "mp3"})


def test_condition_without_rules_matches():
    folder = _folder(_cond(), _cond(_rule("name", "equal", "x")))
    assert evaluate(folder, {"id": "1", "name": "x"})


def test_folder_without_conditions_matches_nothing():
    assert not evaluate(_folder(), {"id": "1", "name": "x"})
    assert not evaluate(None, {"id": "1", "name": "x"})


def test_unknown_property_is_false_and_negation_flips_it():
    assert not evaluate(_folder(_cond(_rule("mood", "equal", "happy"))), {"id": "1"})
    assert evaluate(_folder(_cond(_rule("mood", "equal", "happy"), boolean="FALSE")), {"id": "1"})


def test_unusable_item_is_false():
    folder = _folder(_cond(_rule("name", "empty")))
    assert not evaluate(folder, 42)


def test_dataclass_inputs_are_accepted():
    folder = SmartFolder(
        id="SF2",
        name="Cats",
        conditions=[Condition(rules=[Rule("name", "startWith", "cat")])],
    )
    item = Item(id="1", name="Catalogue")
    assert evaluate(folder, item, FilterContext())


def test_evaluation_is_deterministic():
    evaluator = SmartFilterEvaluator()
    folder = _folder(_cond(_rule("tags", "intersection", ["a", "b"])))
    item = {"id": "1", "tags": ["b", "a", "c"]}
    results = {evaluator.evaluate(folder, item) for _ in range(20)}
    assert results == {True}


def _numbered_items(count):
    return [{"id": str(i), "name": f"item {i}", "width": i} for i in range(count)]


def test_filter_items_preserves_order_across_workers():
    folder = _folder(_cond(_rule("width", ">=", 50)))
    items = _numbered_items(200)
    serial = filter_items(folder, items)
    threaded = filter_items(folder, items, max_workers=4)
    assert serial == threaded
    assert [entry["id"] for entry in threaded] == [str(i) for i in range(50, 200)]
    # originals are returned, not converted copies
    assert threaded[0] is items[50]


def test_filter_items_logs_summary(caplog):
    folder = _folder(_cond(_rule("name", "contain", "item 1")))
    with caplog.at_level(logging.INFO, logger="eaglesift.smart.evaluator"):
        matched = filter_items(folder, _numbered_items(12))
    assert len(matched) == 3
    assert any("SF1" in message and "3 of 12" in message for message in caplog.messages)


def test_filter_items_without_conditions_returns_nothing():
    assert filter_items(_folder(), _numbered_items(3)) == []


def test_filter_items_records_telemetry(tmp_path, monkeypatch):
    target = tmp_path / "telemetry" / "samples.jsonl"
    monkeypatch.setenv("EAGLESIFT_TELEMETRY", str(target))
    filter_items(_folder(_cond(_rule("width", ">", 0))), _numbered_items(4), max_workers=2)
    filter_items(_folder(), [])
    lines = target.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    sample = json.loads(lines[0])
    assert sample["folder_id"] == "SF1"
    assert (sample["items"], sample["matched"], sample["workers"]) == (4, 3, 2)
    assert sample["duration"] >= 0
    assert json.loads(lines[1])["items"] == 0


def test_shared_evaluator_reuses_colour_cache():
    evaluator = SmartFilterEvaluator(color_cache_size=4)
    folder = _folder(_cond(_rule("color", "similar", "#00ff00")))
    items = [{"id": str(i), "palettes": [{"color": [0, 255, 0], "ratio": 0.8}]} for i in range(10)]
    assert len(filter_items(folder, items, max_workers=3, evaluator=evaluator)) == 10
    assert len(evaluator.color_cache) == 1


class _ExplodingRecord(Mapping):
    def __getitem__(self, key):
        raise RuntimeError("record store went away")

    def __iter__(self):
        return iter(("id",))

    def __len__(self):
        return 1


def test_non_finite_numbers_are_ignored():
    assert coerce_number(float("inf")) is None
    assert coerce_number(float("-inf")) is None
    assert coerce_number("1e400") is None
    assert coerce_number(json.loads("1e400")) is None


def test_overflowing_json_star_does_not_raise():
    folder = _folder(_cond(_rule("name", "contain", "a")))
    item = json.loads('{"id": "1", "name": "a", "star": 1e400}')
    assert evaluate(folder, item)


def test_overflowing_palette_channel_is_dropped():
    item = json.loads('{"id": "1", "name": "a", "palettes": [{"color": [1e400, 0, 0], "ratio": 0.9}]}')
    assert not evaluate(_folder(_cond(_rule("color", "similar", "#ff0000"))), item)
    assert evaluate(_folder(_cond(_rule("name", "equal", "a"))), item)


def test_overflowing_rating_value_does_not_raise():
    folder = json.loads(
        '{"id": "SF1", "conditions": [{"rules": [{"property": "rating", "method": "equal", "value": 1e400}]}]}'
    )
    assert not evaluate(folder, {"id": "1", "star": 3})


def test_unloadable_records_do_not_abort_a_batch():
    folder = _folder(_cond(_rule("name", "contain", "keep")))
    items = [{"id": "1", "name": "keep me"}, _ExplodingRecord(), json.loads('{"id": "3", "name": "keep", "width": 1e400}')]
    assert not evaluate(folder, _ExplodingRecord())
    assert [entry["id"] for entry in filter_items(folder, items, max_workers=2)] == ["1", "3"]


def test_unloadable_folder_or_context_matches_nothing():
    item = {"id": "1", "name": "keep"}
    assert not evaluate(_ExplodingRecord(), item)
    assert filter_items(_folder(_cond(_rule("name", "contain", "keep"))), [item], _ExplodingRecord()) == []
