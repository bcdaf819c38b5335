from eaglesift.smart.evaluator import evaluate
from eaglesift.smart.matchers import match_set


def test_empty_and_not_empty_ignore_rule_values():
    assert match_set(None, ["a"], "empty")
    assert match_set([], [], "empty")
    assert match_set(["a"], [], "not-empty")
    assert not match_set(None, ["a"], "not-empty")


def test_intersection_requires_every_rule_value():
    assert match_set(["a", "b", "c"], ["a", "b"], "intersection")
    assert not match_set(["a"], ["a", "b"], "intersection")


def test_intersection_with_empty_rule_is_false():
    assert not match_set(["a"], [], "intersection")
    assert not match_set([], [], "intersection")
    assert not match_set([], [], "equal")


def test_equal_is_exact_set_match():
    assert match_set(["b", "a"], ["a", "b"], "equal")
    assert not match_set(["a", "b", "c"], ["a", "b"], "equal")
    # equal implies intersection
    assert match_set(["b", "a"], ["a", "b"], "intersection")


def test_union_and_identity_are_complements():
    for item_tags in (["a"], ["x"], [], None):
        overlap = match_set(item_tags, ["a", "b"], "union")
        assert match_set(item_tags, ["a", "b"], "identity") is (not overlap)


def test_contain_is_not_a_set_method():
    assert not match_set(["a", "b"], ["a"], "contain")


def test_tags_and_folders_rules():
    folder = {
        "id": "F",
        "conditions": [{"rules": [{"property": "tags", "method": "union", "value": ["vacation"]}]}],
    }
    assert evaluate(folder, {"tags": ["vacation", "2023"]})
    assert not evaluate(folder, {"tags": ["work"]})
    assert not evaluate(folder, {})

    by_folder = {
        "id": "G",
        "conditions": [{"rules": [{"property": "folders", "method": "identity", "value": ["trash"]}]}],
    }
    assert evaluate(by_folder, {"folders": ["inbox"]})
    assert evaluate(by_folder, {})
    assert not evaluate(by_folder, {"folders": ["trash", "inbox"]})


def test_scalar_tag_value_is_malformed():
    folder = {"id": "F", "conditions": [{"rules": [{"property": "tags", "method": "union", "value": "vacation"}]}]}
    assert not evaluate(folder, {"tags": ["vacation"]})
