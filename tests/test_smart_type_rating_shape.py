import pytest

from eaglesift.smart.evaluator import evaluate
from eaglesift.smart.matchers import classify_shape, match_rating, match_shape, match_type
from eaglesift.smart.model import Rule


def folder_with(rule):
    return {"id": "F1", "conditions": [{"rules": [rule]}]}


@pytest.mark.parametrize(
    "ext,value,expected",
    [
        ("mp4", "video", True),
        ("MKV", "videos", True),
        ("mp3", "video", False),
        ("flac", "audio", True),
        ("otf", "font", True),
        ("key", "presentation", True),
        ("potx", "powerpoint", True),
        ("xlsx", "excel", True),
        ("docx", "word", True),
        ("png", "png", True),
        ("png", "jpg", False),
        ("png", "illustration", False),
    ],
)
def test_type_categories(ext, value, expected):
    assert match_type(ext, value, "equal") is expected
    assert match_type(ext, value, "unequal") is (not expected)


def test_url_categories_check_medium():
    assert match_type("url", "url", "equal")
    assert not match_type("url", "url", "equal", medium="youtube")
    assert match_type("url", "youtube", "equal", medium="youtube")
    assert not match_type("url", "vimeo", "equal", medium="youtube")
    assert match_type("url", "bilibili", "equal", medium="bilibili")
    assert not match_type("mp4", "youtube", "equal", medium="youtube")


def test_type_rule_fails_closed():
    assert not match_type(None, "video", "unequal")
    assert not match_type("mp4", "video", "contain")


def test_rating_contain_with_unrated_sentinel():
    rule = Rule(property="rating", method="contain", value=["none", "3"])
    assert match_rating(None, rule.operand, "contain")
    assert match_rating(0, rule.operand, "contain")
    assert match_rating(3, rule.operand, "contain")
    assert not match_rating(4, rule.operand, "contain")


def test_rating_contain_accepts_comma_string():
    rule = Rule(property="rating", method="contain", value="4, 5")
    assert match_rating(5, rule.operand, "contain")
    assert not match_rating(None, rule.operand, "contain")


def test_rating_equal_and_unequal():
    five = Rule(property="rating", method="equal", value="5")
    assert match_rating(5, five.operand, "equal")
    assert not match_rating(4, five.operand, "equal")
    assert match_rating(4, five.operand, "unequal")
    assert match_rating(None, five.operand, "unequal")

    unrated = Rule(property="rating", method="equal", value="none")
    assert match_rating(None, unrated.operand, "equal")
    assert not match_rating(2, unrated.operand, "equal")
    assert match_rating(2, unrated.operand, "unequal")


def test_rating_rule_through_evaluator():
    rule = {"property": "rating", "method": "contain", "value": ["none", "3"]}
    assert evaluate(folder_with(rule), {"name": "unrated"})
    assert evaluate(folder_with(rule), {"star": 3})
    assert not evaluate(folder_with(rule), {"star": 4})


@pytest.mark.parametrize(
    "width,height,shape",
    [
        (1600, 900, "landscape"),
        (2500, 1000, "panoramic-landscape"),
        (900, 1600, "portrait"),
        (1000, 2500, "panoramic-portrait"),
        (512, 512, "square"),
    ],
)
def test_classify_shape(width, height, shape):
    assert classify_shape(width, height) == shape


def test_shape_equal_and_unequal():
    assert match_shape(1600, 900, "landscape", "equal")
    assert match_shape(1600, 900, "portrait", "unequal")
    assert not match_shape(1600, 900, "landscape", "unequal")
    assert not match_shape(None, 900, "landscape", "unequal")
    assert not match_shape(0, 0, "square", "equal")


def test_custom_shape_compares_exact_ratio():
    rule = {"property": "shape", "method": "equal", "value": "custom", "width": 16, "height": 9}
    assert evaluate(folder_with(rule), {"width": 1920, "height": 1080})
    assert not evaluate(folder_with(rule), {"width": 1920, "height": 1200})
    no_target = {"property": "shape", "method": "equal", "value": "custom"}
    assert not evaluate(folder_with(no_target), {"width": 1920, "height": 1080})
