import pytest

from eaglesift.smart.evaluator import evaluate
from eaglesift.smart.matchers import match_font_activated

INSTALLED = {"Inter-Regular_.ttf": True, "Lato-Bold_.otf": False}


def _font_folder(method):
    return {
        "id": "SF1",
        "conditions": [{"rules": [{"property": "fontActivated", "method": method}]}],
    }


def _font_item(postscript_names, ext="ttf"):
    return {"id": "1", "ext": ext, "fontMetas": {"postScriptName": postscript_names}}


def test_installed_font_is_activated():
    names = {"en": "Inter-Regular"}
    assert match_font_activated(names, "ttf", INSTALLED, "activate")
    assert not match_font_activated(names, "ttf", INSTALLED, "deactivate")


def test_key_includes_extension():
    names = {"en": "Inter-Regular"}
    assert not match_font_activated(names, "otf", INSTALLED, "activate")
    assert match_font_activated(names, "otf", INSTALLED, "deactivate")


def test_false_entry_counts_as_not_installed():
    names = {"en": "Lato-Bold"}
    assert not match_font_activated(names, "otf", INSTALLED, "activate")
    assert match_font_activated(names, "otf", INSTALLED, "deactivate")


def test_first_postscript_name_is_used():
    names = {"en": "Inter-Regular", "ja": "Something-Else"}
    assert match_font_activated(names, "ttf", INSTALLED, "activate")


@pytest.mark.parametrize("method", ["activate", "deactivate"])
@pytest.mark.parametrize("names", [None, {}, {"en": ""}])
def test_missing_postscript_name_never_matches(names, method):
    assert not match_font_activated(names, "ttf", INSTALLED, method)


def test_unknown_method_is_false():
    assert not match_font_activated({"en": "Inter-Regular"}, "ttf", INSTALLED, "installed")


def test_font_rule_through_evaluator():
    context = {"installedFonts": INSTALLED}
    installed = _font_item({"en": "Inter-Regular"})
    missing = _font_item({"en": "Roboto-Thin"})
    assert evaluate(_font_folder("activate"), installed, context)
    assert not evaluate(_font_folder("activate"), missing, context)
    assert evaluate(_font_folder("deactivate"), missing, context)


@pytest.mark.parametrize("method", ["activate", "deactivate"])
def test_items_without_font_metadata_never_match(method):
    context = {"installedFonts": INSTALLED}
    assert not evaluate(_font_folder(method), {"id": "1", "ext": "ttf"}, context)
    assert not evaluate(_font_folder(method), {"id": "1", "ext": "ttf", "fontMetas": {}}, context)
    assert not evaluate(_font_folder(method), _font_item("Inter-Regular"), context)
