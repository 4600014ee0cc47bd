# =============================================================
#  tests/test_profiles.py
# =============================================================
import pytest

from portable_settings.profiles import ControlRegistry

# ==================== Test setup ====================

PANELS = {
    "main": {
        "title": "Test Settings",
        "controls": [
            {"type": "header", "name": "exampleHeader"},
            {"type": "checkbox", "name": "exampleCheckbox", "default": True, "persistent": True},
            {
                "type": "slider",
                "name": "scale",
                "default": 1.0,
                "min": 0.5,
                "max": 2.0,
                "step": 0.25,
                "persistent": True,
            },
            {
                "type": "dropdown",
                "name": "anchor",
                "default": "TOP",
                "options": ["TOP", "BOTTOM", "LEFT", "RIGHT"],
                "persistent": True,
            },
            {"type": "checkbox", "name": "preview", "default": False},
        ],
    },
    "example": {
        "title": "Example",
        "controls": [
            {"type": "checkbox", "name": "exampleCheckbox2", "default": True, "persistent": True},
            {"type": "inputBox", "name": "note", "default": "", "persistent": True, "scope": "per_entity"},
            {"type": "inputBox", "name": "tags", "default": {"a": 1}, "persistent": True},
        ],
    },
}


def make_registry(global_store=None, entity_store=None, panels=PANELS):
    reg = ControlRegistry(
        global_store if global_store is not None else {},
        entity_store if entity_store is not None else {},
    )
    reg.configure(panels)
    return reg


# ==================== Construction ====================


def test_stores_must_be_distinct_dicts():
    store = {}
    with pytest.raises(ValueError):
        ControlRegistry(store, store)
    with pytest.raises(TypeError):
        ControlRegistry([], {})


def test_main_panel_always_has_builtin_controls():
    reg = make_registry(panels={})
    keys = [c.control_key for c in reg.panels["main"].controls]
    assert keys[-1] == "tagline"
    for key in ("logVersion", "enableDebugging", "useAlternateScope", "loadSettings", "shareSettings"):
        assert key in keys


def test_duplicate_control_keys_rejected():
    twice = {"type": "checkbox", "name": "x", "persistent": True}
    dup = {"main": {"controls": [twice, dict(twice)]}}
    with pytest.raises(ValueError):
        make_registry(panels=dup)
    clash = {"main": {"controls": [{"type": "checkbox", "name": "enableDebugging", "persistent": True}]}}
    with pytest.raises(ValueError):
        make_registry(panels=clash)


# ==================== Resolve / set ====================


def test_resolve_default_seeds_active_store():
    g, e = {}, {}
    reg = make_registry(g, e)
    assert reg.resolve("main", "exampleCheckbox") is True
    assert g["main"]["exampleCheckbox"] is True
    assert "main" not in e


def test_resolve_seeds_a_copy_of_the_default():
    g = {}
    reg = make_registry(g)
    tags = reg.resolve("example", "tags")
    tags["b"] = 2
    assert reg.descriptor("example", "tags").default == {"a": 1}


def test_resolve_existing_value():
    reg = make_registry({"main": {"exampleCheckbox": False}})
    assert reg.resolve("main", "exampleCheckbox") is False


def test_resolve_unknown_key_does_not_seed():
    g = {"main": {"legacy": 5}}
    reg = make_registry(g)
    assert reg.resolve("main", "legacy") == 5
    assert reg.resolve("main", "nope") is None
    assert reg.resolve("nowhere", "nope") is None
    assert g == {"main": {"legacy": 5}}


def test_set_writes_active_store_and_notifies():
    seen = []
    panels = {
        "main": {
            "controls": [
                {"type": "checkbox", "name": "flag", "default": False, "persistent": True, "onValueChange": seen.append},
            ]
        }
    }
    g = {}
    reg = make_registry(g, panels=panels)
    assert reg.set("main", "flag", True) is True
    assert g["main"]["flag"] is True
    assert seen == [True]


def test_session_controls_stay_in_memory():
    g, e = {}, {}
    reg = make_registry(g, e)
    assert reg.resolve("main", "preview") is False
    reg.set("main", "preview", True)
    assert reg.resolve("main", "preview") is True
    assert "preview" not in g.get("main", {})
    assert "preview" not in e.get("main", {})
    # reconfiguring forgets session values
    reg.configure(PANELS)
    assert reg.resolve("main", "preview") is False


def test_set_undescribed_key_goes_to_active_store():
    g = {}
    reg = make_registry(g)
    reg.set("extra", "counter", 3)
    assert g["extra"]["counter"] == 3


def test_set_rejects_non_serializable_values():
    reg = make_registry()
    with pytest.raises(TypeError):
        reg.set("example", "note", object())
    with pytest.raises(TypeError):
        reg.set("extra", "blob", {True: "x"})


def test_set_on_valueless_control():
    g = {}
    reg = make_registry(g)
    for key in ("exampleHeader", "loggingHeader", "shareSettings", "tagline"):
        with pytest.raises(ValueError):
            reg.set("main", key, 1)
        assert reg.resolve("main", key) is None
    assert g == {}


def test_control_type_is_required():
    with pytest.raises(ValueError):
        make_registry(panels={"main": {"controls": [{"name": "untyped", "persistent": True}]}})


def test_set_coerces_by_control_kind():
    reg = make_registry()
    assert reg.set("main", "exampleCheckbox", "no") is False
    assert reg.set("main", "scale", 5) == 2.0
    assert reg.set("main", "scale", "1.1") == 1.0
    assert reg.set("main", "anchor", "TPO") == "TOP"
    with pytest.raises(ValueError):
        reg.set("main", "anchor", "zzzzzz")


# ==================== Profiles ====================


def test_initial_profile_follows_persisted_flag():
    assert make_registry().active_profile == "global"
    reg = make_registry({}, {"useAlternateScope": True})
    assert reg.active_profile == "entity"
    assert reg.active_store is reg.entity_store


def test_profile_isolation():
    g, e = {}, {}
    reg = make_registry(g, e)
    reg.set("main", "exampleCheckbox", False)

    reg.switch_profile(True)
    assert reg.resolve("main", "exampleCheckbox") is True
    assert e["main"]["exampleCheckbox"] is True
    assert g["main"]["exampleCheckbox"] is False

    reg.switch_profile(False)
    assert reg.resolve("main", "exampleCheckbox") is False


def test_switch_reads_entity_value():
    reg = make_registry({"main": {"enableDebugging": False}}, {"main": {"enableDebugging": True}})
    assert reg.resolve("main", "enableDebugging") is False
    reg.switch_profile(True)
    assert reg.resolve("main", "enableDebugging") is True


def test_flag_lives_in_entity_store():
    g, e = {}, {}
    reg = make_registry(g, e)
    assert reg.resolve("main", "useAlternateScope") is False
    reg.set("main", "useAlternateScope", True)
    assert e["useAlternateScope"] is True
    assert "useAlternateScope" not in g
    assert reg.active_profile == "entity"
    assert reg.resolve("main", "useAlternateScope") is True

    reg.switch_profile(False)
    assert e["useAlternateScope"] is False
    assert reg.resolve("main", "useAlternateScope") is False


def test_per_entity_control_ignores_active_store():
    g, e = {}, {}
    reg = make_registry(g, e)
    reg.set("example", "note", "hello")
    assert e["example"]["note"] == "hello"
    assert "note" not in g.get("example", {})


# ==================== Live panels ====================


def test_switch_refreshes_live_panels_in_order():
    calls = []
    reg = make_registry()
    reg.register_refresh("main", lambda: calls.append("main"))
    reg.register_refresh("example", lambda: calls.append("example"))
    reg.switch_profile(True)
    assert calls == ["main", "example"]

    reg.detach_panel("example")
    calls.clear()
    assert reg.refresh_all() == 1
    assert calls == ["main"]


def test_failing_refresher_does_not_stop_others(caplog):
    calls = []

    def broken():
        raise RuntimeError("boom")

    reg = make_registry()
    reg.register_refresh("main", broken)
    reg.register_refresh("example", lambda: calls.append("example"))
    assert reg.refresh_all() == 2
    assert calls == ["example"]
    assert "boom" in caplog.text


def test_render_complete_resolves_and_runs_on_load():
    loaded = []
    panels = {
        "opts": {
            "controls": [
                {"type": "header", "name": "h"},
                {"type": "checkbox", "name": "a", "default": True, "persistent": True, "onLoad": loaded.append},
                {"type": "slider", "name": "b", "default": 3, "min": 0, "max": 10, "persistent": True},
            ]
        }
    }
    reg = make_registry(panels=panels)
    assert reg.render_complete("opts") == {"a": True, "b": 3}
    assert loaded == [True]
    assert "opts" in reg.live_panels
    with pytest.raises(KeyError):
        reg.render_complete("missing")


# ==================== Snapshot / replace ====================


def test_snapshot_is_a_deep_copy_without_flag_or_session_entries():
    e = {"useAlternateScope": True, "main": {"exampleCheckbox": False, "preview": True, "legacy": 1}}
    reg = make_registry({}, e)
    snap = reg.snapshot()
    assert snap == {"main": {"exampleCheckbox": False, "legacy": 1}}
    snap["main"]["exampleCheckbox"] = True
    assert e["main"]["exampleCheckbox"] is False

    assert reg.snapshot(exclude_session=False)["main"]["preview"] is True


def test_replace_active_keeps_profile_flag():
    e = {"useAlternateScope": True, "main": {"exampleCheckbox": False}, "old": {"x": 1}}
    reg = make_registry({}, e)
    reg.replace_active({"main": {"exampleCheckbox": True}, "useAlternateScope": False})
    assert e == {"main": {"exampleCheckbox": True}, "useAlternateScope": True}
    assert reg.active_profile == "entity"


def test_replace_active_rejects_non_mapping():
    g = {"main": {"exampleCheckbox": False}}
    reg = make_registry(g)
    with pytest.raises(TypeError):
        reg.replace_active(["not", "a", "table"])
    assert g == {"main": {"exampleCheckbox": False}}
