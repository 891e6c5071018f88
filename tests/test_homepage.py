from godoxy.homepage import HomepageConfig, Item, predefined_category


def test_default_item_is_empty_even_when_shown():
    assert Item().is_empty()
    assert Item(show=True, source_type="docker", alt_url="http://x").is_empty()


def test_item_with_content_is_not_empty():
    assert not Item(name="app").is_empty()
    assert not Item(icon="app.png").is_empty()
    assert not Item(widget_config={"k": 1}).is_empty()


def test_add_groups_by_category_in_order():
    cfg = HomepageConfig()
    a = Item(name="a", category="Media")
    b = Item(name="b", category="Storage")
    c = Item(name="c", category="Media")
    for item in (a, b, c):
        cfg.add(item)
    assert list(cfg) == ["Media", "Storage"]
    assert cfg["Media"] == [a, c]
    assert cfg["Storage"] == [b]
    assert len(cfg) == 2


def test_clear_removes_everything():
    cfg = HomepageConfig()
    cfg.add(Item(name="a", category="X"))
    cfg.clear()
    assert len(cfg) == 0
    assert "X" not in cfg


def test_to_dict_uses_field_names():
    cfg = HomepageConfig()
    cfg.add(Item(name="a", category="X", url="http://a"))
    data = cfg.to_dict()
    assert data["X"][0]["name"] == "a"
    assert data["X"][0]["url"] == "http://a"
    assert set(data["X"][0]) == {
        "show", "name", "icon", "url", "category", "description",
        "widget_config", "source_type", "alt_url",
    }


def test_predefined_categories():
    assert predefined_category("sonarr") == "Torrenting"
    assert predefined_category("home-assistant") == "Home Automation"
    assert predefined_category("portainer-ce") == "Container Management"
    assert predefined_category("no-such-app") is None