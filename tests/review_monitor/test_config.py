from pathlib import Path

import pytest

from src.review_monitor.config import SNAPSHOTS_DIR_ENV_VAR, AppCatalog, MonitorConfig

CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "apps.yaml"


def test_config_loads_apps():
    config = MonitorConfig(CONFIG_PATH)

    urls = config.catalog.reviews_urls()
    assert len(urls) == 10
    assert urls[0] == "https://apps.shopify.com/event-tickets/reviews"
    assert "https://apps.shopify.com/zendrop/reviews" in urls


def test_app_metadata():
    config = MonitorConfig(CONFIG_PATH)

    boxup = config.catalog.lookup("boxup-product-builder")
    assert boxup.display_name == "Bundle Builder"
    assert boxup.tier == 2
    assert boxup.label == ":boxbuilder: Bundle Builder"


def test_unknown_app_falls_back_to_slug():
    catalog = AppCatalog({})
    unknown = catalog.lookup("mystery-app")
    assert unknown.label == "mystery-app"
    assert unknown.reviews_url == "https://apps.shopify.com/mystery-app/reviews"
    assert unknown.tier == 99


def test_tiers_keep_config_order():
    catalog = AppCatalog(
        {
            "b": {"tier": 2},
            "a": {"tier": 1},
            "c": {"tier": 2},
            "d": {"tier": 1, "enabled": False},
        }
    )
    assert [[app.slug for app in tier] for tier in catalog.tiers()] == [["a"], ["b", "c"]]
    assert len(catalog.apps(enabled_only=False)) == 4


def test_get_settings():
    config = MonitorConfig(CONFIG_PATH)

    assert config.max_pages == 20
    assert config.driver == "playwright"
    assert config.headless is True
    assert config.get_setting("missing", "fallback") == "fallback"


def test_missing_config_file_gives_defaults(tmp_path):
    config = MonitorConfig(tmp_path / "nope.yaml")
    assert len(config.catalog) == 0
    assert config.max_pages == 20
    assert config.snapshots_dir == Path("snapshots")


def test_snapshots_dir_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv(SNAPSHOTS_DIR_ENV_VAR, str(tmp_path))
    assert MonitorConfig(CONFIG_PATH).snapshots_dir == tmp_path


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        MonitorConfig(path)
