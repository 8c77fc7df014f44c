from timewise.config import (
    DEFAULT_SETTINGS,
    Activity,
    Settings,
    load_settings_from_env,
    sanitize_settings,
    settings_for_activity,
    settings_from_mapping,
    settings_to_mapping,
)


def test_activity_parse():
    assert Activity.parse("SNOWSHOE") is Activity.SNOWSHOE
    assert Activity.parse(Activity.HIKE) is Activity.HIKE
    assert Activity.parse("ski") is Activity.HIKE
    assert Activity.parse(None) is Activity.HIKE


def test_sanitize_settings_clamps_and_defaults():
    s = sanitize_settings(
        Settings(
            spacing_m=0.5,
            smooth_win_m=10_000,
            elev_deadband_m=-1,
            speed_flat_kmh=0,
            speed_vert_mh=-5,
            downhill_factor=0.8,
        )
    )
    assert s.spacing_m == 1.0
    assert s.smooth_win_m == 500.0
    assert s.elev_deadband_m == DEFAULT_SETTINGS.elev_deadband_m
    assert s.speed_flat_kmh == DEFAULT_SETTINGS.speed_flat_kmh
    assert s.speed_vert_mh == DEFAULT_SETTINGS.speed_vert_mh
    assert s.downhill_factor == 0.8


def test_settings_for_activity_applies_preset():
    s = settings_for_activity("snowshoe")
    assert s.activity is Activity.SNOWSHOE
    assert s.spacing_m == 3.0
    assert s.elev_deadband_m == DEFAULT_SETTINGS.elev_deadband_m


def test_settings_mapping_round_trip():
    s = Settings(spacing_m=7, smooth_win_m=30, elev_deadband_m=1, speed_flat_kmh=5, activity=Activity.SNOWSHOE)
    data = settings_to_mapping(s)

    assert data["spacingM"] == 7
    assert data["activity"] == "snowshoe"
    assert settings_from_mapping(data) == sanitize_settings(s)


def test_settings_from_mapping_accepts_field_names_and_junk():
    s = settings_from_mapping({"spacing_m": "12", "speed_vert_mh": "fast", "activity": "unknown"})
    assert s.spacing_m == 12.0
    assert s.speed_vert_mh == DEFAULT_SETTINGS.speed_vert_mh
    assert s.activity is Activity.HIKE
    assert settings_from_mapping(None) == DEFAULT_SETTINGS


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("TIMEWISE_SPACING_M", "10")
    monkeypatch.setenv("TIMEWISE_ACTIVITY", "snowshoe")
    monkeypatch.delenv("TIMEWISE_SMOOTH_WIN_M", raising=False)

    s = load_settings_from_env()
    assert s.spacing_m == 10.0
    assert s.activity is Activity.SNOWSHOE
    assert s.smooth_win_m == DEFAULT_SETTINGS.smooth_win_m
