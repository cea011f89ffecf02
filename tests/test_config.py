# tests/test_config.py
"""Configuration tests.

Tests verify behavior (types, ranges, loading) not specific values.
"""

import tempfile
from pathlib import Path

import pytest

from nexuswiki.config import (
    CONFIG_SCHEMA,
    Config,
    ConfigError,
    _load_config,
    load_settings,
)


@pytest.fixture
def temp_root():
    """Create temporary content root directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "content"
        root.mkdir()
        yield root


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Clear the load_settings cache and wiki env vars around each test."""
    for name in ("WIKI_CONTENT_ROOT", "WIKI_HOME_PAGE", "WIKI_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


def write_config(root: Path, content: str) -> Path:
    """Write a config.ini file to the content root and return the path."""
    config_path = root / "config.ini"
    config_path.write_text(content)
    return config_path


# =============================================================================
# Type Validation Tests
# =============================================================================


def test_all_settings_have_correct_types():
    """Every setting matches its declared type from schema."""
    config = _load_config(None)  # Load with defaults only

    for section_name, keys in CONFIG_SCHEMA.items():
        section = getattr(config, section_name)
        for key, (expected_type, *_) in keys.items():
            value = getattr(section, key)
            assert isinstance(value, expected_type), (
                f"{section_name}.{key}: expected {expected_type.__name__}, "
                f"got {type(value).__name__}"
            )


def test_invalid_type_raises_clear_error(temp_root: Path):
    """Non-numeric value for int setting gives helpful message."""
    config_path = write_config(temp_root, "[cache]\nall_pages_ttl_minutes = forever")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "cache" in str(exc_info.value)
    assert "all_pages_ttl_minutes" in str(exc_info.value)
    assert "int" in str(exc_info.value)


def test_invalid_float_raises_clear_error(temp_root: Path):
    """Non-numeric value for float setting gives helpful message."""
    config_path = write_config(temp_root, "[storage]\nbusy_timeout_seconds = a while")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "busy_timeout_seconds" in str(exc_info.value)
    assert "float" in str(exc_info.value)


# =============================================================================
# Range Validation Tests
# =============================================================================


def test_numeric_settings_in_valid_ranges():
    """Default values are within their declared ranges."""
    config = _load_config(None)

    for section_name, keys in CONFIG_SCHEMA.items():
        section = getattr(config, section_name)
        for key, (typ, _, min_val, max_val, _) in keys.items():
            if typ not in (int, float):
                continue
            value = getattr(section, key)
            assert min_val is None or value >= min_val
            assert max_val is None or value <= max_val


def test_value_below_minimum_raises_error(temp_root: Path):
    """Value below declared minimum raises ConfigError."""
    config_path = write_config(temp_root, "[cache]\nall_pages_ttl_minutes = 0")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "all_pages_ttl_minutes" in str(exc_info.value)
    assert "minimum" in str(exc_info.value)


def test_value_above_maximum_raises_error(temp_root: Path):
    """Value above declared maximum raises ConfigError."""
    config_path = write_config(temp_root, "[storage]\nchunk_size_kb = 999999")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "chunk_size_kb" in str(exc_info.value)
    assert "maximum" in str(exc_info.value)


def test_empty_home_page_name_is_rejected(temp_root: Path):
    config_path = write_config(temp_root, "[wiki]\nhome_page_name =   ")

    with pytest.raises(ConfigError):
        _load_config(config_path)


# =============================================================================
# Loading Behavior Tests
# =============================================================================


def test_missing_config_uses_defaults():
    """No config.ini file? All defaults load successfully."""
    config = _load_config(None)

    assert config.wiki.home_page_name == "knowledge-nexus"
    assert config.cache.all_pages_ttl_minutes == 30
    assert config.storage is not None
    assert config.logging is not None


def test_partial_config_merges_with_defaults(temp_root: Path):
    """Config with only [cache] still has [storage] defaults."""
    config_path = write_config(temp_root, "[cache]\nall_pages_ttl_minutes = 5")

    config = _load_config(config_path)

    assert config.cache.all_pages_ttl_minutes == 5
    assert config.storage.chunk_size_kb > 0


def test_empty_config_file_uses_defaults(temp_root: Path):
    """Empty config.ini file loads all defaults."""
    config_path = write_config(temp_root, "")

    config = _load_config(config_path)

    assert config is not None


# =============================================================================
# Derived Property Tests
# =============================================================================


def test_computed_values_use_config(temp_root: Path):
    """Derived properties follow the section values."""
    config_path = write_config(
        temp_root,
        "[storage]\ndb_filename = pages.db\nchunk_size_kb = 64\n"
        "[cache]\nall_pages_ttl_minutes = 2\n",
    )
    config = _load_config(config_path)

    config_with_root = Config(
        content_root=temp_root,
        wiki=config.wiki,
        cache=config.cache,
        storage=config.storage,
        logging=config.logging,
    )

    assert config_with_root.db_path == temp_root / "pages.db"
    assert config_with_root.chunk_size == 64 * 1024
    assert config_with_root.all_pages_ttl_seconds == 120.0


def test_config_without_sections_gets_defaults(temp_root: Path):
    config = Config(content_root=temp_root)

    assert config.home_page_name == "knowledge-nexus"
    assert config.config_path == temp_root / "config.ini"


# =============================================================================
# Integration Tests (load_settings)
# =============================================================================


def test_load_settings_requires_content_root():
    with pytest.raises(ValueError):
        load_settings()


def test_load_settings_reads_config_file(monkeypatch, temp_root: Path):
    write_config(temp_root, "[wiki]\nhome_page_name = start-here")
    monkeypatch.setenv("WIKI_CONTENT_ROOT", str(temp_root))

    settings = load_settings()

    assert settings.content_root == temp_root
    assert settings.home_page_name == "start-here"


def test_environment_overrides_config_file(monkeypatch, temp_root: Path):
    write_config(temp_root, "[wiki]\nhome_page_name = start-here\n[logging]\nlevel = ERROR")
    monkeypatch.setenv("WIKI_CONTENT_ROOT", str(temp_root))
    monkeypatch.setenv("WIKI_HOME_PAGE", "front-door")
    monkeypatch.setenv("WIKI_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.home_page_name == "front-door"
    assert settings.logging.level == "DEBUG"


def test_load_settings_is_cached(monkeypatch, temp_root: Path):
    monkeypatch.setenv("WIKI_CONTENT_ROOT", str(temp_root))

    assert load_settings() is load_settings()
