import pytest

from studio_crm.core import config


def test_get_bool_understands_common_flags() -> None:
    assert config._get_bool('true') is True
    assert config._get_bool(' Yes ') is True
    assert config._get_bool('0') is False
    assert config._get_bool(None, default=True) is True


def test_get_int_falls_back_on_blank_values() -> None:
    assert config._get_int(None, 7) == 7
    assert config._get_int('  ', 7) == 7
    assert config._get_int('9', 7) == 9


def test_production_requires_database_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'DATABASE_URL', '')

    with pytest.raises(RuntimeError, match='DATABASE_URL'):
        config.validate_runtime_config()


def test_agenda_hours_must_be_ordered(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'AGENDA_START_HOUR', 22)
    monkeypatch.setattr(config, 'AGENDA_END_HOUR', 7)

    with pytest.raises(RuntimeError, match='AGENDA_END_HOUR'):
        config.validate_runtime_config()


def test_development_defaults_are_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'AGENDA_START_HOUR', 7)
    monkeypatch.setattr(config, 'AGENDA_END_HOUR', 22)

    config.validate_runtime_config()
