"""
Tests for ServerConfig: defaults, YAML, environment overrides, seed loading.
"""
import textwrap

import pytest

from taskboard.config import ServerConfig, ConfigError


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text))
    return str(path)


def test_defaults_when_file_missing(tmp_path):
    cfg = ServerConfig.load(str(tmp_path / "absent.yaml"), environ={})
    assert cfg.host == "127.0.0.1"
    assert cfg.port == 3000
    assert cfg.cors_allowed_origins == ["*"]
    assert cfg.async_mode == "threading"
    assert cfg.seed_path is None


def test_yaml_values_and_unknown_keys(tmp_path):
    path = write(tmp_path, "taskboard.yaml", """
        host: 0.0.0.0
        port: "8080"
        cors_allowed_origins: http://localhost:5173
        log_level: debug
        telegram_token: ignored
    """)
    cfg = ServerConfig.load(path, environ={})
    assert cfg.host == "0.0.0.0"
    assert cfg.port == 8080
    assert cfg.cors_allowed_origins == ["http://localhost:5173"]
    assert cfg.log_level == "DEBUG"
    assert not hasattr(cfg, "telegram_token")


def test_broken_yaml_falls_back_to_defaults(tmp_path):
    path = write(tmp_path, "taskboard.yaml", "port: [unclosed\n")
    assert ServerConfig.load(path, environ={}).port == 3000


def test_env_overrides_yaml(tmp_path):
    path = write(tmp_path, "taskboard.yaml", "port: 8080\n")
    cfg = ServerConfig.load(path, environ={
        "TASKBOARD_PORT": "9000",
        "TASKBOARD_HOST": "0.0.0.0",
        "TASKBOARD_CORS_ORIGINS": "http://a.test, http://b.test",
    })
    assert cfg.port == 9000
    assert cfg.host == "0.0.0.0"
    assert cfg.cors_allowed_origins == ["http://a.test", "http://b.test"]


def test_config_path_from_env(tmp_path):
    path = write(tmp_path, "other.yaml", "port: 4242\n")
    assert ServerConfig.load(environ={"TASKBOARD_CONFIG": path}).port == 4242


def test_invalid_port(tmp_path):
    with pytest.raises(ConfigError):
        ServerConfig.load(str(tmp_path / "absent.yaml"), environ={"TASKBOARD_PORT": "http"})
    with pytest.raises(ConfigError):
        ServerConfig(port=70000).validate()


class TestSeed:

    def test_no_seed(self):
        assert ServerConfig().load_seed() is None

    def test_seed_file(self, tmp_path):
        path = write(tmp_path, "seed.yaml", """
            todo:
              - title: First
            done:
              - title: Shipped
                priority: High
        """)
        board = ServerConfig(seed_path=path).load_seed()
        assert board["todo"] == [{"title": "First"}]
        assert board["done"][0]["priority"] == "High"

    def test_missing_seed_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ServerConfig(seed_path=str(tmp_path / "nope.yaml")).load_seed()

    def test_seed_must_be_mapping(self, tmp_path):
        path = write(tmp_path, "seed.yaml", "- title: A\n")
        with pytest.raises(ConfigError):
            ServerConfig(seed_path=path).load_seed()


class TestValidation:

    def test_attachment_limit_must_be_integer(self, tmp_path):
        path = write(tmp_path, "taskboard.yaml", "max_attachment_bytes: 5MB\n")
        with pytest.raises(ConfigError):
            ServerConfig.load(path, environ={})

    def test_numeric_strings_are_coerced(self):
        cfg = ServerConfig(max_attachment_bytes="1024", max_pending_messages="50").validate()
        assert cfg.max_attachment_bytes == 1024
        assert cfg.max_pending_messages == 50

    @pytest.mark.parametrize("value", [0, -1, True, None])
    def test_pending_limit_must_be_positive(self, value):
        with pytest.raises(ConfigError):
            ServerConfig(max_pending_messages=value).validate()

    @pytest.mark.parametrize("mode", ["bogus", "eventlet", "gevent"])
    def test_only_threading_async_mode(self, mode):
        with pytest.raises(ConfigError):
            ServerConfig(async_mode=mode).validate()

    def test_async_mode_from_env(self, tmp_path):
        with pytest.raises(ConfigError):
            ServerConfig.load(str(tmp_path / "absent.yaml"),
                              environ={"TASKBOARD_ASYNC_MODE": "eventlet"})
