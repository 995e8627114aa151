"""Tests for BridgeConfig - TEST501-TEST507"""

import pytest

from freecoding.config import (
    BridgeConfig,
    ConfigError,
    DEFAULT_READ_SIZE,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "FREECODING_BACKEND_CMD",
        "FREECODING_BACKEND_CWD",
        "FREECODING_LANGUAGE",
        "FREECODING_READ_SIZE",
        "FREECODING_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# TEST501: Defaults when nothing is configured
def test_defaults():
    config = BridgeConfig()
    assert config.backend_command == ["jbang", "src/java/server"]
    assert config.backend_cwd is None
    assert config.language == "en"
    assert config.read_size == DEFAULT_READ_SIZE
    assert config.log_level == "WARNING"


# TEST502: Environment variables override defaults
def test_environment(monkeypatch):
    monkeypatch.setenv("FREECODING_BACKEND_CMD", "java -jar 'my server.jar'")
    monkeypatch.setenv("FREECODING_BACKEND_CWD", "/tmp")
    monkeypatch.setenv("FREECODING_LANGUAGE", "fr")
    monkeypatch.setenv("FREECODING_READ_SIZE", "128")
    monkeypatch.setenv("FREECODING_LOG_LEVEL", "debug")

    config = BridgeConfig()

    assert config.backend_command == ["java", "-jar", "my server.jar"]
    assert config.backend_cwd == "/tmp"
    assert config.language == "fr"
    assert config.read_size == 128
    assert config.log_level == "DEBUG"


# TEST503: Constructor arguments override the environment
def test_arguments_win(monkeypatch):
    monkeypatch.setenv("FREECODING_LANGUAGE", "fr")
    config = BridgeConfig(backend_command=["./backend"], language="de", read_size=10)
    assert config.backend_command == ["./backend"]
    assert config.language == "de"
    assert config.read_size == 10


# TEST504: Builder methods update and chain
def test_builders():
    config = (
        BridgeConfig()
        .with_backend_command(["python", "bot.py"])
        .with_backend_cwd("/srv")
        .with_language("it")
        .with_log_level("info")
    )
    assert config.backend_command == ["python", "bot.py"]
    assert config.backend_cwd == "/srv"
    assert config.language == "it"
    assert config.log_level == "INFO"


# TEST505: Bad read size is rejected
@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_read_size(monkeypatch, value):
    monkeypatch.setenv("FREECODING_READ_SIZE", value)
    with pytest.raises(ConfigError):
        BridgeConfig()


# TEST506: Empty backend command is rejected
def test_empty_backend_command():
    with pytest.raises(ConfigError):
        BridgeConfig(backend_command=[])
    with pytest.raises(ConfigError):
        BridgeConfig().with_backend_command([])


# TEST507: Read size passed as an argument is checked like the environment value
@pytest.mark.parametrize("value", [0, -1])
def test_invalid_read_size_argument(value):
    with pytest.raises(ConfigError):
        BridgeConfig(read_size=value)
