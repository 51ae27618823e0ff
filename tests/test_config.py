import logging

import pytest

from clob_bridge.utils.config import DEFAULT_CLOB_HOST, load_config
from clob_bridge.utils.enums import LogFormat
from clob_bridge.utils.errors import ConfigError

from tests.conftest import FUNDER, HARDHAT_KEY

logger = logging.getLogger("clob-bridge-tests")


def test_private_key_required():
    with pytest.raises(ConfigError, match="POLYMARKET_PRIVATE_KEY or PRIVATE_KEY"):
        load_config(logger, env={})


def test_blank_private_key_counts_as_missing():
    with pytest.raises(ConfigError):
        load_config(logger, env={"POLYMARKET_PRIVATE_KEY": "  "})


def test_defaults():
    config = load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY})
    assert config.private_key.get_secret_value() == HARDHAT_KEY
    assert config.host == DEFAULT_CLOB_HOST
    assert config.chain_id == 137
    assert config.signature_type is None
    assert config.funder_address is None
    assert config.log_format is LogFormat.JSON
    assert HARDHAT_KEY not in repr(config)


def test_primary_variable_names_win():
    config = load_config(logger, env={
        "POLYMARKET_PRIVATE_KEY": HARDHAT_KEY,
        "PRIVATE_KEY": "0xother",
        "POLYMARKET_PROXY_ADDRESS": FUNDER,
        "CLOB_FUNDER_ADDRESS": "0xother",
    })
    assert config.private_key.get_secret_value() == HARDHAT_KEY
    assert config.funder_address == FUNDER


def test_fallback_funder_variable():
    config = load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY, "CLOB_FUNDER_ADDRESS": FUNDER})
    assert config.funder_address == FUNDER


def test_signature_type_from_env():
    config = load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY, "POLYMARKET_SIGNATURE_TYPE": "1"})
    assert config.signature_type == 1


def test_non_integer_signature_type_is_ignored():
    config = load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY, "POLYMARKET_SIGNATURE_TYPE": "proxy"})
    assert config.signature_type is None


def test_bad_chain_id():
    with pytest.raises(ConfigError, match="CLOB_CHAIN_ID"):
        load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY, "CLOB_CHAIN_ID": "polygon"})


def test_yaml_then_env_then_overrides(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text(
        "Host: https://example.test\n"
        "SignatureType: 0\n"
        "LogLevel: debug\n"
        "LogFormat: text\n"
    )
    config = load_config(
        logger,
        config_path=path,
        env={"PRIVATE_KEY": HARDHAT_KEY, "POLYMARKET_SIGNATURE_TYPE": "2"},
        overrides={"log_level": "WARNING", "log_file": None},
    )
    assert config.host == "https://example.test"
    assert config.signature_type == 2
    assert config.log_level == "WARNING"
    assert config.log_format is LogFormat.TEXT
    assert config.log_file is None


def test_yaml_log_level_is_normalised(tmp_path):
    path = tmp_path / "bridge.yml"
    path.write_text("LogLevel: debug\n")
    config = load_config(logger, config_path=path, env={"PRIVATE_KEY": HARDHAT_KEY})
    assert config.log_level == "DEBUG"


def test_private_key_in_yaml_rejected(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text(f"PrivateKey: '{HARDHAT_KEY}'\n")
    with pytest.raises(ConfigError, match="environment"):
        load_config(logger, config_path=path, env={"PRIVATE_KEY": HARDHAT_KEY})


def test_yaml_type_mismatch(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text("ChainId: polygon\n")
    with pytest.raises(ConfigError, match="ChainId"):
        load_config(logger, config_path=path, env={"PRIVATE_KEY": HARDHAT_KEY})


def test_wrong_extension(tmp_path):
    path = tmp_path / "bridge.json"
    path.write_text("{}")
    with pytest.raises(ConfigError, match=".yaml or .yml"):
        load_config(logger, config_path=path, env={"PRIVATE_KEY": HARDHAT_KEY})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(logger, config_path=tmp_path / "nope.yaml", env={"PRIVATE_KEY": HARDHAT_KEY})


def test_invalid_log_level():
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(logger, env={"PRIVATE_KEY": HARDHAT_KEY, "LOG_LEVEL": "LOUD"})
