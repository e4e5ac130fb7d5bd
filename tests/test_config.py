"""
Tests for the station configuration and command line.
"""

import pytest

from mission_control.config import (DEFAULT_BAUD_RATE, DEFAULT_PORT,
                                    StationConfig)


def test_config_from_args():
    config = StationConfig.from_args(["--port", "loop://", "--baud", "115200",
                                      "--keep-history", "--log-packets"])
    assert config.port == "loop://"
    assert config.baud_rate == 115200
    assert not config.clear_history_on_connect
    assert config.log_packets


def test_config_defaults():
    config = StationConfig.from_args([])
    assert config.port == DEFAULT_PORT
    assert config.baud_rate == DEFAULT_BAUD_RATE
    assert config.clear_history_on_connect
    assert not config.list_ports


def test_config_clamps_bad_values():
    config = StationConfig(read_timeout=0, read_chunk_size=-4, log_level="debug")
    assert config.read_timeout > 0
    assert config.read_chunk_size == 1
    assert config.log_level == "DEBUG"


def test_unsupported_baud_rate_is_rejected():
    with pytest.raises(SystemExit):
        StationConfig.from_args(["--baud", "1234"])
