import pytest

from chef_exporter.core.config import ExporterConfig, parse_bool, parse_listen_address
from chef_exporter.core.config_loader import load_yaml
from chef_exporter.core.errors import ConfigError


def test_defaults_from_empty_environment():
    config = ExporterConfig.from_env(environ={})
    assert config.listen_address == ":9101"
    assert config.telemetry_path == "/metrics"
    assert config.request_timeout == 10.0
    assert config.ssl_verify is True
    assert config.search_rows == 0
    assert config.missing_chef_settings() == ["CHEF_CLIENT_NAME", "CHEF_CLIENT_KEY", "CHEF_SERVER_URL"]


def test_reads_chef_settings_from_environment():
    config = ExporterConfig.from_env(environ={
        "CHEF_CLIENT_NAME": "exporter",
        "CHEF_CLIENT_KEY": "/etc/chef/exporter.pem",
        "CHEF_SERVER_URL": "https://chef.example.com/organizations/acme/",
        "CHEF_REQUEST_TIMEOUT": "2.5",
        "CHEF_SSL_VERIFY": "false",
        "CHEF_SEARCH_ROWS": "5000",
        "TELEMETRY_PATH": "stats",
        "DEBUG": "true",
    })
    assert config.client_name == "exporter"
    assert config.client_key_path == "/etc/chef/exporter.pem"
    assert config.server_url == "https://chef.example.com/organizations/acme"
    assert config.request_timeout == 2.5
    assert config.ssl_verify is False
    assert config.search_rows == 5000
    assert config.telemetry_path == "/stats"
    assert config.debug is True
    assert config.missing_chef_settings() == []


def test_invalid_numbers_fall_back_to_defaults():
    config = ExporterConfig.from_env(environ={"CHEF_REQUEST_TIMEOUT": "soon", "CHEF_SEARCH_ROWS": "many"})
    assert config.request_timeout == 10.0
    assert config.search_rows == 0


def test_yaml_overlay_wins_over_environment(tmp_path):
    path = tmp_path / "exporter.yml"
    path.write_text(
        "chef_server_url: https://chef.internal\n"
        "CHEF_CLIENT_NAME: from-yaml\n"
        "chef_request_timeout: 3\n"
    )
    config = ExporterConfig.from_env(environ={"CHEF_CLIENT_NAME": "from-env", "EXPORTER_CONFIG": str(path)})
    assert config.client_name == "from-yaml"
    assert config.server_url == "https://chef.internal"
    assert config.request_timeout == 3.0


def test_load_yaml_returns_empty_on_missing_or_non_mapping(tmp_path):
    assert load_yaml(str(tmp_path / "nope.yml")) == {}
    listing = tmp_path / "list.yml"
    listing.write_text("- a\n- b\n")
    assert load_yaml(str(listing)) == {}


@pytest.mark.parametrize("address, expected", [
    (":9101", ("0.0.0.0", 9101)),
    ("127.0.0.1:8080", ("127.0.0.1", 8080)),
    ("[::1]:9101", ("::1", 9101)),
])
def test_parse_listen_address(address, expected):
    assert parse_listen_address(address) == expected


@pytest.mark.parametrize("address", ["9101", "host:port", ":0", ":70000"])
def test_parse_listen_address_rejects_invalid(address):
    with pytest.raises(ConfigError):
        parse_listen_address(address)


@pytest.mark.parametrize("value, expected", [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("off", False)])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_yaml_overlay_logs_overridden_keys(tmp_path, log_messages):
    path = tmp_path / "exporter.yml"
    path.write_text("chef_client_name: from-yaml\nlisten_address: ':9300'\n")
    config = ExporterConfig.from_env(environ={}, config_path=str(path))

    assert config.listen_address == ":9300"
    assert ("DEBUG", f"[config] {path} overrides: CHEF_CLIENT_NAME, LISTEN_ADDRESS") in log_messages
