import json

import pytest
from pydantic import ValidationError

from gbfsfeed import config


def test_default_polling_config():
    cfg = config.load_polling_config(None)
    assert cfg.manager.max_workers == 1
    assert cfg.manager.tick_interval_seconds > 0
    assert cfg.subscriptions == []


def test_subscription_options_defaults():
    options = config.SubscriptionOptions(discovery_url="https://gbfs.example.com/gbfs.json")
    assert options.language_code is None
    assert options.enable_validation is False
    assert options.request_timeout == 10.0
    assert options.default_ttl_seconds == 60.0


@pytest.mark.parametrize("url", ["gbfs.json", "ftp://example.com/gbfs.json", "https://", "not a url"])
def test_malformed_discovery_url_is_rejected(url):
    with pytest.raises(ValidationError):
        config.SubscriptionOptions(discovery_url=url)


def test_subscription_options_are_immutable():
    options = config.SubscriptionOptions(discovery_url="https://gbfs.example.com/gbfs.json")
    with pytest.raises(ValidationError):
        options.language_code = "en"


def test_authenticator_accepts_callables():
    def sign(request):
        request.headers["Authorization"] = "Bearer token"
        return request

    options = config.SubscriptionOptions(discovery_url="https://gbfs.example.com/gbfs.json", request_authenticator=sign)
    assert options.request_authenticator is sign


def test_load_json_config(tmp_path):
    path = tmp_path / "polling.json"
    path.write_text(
        json.dumps(
            {
                "manager": {"max_workers": 3, "tick_interval_seconds": 5},
                "subscriptions": [
                    {"discovery_url": "https://a.example.com/gbfs.json", "language_code": "sv"},
                    {"discovery_url": "https://b.example.com/gbfs.json", "enable_validation": True},
                ],
            }
        ),
        encoding="utf-8",
    )
    cfg = config.load_polling_config(path)
    assert cfg.manager.max_workers == 3
    assert [s.language_code for s in cfg.subscriptions] == ["sv", None]
    assert cfg.subscriptions[1].enable_validation


def test_load_yaml_config(tmp_path):
    path = tmp_path / "polling.yaml"
    path.write_text(
        "log_level: DEBUG\n"
        "subscriptions:\n"
        "  - discovery_url: https://a.example.com/gbfs.json\n"
        "    headers:\n"
        "      Client-Identifier: acme-planner\n",
        encoding="utf-8",
    )
    cfg = config.load_polling_config(path)
    assert cfg.log_level == "DEBUG"
    assert cfg.subscriptions[0].headers == {"Client-Identifier": "acme-planner"}


def test_unsupported_config_format(tmp_path):
    path = tmp_path / "polling.toml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        config.load_polling_config(path)


def test_subscription_headers_are_read_only():
    headers = {"Client-Identifier": "acme"}
    options = config.SubscriptionOptions(discovery_url="https://gbfs.example.com/gbfs.json", headers=headers)
    with pytest.raises(TypeError):
        options.headers["Authorization"] = "Bearer token"
    headers["Client-Identifier"] = "changed"
    assert options.headers == {"Client-Identifier": "acme"}
    with pytest.raises(TypeError):
        config.SubscriptionOptions(discovery_url="https://gbfs.example.com/gbfs.json").headers["X"] = "y"
