"""Tests for wordgpt_client/credentials/models.py — ClientConfiguration."""

from wordgpt_client.credentials.models import ClientConfiguration


class TestClientConfiguration:

    def test_defaults(self):
        config = ClientConfiguration()
        assert config.active_provider == "openai"
        assert config.keys == {}
        assert config.custom_endpoints == {}

    def test_to_dict_uses_persisted_names(self):
        config = ClientConfiguration(
            active_provider="azure",
            keys={"azure": "k"},
            custom_endpoints={"azure": "https://x"},
        )
        assert config.to_dict() == {
            "activeProvider": "azure",
            "keys": {"azure": "k"},
            "customEndpoints": {"azure": "https://x"},
        }

    def test_from_dict_merges_over_defaults(self):
        defaults = ClientConfiguration(active_provider="local")
        config = ClientConfiguration.from_dict({"keys": {"openai": "sk"}}, defaults=defaults)
        assert config.active_provider == "local"
        assert config.keys == {"openai": "sk"}
        assert config.custom_endpoints == {}

    def test_from_dict_ignores_non_mapping_fields(self):
        config = ClientConfiguration.from_dict({"keys": "sk", "customEndpoints": 3})
        assert config.keys == {}
        assert config.custom_endpoints == {}

    def test_to_dict_copies_mappings(self):
        config = ClientConfiguration(keys={"openai": "sk"})
        data = config.to_dict()
        data["keys"]["openai"] = "changed"
        assert config.keys["openai"] == "sk"
