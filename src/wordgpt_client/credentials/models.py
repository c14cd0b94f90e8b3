"""Persisted client configuration model."""

from dataclasses import dataclass, field


@dataclass
class ClientConfiguration:
    active_provider: str = "openai"
    keys: dict[str, str] = field(default_factory=dict)  # provider → API key
    custom_endpoints: dict[str, str] = field(default_factory=dict)  # provider → base URL override

    def to_dict(self) -> dict:
        """Serialize using the persisted record's field names."""
        return {
            "activeProvider": self.active_provider,
            "keys": dict(self.keys),
            "customEndpoints": dict(self.custom_endpoints),
        }

    @classmethod
    def from_dict(cls, data: dict, defaults: "ClientConfiguration | None" = None) -> "ClientConfiguration":
        """Merge a persisted record over defaults. Missing fields keep the default."""
        base = defaults or cls()
        return cls(
            active_provider=data.get("activeProvider") or base.active_provider,
            keys={**base.keys, **_mapping(data.get("keys"))},
            custom_endpoints={**base.custom_endpoints, **_mapping(data.get("customEndpoints"))},
        )


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}
