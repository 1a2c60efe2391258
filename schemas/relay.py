from pydantic import BaseModel, ConfigDict
from typing import Any, Optional, Tuple

import constants


class PrefixPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    socket_prefix: str
    http_prefix: str


class SuppressRule(BaseModel):
    """Matches a parsed reply object whose `field` equals `value`."""
    model_config = ConfigDict(frozen=True)

    field: str
    value: Any

    def matches(self, payload: Any) -> bool:
        return isinstance(payload, dict) and self.field in payload and payload[self.field] == self.value


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    ws_path: str = constants.DEFAULT_WS_PATH
    api_path: str = constants.DEFAULT_API_PATH
    ws_path_test: Optional[str] = constants.DEFAULT_WS_PATH_TEST
    api_path_test: Optional[str] = constants.DEFAULT_API_PATH_TEST
    api_host: Optional[str] = None
    api_scheme: str = "https"
    keepalive_interval: float = 30.0
    keepalive_payload: str = "ping"
    forward_timeout: float = 10.0
    suppress_rules: Tuple[SuppressRule, ...] = (
        SuppressRule(field="message", value="Workflow was started"),
    )

    @classmethod
    def from_env(cls) -> "RelayConfig":
        return cls(
            ws_path=constants.WS_PATH,
            api_path=constants.API_PATH,
            ws_path_test=constants.WS_PATH_TEST or None,
            api_path_test=constants.API_PATH_TEST or None,
            api_host=constants.API_HOST or None,
            api_scheme=constants.API_SCHEME,
            keepalive_interval=constants.KEEPALIVE_INTERVAL,
            keepalive_payload=constants.KEEPALIVE_PAYLOAD,
            forward_timeout=constants.FORWARD_TIMEOUT,
            suppress_rules=(SuppressRule(field=constants.SUPPRESS_FIELD, value=constants.SUPPRESS_VALUE),),
        )

    @property
    def prefix_pairs(self) -> Tuple[PrefixPair, ...]:
        """Test pair first: it is checked before the default pair."""
        pairs = []
        if self.ws_path_test and self.api_path_test:
            pairs.append(PrefixPair(socket_prefix=self.ws_path_test, http_prefix=self.api_path_test))
        pairs.append(PrefixPair(socket_prefix=self.ws_path, http_prefix=self.api_path))
        return tuple(pairs)

    def is_suppressed(self, payload: Any) -> bool:
        return any(rule.matches(payload) for rule in self.suppress_rules)
