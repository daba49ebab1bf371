"""
Configuration Management for the Compliance Auditor

Loads configuration from ~/.auditor/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("auditor.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".auditor"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"


@dataclass
class SlackConfig:
    """Slack app configuration"""
    bot_token: str = ""
    signing_secret: str = ""
    port: int = 3000
    api_base_url: str = "https://slack.com/api"
    timeout: float = 10.0


@dataclass
class LLMConfig:
    """Remote classifier (LLM) configuration"""
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash-exp"
    temperature: float = 0.1
    timeout: float = 30.0

    @property
    def api_key(self) -> str:
        """API key of the selected provider"""
        return getattr(self, f"{self.provider}_api_key", "") or ""

    @property
    def model(self) -> str:
        """Model name of the selected provider"""
        return getattr(self, f"{self.provider}_model", "") or ""


@dataclass
class SalesforceConfig:
    """Salesforce rules agent and case-management configuration"""
    login_url: str = "https://login.salesforce.com"
    username: str = ""
    password: str = ""
    client_id: str = ""
    client_secret: str = ""
    instance_url: str = ""
    agent_id: str = ""
    api_version: str = "v58.0"
    timeout: float = 30.0


@dataclass
class FeatureFlags:
    """Detection tier toggles"""
    use_classifier: bool = False  # USE_OPENAI
    use_rules_agent: bool = False  # USE_SALESFORCE
    mock_mode: bool = False  # ENABLE_MOCK_MODE: both adapters offline


@dataclass
class AuditorConfig:
    """Main Compliance Auditor configuration"""
    slack: SlackConfig = field(default_factory=SlackConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    salesforce: SalesforceConfig = field(default_factory=SalesforceConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)
    log_level: str = "INFO"
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_bool(value) -> bool:
    """Interpret config/env flags; only 'true' (any case) and True count"""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_slack_config(data: dict) -> SlackConfig:
    """Parse slack section from config dict"""
    slack_data = data.get("slack", {})
    return SlackConfig(
        bot_token=slack_data.get("bot_token", ""),
        signing_secret=slack_data.get("signing_secret", ""),
        port=slack_data.get("port", 3000),
        api_base_url=slack_data.get("api_base_url", "https://slack.com/api"),
        timeout=slack_data.get("timeout", 10.0),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict.

    Accepts the older flat ``openai`` section (``api_key``/``model``) when
    ``llm`` is absent.
    """
    llm_data = data.get("llm")

    if llm_data is not None:
        return LLMConfig(
            provider=llm_data.get("provider", "openai"),
            openai_api_key=llm_data.get("openai_api_key", ""),
            openai_model=llm_data.get("openai_model", "gpt-4o"),
            anthropic_api_key=llm_data.get("anthropic_api_key", ""),
            anthropic_model=llm_data.get("anthropic_model", "claude-sonnet-4-20250514"),
            google_api_key=llm_data.get("google_api_key", ""),
            google_model=llm_data.get("google_model", "gemini-2.0-flash-exp"),
            temperature=llm_data.get("temperature", 0.1),
            timeout=llm_data.get("timeout", 30.0),
        )

    openai_data = data.get("openai", {})
    return LLMConfig(
        provider="openai",
        openai_api_key=openai_data.get("api_key", ""),
        openai_model=openai_data.get("model", "gpt-4o"),
    )


def _parse_salesforce_config(data: dict) -> SalesforceConfig:
    """Parse salesforce section from config dict"""
    sf_data = data.get("salesforce", {})
    return SalesforceConfig(
        login_url=sf_data.get("login_url", "https://login.salesforce.com"),
        username=sf_data.get("username", ""),
        password=sf_data.get("password", ""),
        client_id=sf_data.get("client_id", ""),
        client_secret=sf_data.get("client_secret", ""),
        instance_url=sf_data.get("instance_url", ""),
        agent_id=sf_data.get("agent_id", ""),
        api_version=sf_data.get("api_version", "v58.0"),
        timeout=sf_data.get("timeout", 30.0),
    )


def _parse_feature_flags(data: dict) -> FeatureFlags:
    """Parse features section from config dict"""
    features_data = data.get("features", {})
    return FeatureFlags(
        use_classifier=_parse_bool(features_data.get("use_classifier", False)),
        use_rules_agent=_parse_bool(features_data.get("use_rules_agent", False)),
        mock_mode=_parse_bool(features_data.get("mock_mode", False)),
    )


def load_config() -> AuditorConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.auditor/config.json)
    3. Default values
    """
    config = AuditorConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.slack = _parse_slack_config(data)
            config.llm = _parse_llm_config(data)
            config.salesforce = _parse_salesforce_config(data)
            config.features = _parse_feature_flags(data)
            config.log_level = data.get("log_level", "INFO")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    if os.getenv("SLACK_BOT_TOKEN"):
        config.slack.bot_token = os.getenv("SLACK_BOT_TOKEN")
        config._env_sourced_keys.add("slack.bot_token")
    if os.getenv("SLACK_SIGNING_SECRET"):
        config.slack.signing_secret = os.getenv("SLACK_SIGNING_SECRET")
        config._env_sourced_keys.add("slack.signing_secret")
    if os.getenv("PORT"):
        config.slack.port = int(os.getenv("PORT"))

    _env_llm_map = {
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "AUDITOR_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(f"llm.{attr}")

    _env_salesforce_map = {
        "SALESFORCE_LOGIN_URL": "login_url",
        "SALESFORCE_USERNAME": "username",
        "SALESFORCE_PASSWORD": "password",
        "SALESFORCE_CLIENT_ID": "client_id",
        "SALESFORCE_CLIENT_SECRET": "client_secret",
        "SALESFORCE_INSTANCE_URL": "instance_url",
        "SALESFORCE_AGENT_ID": "agent_id",
    }
    for env_var, attr in _env_salesforce_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.salesforce, attr, val)
            config._env_sourced_keys.add(f"salesforce.{attr}")

    # Flags are only overridden when the variable is present at all
    if os.getenv("USE_OPENAI") is not None:
        config.features.use_classifier = _parse_bool(os.getenv("USE_OPENAI"))
    if os.getenv("USE_SALESFORCE") is not None:
        config.features.use_rules_agent = _parse_bool(os.getenv("USE_SALESFORCE"))
    if os.getenv("ENABLE_MOCK_MODE") is not None:
        config.features.mock_mode = _parse_bool(os.getenv("ENABLE_MOCK_MODE"))

    if os.getenv("AUDITOR_LOG_LEVEL"):
        config.log_level = os.getenv("AUDITOR_LOG_LEVEL")

    return config


_SECRET_FIELDS = {
    "slack.bot_token",
    "slack.signing_secret",
    "llm.openai_api_key",
    "llm.anthropic_api_key",
    "llm.google_api_key",
    "salesforce.password",
    "salesforce.client_secret",
}


def save_config(config: AuditorConfig) -> None:
    """Save configuration to file.

    Secret fields that were sourced from environment variables are written
    as empty strings so that they are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    def _secret(key: str, value: str) -> str:
        if key in _SECRET_FIELDS and key in env_sourced:
            return ""
        return value

    data = {
        "slack": {
            "bot_token": _secret("slack.bot_token", config.slack.bot_token),
            "signing_secret": _secret("slack.signing_secret", config.slack.signing_secret),
            "port": config.slack.port,
            "api_base_url": config.slack.api_base_url,
            "timeout": config.slack.timeout,
        },
        "llm": {
            "provider": config.llm.provider,
            "openai_api_key": _secret("llm.openai_api_key", config.llm.openai_api_key),
            "openai_model": config.llm.openai_model,
            "anthropic_api_key": _secret("llm.anthropic_api_key", config.llm.anthropic_api_key),
            "anthropic_model": config.llm.anthropic_model,
            "google_api_key": _secret("llm.google_api_key", config.llm.google_api_key),
            "google_model": config.llm.google_model,
            "temperature": config.llm.temperature,
            "timeout": config.llm.timeout,
        },
        "salesforce": {
            "login_url": config.salesforce.login_url,
            "username": config.salesforce.username,
            "password": _secret("salesforce.password", config.salesforce.password),
            "client_id": config.salesforce.client_id,
            "client_secret": _secret("salesforce.client_secret", config.salesforce.client_secret),
            "instance_url": config.salesforce.instance_url,
            "agent_id": config.salesforce.agent_id,
            "api_version": config.salesforce.api_version,
            "timeout": config.salesforce.timeout,
        },
        "features": {
            "use_classifier": config.features.use_classifier,
            "use_rules_agent": config.features.use_rules_agent,
            "mock_mode": config.features.mock_mode,
        },
        "log_level": config.log_level,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
