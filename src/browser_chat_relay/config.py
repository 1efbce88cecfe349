"""Configuration models for the browser chat relay."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .selectors import SelectorStrategy


def _strategies(*items: Any) -> list[SelectorStrategy]:
    return [SelectorStrategy.model_validate(item) for item in items]


class BrowserConfig(BaseModel):
    """Settings for the browser backend."""

    profile_path: Optional[Path] = Field(
        default=Path("./browser-session"),
        description="Persistent user data directory; None launches a throwaway profile.",
    )
    headless: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: Optional[str] = None
    navigation_timeout: float = Field(default=30.0, description="Page load timeout in seconds.")


class ChatConfig(BaseModel):
    """Target chat application and model."""

    target_url: str = "https://openrouter.ai/chat"
    model_name: str = "DeepSeek: Deepseek R1 0528 Qwen3 8B (free)"
    typing_delay: float = Field(default=0.5, description="Pause after typing before sending.")
    model_options_timeout: float = 5.0


class LoginConfig(BaseModel):
    """Manual login detection settings."""

    timeout: float = Field(default=300.0, description="Seconds to wait for a manual login.")
    poll_interval: float = 2.0
    settle_delay: float = Field(
        default=3.0,
        description="Pause after navigation before checking the login state.",
    )


class StabilizationConfig(BaseModel):
    """Reply stabilization heuristic settings."""

    max_wait: float = Field(default=45.0, description="Overall budget per reply in seconds.")
    poll_interval: float = 0.2
    stable_cycles: int = Field(default=5, ge=1)
    min_length: int = Field(default=10, ge=0)
    indicator_appear_timeout: float = 10.0


class SelectorConfig(BaseModel):
    """Lookup strategies for each element the relay interacts with."""

    login_indicator: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies(
            "picture.flex-shrink-0.overflow-hidden.rounded-full img",
            'img[src*="images.clerk.dev"]',
            'img[alt*="Avatar"]',
        )
    )
    chat_input: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies(
            'textarea[name="Chat Input"]',
            'textarea[placeholder*="Start a message"]',
            'textarea[placeholder*="message"]',
            "textarea",
            {"selector": '[contenteditable="true"], [role="textbox"]', "pick": "last"},
        )
    )
    send_button: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies(
            '[data-testid="send-button"]',
            'button[aria-label*="Send"]',
            'button[aria-label*="send"]',
        )
    )
    model_picker: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies(
            "xpath=//button[contains(., 'Add model')]",
            {"selector": "button", "text_contains": "Add model"},
        )
    )
    model_option: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies("[cmdk-item]", '[role="option"]', ".option")
    )
    response_container: list[SelectorStrategy] = Field(
        default_factory=lambda: _strategies(
            "div.max-w-3xl.bg-slate-3",
            'div[class*="bg-slate-3"]',
        )
    )
    loading_indicator: str = ".animate-scale-pulse"


class SessionStoreConfig(BaseModel):
    """Location of the persisted session record."""

    path: Path = Path("./openrouter-session.json")


class ServerConfig(BaseModel):
    """Settings for the HTTP command surface."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000)


class NotificationConfig(BaseModel):
    """Notification channel settings."""

    channel: str = Field(default="console")


class RelayConfig(BaseSettings):
    """Top-level configuration for the relay."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_CHAT_RELAY_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    login: LoginConfig = Field(default_factory=LoginConfig)
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    session: SessionStoreConfig = Field(default_factory=SessionStoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> RelayConfig:
    """Load configuration from an optional YAML file, env vars and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = RelayConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return RelayConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
