"""
Platform credential templates: which fields a platform needs, which of them are
secret, and their default values.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class CredentialField:
    name: str
    placeholder: str
    secret: bool = True
    required: bool = True
    default: str = ""


@dataclass(frozen=True)
class PlatformTemplate:
    name: str
    description: str
    fields: Tuple[CredentialField, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return platform_key(self.name)

    def defaults(self) -> Dict[str, str]:
        return {f.name: f.default for f in self.fields}

    def secret_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.secret]

    def required_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.required]


def platform_key(name: str) -> str:
    """'OpenAI/OpenRouter' -> 'openai/openrouter', 'Twitter X' -> 'twitter_x'."""
    return re.sub(r"\s+", "_", name.strip().lower())


PLATFORM_TEMPLATES: Tuple[PlatformTemplate, ...] = (
    PlatformTemplate(
        name="Twitter/X",
        description="Twitter API credentials for posting and engagement",
        fields=(
            CredentialField("api_key", "API Key"),
            CredentialField("api_secret", "API Secret"),
            CredentialField("access_token", "Access Token"),
            CredentialField("access_token_secret", "Access Token Secret"),
            CredentialField("username", "Username", secret=False),
        ),
    ),
    PlatformTemplate(
        name="Instagram",
        description="Instagram credentials for posting and stories",
        fields=(
            CredentialField("username", "Username", secret=False),
            CredentialField("password", "Password"),
            CredentialField("session_id", "Session ID (optional)", required=False),
        ),
    ),
    PlatformTemplate(
        name="LinkedIn",
        description="LinkedIn API for professional networking",
        fields=(
            CredentialField("client_id", "Client ID"),
            CredentialField("client_secret", "Client Secret"),
            CredentialField("access_token", "Access Token"),
            CredentialField("profile_url", "Profile URL", secret=False),
        ),
    ),
    PlatformTemplate(
        name="OpenAI/OpenRouter",
        description="AI content generation credentials",
        fields=(
            CredentialField("api_key", "API Key"),
            CredentialField(
                "model", "Model (default: gpt-4-turbo)", secret=False, required=False, default="gpt-4-turbo"
            ),
        ),
    ),
    PlatformTemplate(
        name="ElevenLabs",
        description="Voice synthesis for audio content",
        fields=(
            CredentialField("api_key", "API Key"),
            CredentialField("voice_id", "Voice ID (optional)", secret=False, required=False),
        ),
    ),
    PlatformTemplate(
        name="Stripe",
        description="Payment processing for sales",
        fields=(
            CredentialField("publishable_key", "Publishable Key"),
            CredentialField("secret_key", "Secret Key"),
            CredentialField("webhook_secret", "Webhook Secret (optional)", required=False),
        ),
    ),
)

_BY_KEY: Dict[str, PlatformTemplate] = {t.key: t for t in PLATFORM_TEMPLATES}


def get_template(name_or_key: str) -> Optional[PlatformTemplate]:
    """Look a template up by display name or platform key."""
    return _BY_KEY.get(platform_key(name_or_key))
