"""
Per-project credential storage (Fernet-encrypted JSON) and provider connection tests.
"""
import json
import logging
from functools import lru_cache
from typing import Dict, Optional

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from dashboard.config import settings
from dashboard.credentials.templates import get_template
from dashboard.exceptions import ValidationError
from dashboard.models import CredentialSet
from dashboard.schemas import CredentialTestResult
from dashboard.services.project_service import get_project_or_404
from dashboard.utils.redact import MASK, mask_fields, redact_secrets

logger = logging.getLogger(__name__)

Credentials = Dict[str, Dict[str, str]]


@lru_cache(maxsize=1)
def _fernet() -> Fernet:
    key = settings.CREDENTIALS_ENCRYPTION_KEY
    if not key:
        logger.warning("CREDENTIALS_ENCRYPTION_KEY not set; using an ephemeral key for this process")
        key = Fernet.generate_key().decode("utf-8")
    return Fernet(key.encode("utf-8"))


def encrypt_credentials(credentials: Credentials) -> str:
    payload = json.dumps(credentials, separators=(",", ":"), sort_keys=True)
    return _fernet().encrypt(payload.encode("utf-8")).decode("utf-8")


def decrypt_credentials(token: Optional[str]) -> Credentials:
    """Decrypt a stored set. Unreadable payloads decrypt to an empty set."""
    if not token:
        return {}
    try:
        data = json.loads(_fernet().decrypt(token.encode("utf-8")).decode("utf-8"))
    except (InvalidToken, ValueError) as e:
        logger.warning(f"Failed to decrypt credentials: {type(e).__name__}")
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def mask_credentials(credentials: Credentials) -> Credentials:
    masked = {}
    for platform, fields in credentials.items():
        template = get_template(platform)
        secret = template.secret_fields() if template else list(fields.keys())
        masked[platform] = mask_fields(fields, secret)
    return masked


def validate_credentials(credentials: Credentials) -> None:
    unknown = [platform for platform in credentials if get_template(platform) is None]
    if unknown:
        raise ValidationError("Unknown platform", details={"platforms": sorted(unknown)})

    missing = {}
    for platform, fields in credentials.items():
        template = get_template(platform)
        empty = [name for name in template.required_fields() if not (fields.get(name) or "").strip()]
        if empty:
            missing[platform] = empty
    if missing:
        raise ValidationError("Missing required credential fields", details={"missing": missing})


def get_credential_set(db: Session, project_id: int) -> Optional[CredentialSet]:
    get_project_or_404(db, project_id)
    return db.query(CredentialSet).filter(CredentialSet.project_id == project_id).first()


def _restore_masked(credentials: Credentials, stored: Credentials) -> Credentials:
    """Values sent back still masked keep what is stored."""
    restored = {}
    for platform, fields in credentials.items():
        previous = stored.get(platform, {})
        restored[platform] = {
            name: previous.get(name, "") if value == MASK else value
            for name, value in fields.items()
        }
    return restored


def save_credentials(db: Session, project_id: int, credentials: Credentials) -> CredentialSet:
    """Replace the project's credential set. Platforms left out are removed."""
    row = get_credential_set(db, project_id)
    stored = decrypt_credentials(row.encrypted_payload) if row else {}
    credentials = _restore_masked(credentials, stored)
    validate_credentials(credentials)
    token = encrypt_credentials(credentials)
    if row:
        row.encrypted_payload = token
    else:
        row = CredentialSet(project_id=project_id, encrypted_payload=token)
        db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(
        f"Credentials saved for platforms: {', '.join(sorted(credentials)) or 'none'}",
        extra={"project_id": project_id, "event": "credentials_saved"},
    )
    return row


# ============= Connection tests =============

async def _check_http(
    label: str,
    url: str,
    headers: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport],
    details: Optional[dict] = None,
) -> CredentialTestResult:
    try:
        async with httpx.AsyncClient(timeout=settings.CREDENTIAL_TEST_TIMEOUT, transport=transport) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        return CredentialTestResult(
            success=False,
            message=f"{label} API test failed: {redact_secrets(str(e))}",
        )
    except UnicodeEncodeError:
        # Header values must be ASCII; the offending character is not echoed back
        return CredentialTestResult(
            success=False,
            message=f"{label} API test failed: credentials contain non-ASCII characters",
        )

    if response.is_success:
        return CredentialTestResult(success=True, message=f"{label} API credentials are valid", details=details)

    reason = response.reason_phrase or str(response.status_code)
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error") or body.get("detail") or {}
        if isinstance(error, dict) and error.get("message"):
            reason = error["message"]
    return CredentialTestResult(success=False, message=f"{label} API error: {redact_secrets(reason)}")


async def test_credentials(
    platform: str,
    credentials: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CredentialTestResult:
    """Check required fields, then call the provider where it has a cheap authenticated endpoint."""
    template = get_template(platform)
    if template is None:
        return CredentialTestResult(success=False, message=f"Unknown platform: {platform}")

    missing = [name for name in template.required_fields() if not (credentials.get(name) or "").strip()]
    if missing:
        return CredentialTestResult(success=False, message=f"Missing required fields: {', '.join(missing)}")

    key = template.key
    if key == "openai/openrouter":
        result = await _check_http(
            "OpenAI",
            "https://api.openai.com/v1/models",
            {"Authorization": f"Bearer {credentials['api_key']}"},
            transport,
            details={"model": credentials.get("model") or "gpt-4-turbo"},
        )
    elif key == "elevenlabs":
        result = await _check_http(
            "ElevenLabs",
            "https://api.elevenlabs.io/v1/voices",
            {"xi-api-key": credentials["api_key"]},
            transport,
        )
    elif key == "stripe":
        result = await _check_http(
            "Stripe",
            "https://api.stripe.com/v1/account",
            {"Authorization": f"Bearer {credentials['secret_key']}"},
            transport,
        )
    else:
        # No cheap authenticated endpoint here; required fields are all we check
        result = CredentialTestResult(success=True, message="Credentials format is valid")

    logger.info(
        f"Credential test {'passed' if result.success else 'failed'}",
        extra={"platform": key, "status": "success" if result.success else "failed"},
    )
    return result
