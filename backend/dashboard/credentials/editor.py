"""
Editable credential set for one project.

Holds platform key -> field -> value, masks secret fields unless the user
revealed them, validates required fields before saving and delegates the
actual save and connection test to caller-supplied coroutines. Local edits
are never discarded by a failed test or save.
"""
import copy
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from dashboard.credentials.templates import get_template, PlatformTemplate
from dashboard.utils.redact import mask_value

logger = logging.getLogger(__name__)

Credentials = Dict[str, Dict[str, str]]
SaveCallback = Callable[[Credentials], Awaitable[None]]
TestCallback = Callable[[str, Dict[str, str]], Awaitable[bool]]


class CredentialValidationError(ValueError):
    """Raised when required fields are empty; `missing` maps platform -> field names."""

    def __init__(self, missing: Dict[str, List[str]]):
        self.missing = missing
        parts = [f"{platform}: {', '.join(fields)}" for platform, fields in sorted(missing.items())]
        super().__init__(f"Missing required credential fields ({'; '.join(parts)})")


class CredentialSetEditor:
    def __init__(
        self,
        on_save: SaveCallback,
        initial: Optional[Credentials] = None,
        on_test: Optional[TestCallback] = None,
    ):
        self._on_save = on_save
        self._on_test = on_test
        self.credentials: Credentials = copy.deepcopy(initial or {})
        self.test_results: Dict[str, bool] = {}
        self.testing: Optional[str] = None
        self.saving = False
        self._revealed: Set[Tuple[str, str]] = set()

    @property
    def can_test(self) -> bool:
        return self._on_test is not None

    def platforms(self) -> List[str]:
        return list(self.credentials.keys())

    def add_platform(self, name: str) -> str:
        """Add (or reset) a platform with its template defaults. Returns the platform key."""
        template = get_template(name)
        if template is None:
            raise KeyError(f"Unknown platform: {name}")
        self.credentials[template.key] = template.defaults()
        self.test_results.pop(template.key, None)
        return template.key

    def update(self, platform: str, field: str, value: str) -> None:
        if platform not in self.credentials:
            raise KeyError(f"Platform not configured: {platform}")
        self.credentials[platform][field] = value
        # A stale result would describe values that no longer exist
        self.test_results.pop(platform, None)

    def remove_platform(self, platform: str) -> None:
        self.credentials.pop(platform, None)
        self.test_results.pop(platform, None)
        self._revealed = {key for key in self._revealed if key[0] != platform}

    def missing_fields(self) -> Dict[str, List[str]]:
        missing = {}
        for platform, fields in self.credentials.items():
            template = get_template(platform)
            if template is None:
                continue
            empty = [name for name in template.required_fields() if not (fields.get(name) or "").strip()]
            if empty:
                missing[platform] = empty
        return missing

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise CredentialValidationError(missing)

    def is_secret(self, platform: str, field: str) -> bool:
        template: Optional[PlatformTemplate] = get_template(platform)
        if template is None:
            return True
        return field in template.secret_fields()

    def toggle_visibility(self, platform: str, field: str) -> bool:
        """Flip reveal state of one field; returns True when it is now shown in clear."""
        key = (platform, field)
        if key in self._revealed:
            self._revealed.discard(key)
            return False
        self._revealed.add(key)
        return True

    def display_value(self, platform: str, field: str) -> str:
        value = self.credentials.get(platform, {}).get(field, "")
        if self.is_secret(platform, field) and (platform, field) not in self._revealed:
            return mask_value(value)
        return value

    def masked(self) -> Credentials:
        """Copy of the set with every secret masked, regardless of reveal state."""
        return {
            platform: {
                name: mask_value(value) if self.is_secret(platform, name) else value
                for name, value in fields.items()
            }
            for platform, fields in self.credentials.items()
        }

    async def test(self, platform: str) -> Optional[bool]:
        """Run the caller's test for one platform. None when no tester was supplied."""
        if self._on_test is None:
            return None
        if platform not in self.credentials:
            raise KeyError(f"Platform not configured: {platform}")

        self.testing = platform
        try:
            result = bool(await self._on_test(platform, dict(self.credentials[platform])))
        except Exception as e:
            logger.warning(f"Credential test raised: {e}", extra={"platform": platform})
            result = False
        finally:
            self.testing = None

        self.test_results[platform] = result
        return result

    async def save(self) -> None:
        """Validate then persist. Failures propagate and leave local edits as they were."""
        self.validate()
        self.saving = True
        try:
            await self._on_save(copy.deepcopy(self.credentials))
        finally:
            self.saving = False
