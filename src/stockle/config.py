"""
Runtime settings for a stockle library instance.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LibrarySettings:
    """
    Tunables shared by the store, the view and the REST client.

    `api_base_url` is only needed when syncing with a backend; the
    in-memory engine works without it.
    """

    api_base_url: Optional[str] = None
    api_token: Optional[str] = None
    api_prefix: str = "/api/v1"
    request_timeout: float = 30.0
    verify_tls: bool = True
    debounce_delay: float = 0.3
    page_size: int = 20
    default_language: str = "ja"
    fold_tag_case: bool = True
    user_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.debounce_delay < 0:
            raise ValueError("debounce_delay must be >= 0")
        if not 1 <= self.page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.api_token and not self.api_base_url:
            raise ValueError("api_token given without api_base_url")

    @property
    def has_backend(self) -> bool:
        return bool(self.api_base_url)

    @staticmethod
    def from_env(prefix: str = "STOCKLE_") -> "LibrarySettings":
        def _s(name: str, default: Optional[str] = None) -> Optional[str]:
            value = os.getenv(prefix + name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def _b(name: str, default: str) -> bool:
            return _s(name, default) in ("1", "true", "True", "yes", "YES")

        def _f(name: str, default: str) -> float:
            return float(_s(name, default))

        def _i(name: str, default: str) -> int:
            return int(_s(name, default))

        return LibrarySettings(
            api_base_url=_s("API_BASE_URL"),
            api_token=_s("API_TOKEN"),
            api_prefix=_s("API_PREFIX", "/api/v1"),
            request_timeout=_f("REQUEST_TIMEOUT", "30"),
            verify_tls=_b("VERIFY_TLS", "1"),
            debounce_delay=_f("DEBOUNCE_DELAY", "0.3"),
            page_size=_i("PAGE_SIZE", "20"),
            default_language=_s("DEFAULT_LANGUAGE", "ja"),
            fold_tag_case=_b("FOLD_TAG_CASE", "1"),
            user_id=_s("USER_ID"),
        )
