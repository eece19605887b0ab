"""Platform list parsing with alias support."""

from __future__ import annotations

from app.shared.seeder.config import Platform
from app.shared.seeder.errors import InvalidPlatformError

SEEDABLE_PLATFORMS: tuple[Platform, ...] = tuple(sorted(Platform, key=lambda p: p.value))

PLATFORM_ALIASES: dict[str, Platform] = {
    "google": Platform.GOOGLE_ADS,
    "googleads": Platform.GOOGLE_ADS,
    "adwords": Platform.GOOGLE_ADS,
    "fb": Platform.FACEBOOK,
    "meta": Platform.FACEBOOK,
    "facebook_ads": Platform.FACEBOOK,
    "tt": Platform.TIKTOK,
    "tik_tok": Platform.TIKTOK,
    "tiktok_ads": Platform.TIKTOK,
    "line": Platform.LINE_ADS,
    "lineads": Platform.LINE_ADS,
    "shopee_ads": Platform.SHOPEE,
    "lazada_ads": Platform.LAZADA,
}


def _normalize(token: str) -> str:
    return token.strip().lower().replace("-", "_").replace(" ", "_")


def resolve_platform(token: str) -> Platform | None:
    """Resolve a single platform token or alias.

    Args:
        token: Canonical value (``google_ads``) or alias (``google``, ``meta``).

    Returns:
        Matching platform, or None when the token is unknown.
    """
    key = _normalize(token)
    try:
        return Platform(key)
    except ValueError:
        return PLATFORM_ALIASES.get(key)


def parse_platforms(raw: str | None) -> list[Platform]:
    """Parse a comma-separated platform list.

    Blank input selects every seedable platform. Duplicates collapse and the
    result is sorted by platform value so processing order never depends on
    how the caller listed them.

    Args:
        raw: Comma-separated platform tokens.

    Returns:
        Sorted, de-duplicated platforms.

    Raises:
        InvalidPlatformError: If any token is unknown or nothing resolves.
    """
    if raw is None or not raw.strip():
        return list(SEEDABLE_PLATFORMS)

    tokens = [t for t in (part.strip() for part in raw.split(",")) if t]
    resolved: set[Platform] = set()
    invalid: list[str] = []
    for token in tokens:
        platform = resolve_platform(token)
        if platform is None:
            invalid.append(token)
        else:
            resolved.add(platform)

    allowed = ", ".join(p.value for p in SEEDABLE_PLATFORMS)
    if invalid:
        raise InvalidPlatformError(
            f"Invalid or non-seedable platform(s): {', '.join(invalid)}. "
            f"Allowed seedable platforms: {allowed}",
            details={"invalid": invalid},
        )
    if not resolved:
        raise InvalidPlatformError(
            f"No seedable platforms resolved from '{raw}'. Allowed seedable platforms: {allowed}"
        )

    return sorted(resolved, key=lambda p: p.value)
