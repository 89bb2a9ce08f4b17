"""Marketplace settings with their defaults."""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

RELEASE_ON_COMPLETE = "release-on-complete"
NO_AUTO_RELEASE = "no-auto-release"
COMPLETION_POLICIES = (RELEASE_ON_COMPLETE, NO_AUTO_RELEASE)


def completion_policy() -> str:
    policy = getattr(settings, "NEST_COMPLETION_POLICY", RELEASE_ON_COMPLETE)
    if policy not in COMPLETION_POLICIES:
        raise ImproperlyConfigured(
            f"NEST_COMPLETION_POLICY must be one of {', '.join(COMPLETION_POLICIES)}; got {policy!r}."
        )
    return policy


def listing_page_size() -> int:
    return getattr(settings, "NEST_LISTING_PAGE_SIZE", 12)


def listing_max_page_size() -> int:
    return getattr(settings, "NEST_LISTING_MAX_PAGE_SIZE", 50)
