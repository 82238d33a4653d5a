import re
import unicodedata

RULE_TITLE_PREFIX = "Bundle-"


def slugify(value: str) -> str:
    """Lowercase, ASCII-only, hyphen-separated handle for storefront URLs."""
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "bundle"


def unique_handle(base: str, taken: set[str]) -> str:
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def price_rule_title(bundle_title: str) -> str:
    return f"{RULE_TITLE_PREFIX}{bundle_title}"
