import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

def slugify(name: str, max_length: int = 60) -> str:
    """ASCII, lowercase, hyphen separated. Falls back to "org" for names with no usable characters."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode()
    slug = _NON_ALNUM.sub("-", ascii_name.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "org"

def next_free_slug(base: str, taken: set[str], max_attempts: int) -> str | None:
    if base not in taken:
        return base
    for n in range(2, max_attempts + 2):
        candidate = f"{base}-{n}"
        if candidate not in taken:
            return candidate
    return None
