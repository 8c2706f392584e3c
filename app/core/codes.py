import secrets

# no 0/O, 1/I/L: codes are read aloud and retyped by customers
ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

def random_code(prefix: str, groups: int = 1, group_len: int = 6) -> str:
    parts = ["".join(secrets.choice(ALPHABET) for _ in range(group_len)) for _ in range(groups)]
    return "-".join([prefix, *parts])

def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()

def mask_code(code: str | None) -> str:
    # enough to correlate log lines, not enough to reuse the code
    code = normalize_code(code)
    return f"{code[:4]}***" if code else "-"
