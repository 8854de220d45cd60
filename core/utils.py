import re

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def decode_upload(raw) -> str:
    """Decode an uploaded file body to text. Accepts bytes or str; a UTF-8 BOM is dropped."""
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig", errors="replace")
    return str(raw).lstrip("\ufeff")


def split_lines(text: str) -> list:
    """Split text into stripped, non-blank lines."""
    lines = [line.strip() for line in _LINE_SPLIT_RE.split(text or "")]
    return [line for line in lines if line]


def parse_id_csv(raw) -> list:
    """One identifier per line, e.g. the store / user CSV upload."""
    return split_lines(decode_upload(raw))
