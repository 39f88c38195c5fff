from __future__ import annotations

MAX_NAME_LENGTH = 100

_ILLEGAL_CHARS = ("<", ">", ":", '"', "/", "\\", "|", "?", "*")


def sanitize_filename(name: str) -> str:
    """Replaces characters that are illegal in file names and caps the length."""
    for char in _ILLEGAL_CHARS:
        name = name.replace(char, "_")
    if len(name) > MAX_NAME_LENGTH:
        name = name[:MAX_NAME_LENGTH]
    return name.strip()


def clean_title(title: str) -> str:
    """Flattens a scraped title onto one line and makes it usable as a directory name."""
    title = title.strip().replace("\n", "").replace("\t", "")
    if not title:
        return ""
    return sanitize_filename(title)


def cut_site_suffix(title: str) -> str:
    """'Chapter 3 - Some Site' -> 'Chapter 3'."""
    idx = title.find("-")
    if idx > 0:
        return title[:idx].strip()
    return title
