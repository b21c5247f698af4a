"""Input validation helpers for scan targets and user-entered text."""

from urllib.parse import urlparse

SUPPORTED_EXTENSIONS = frozenset({
    ".pdf", ".doc", ".docx", ".txt", ".rtf",
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp",
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".mkv",
    ".zip", ".rar", ".7z", ".tar", ".gz",
    ".exe", ".msi", ".dmg", ".pkg", ".deb", ".rpm",
})

# 32MB, the free-tier upload ceiling of the threat-intel service
MAX_FILE_SIZE_BYTES = 32 * 1024 * 1024


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_supported_file_type(file_name: str) -> bool:
    dot = file_name.rfind(".")
    if dot < 0:
        return False
    return file_name[dot:].lower() in SUPPORTED_EXTENSIONS


def is_valid_file_size(size_in_bytes: int) -> bool:
    return 0 <= size_in_bytes <= MAX_FILE_SIZE_BYTES


def sanitize_input(text: str) -> str:
    """Trim whitespace and drop angle brackets from user-entered text."""
    return text.strip().replace("<", "").replace(">", "")
