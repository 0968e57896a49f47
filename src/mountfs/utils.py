"""Path utilities, listing order, content sniffing."""

from __future__ import annotations

import mimetypes
import posixpath

# =============================================================================
# Binary Detection
# =============================================================================

# Binary file extensions that are never sniffed as text
BINARY_EXTENSIONS = {
    ".zip", ".tar", ".gz", ".exe", ".dll", ".so", ".class", ".jar", ".war",
    ".7z", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
    ".odp", ".bin", ".dat", ".obj", ".o", ".a", ".lib", ".wasm", ".pyc", ".pyo",
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff",
    ".mp3", ".mp4", ".avi", ".mov", ".mkv", ".wav", ".flac",
    ".pdf", ".ttf", ".otf", ".woff", ".woff2", ".eot",
}

SNIFF_BYTES = 4096


# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize an abstract filesystem path.

    - Ensures leading /
    - Resolves .. and . references (never above the root)
    - Removes double slashes
    - Removes trailing slash (except for root)

    Examples:
        normalize_path("foo.txt") -> "/foo.txt"
        normalize_path("/foo//bar.txt") -> "/foo/bar.txt"
        normalize_path("/foo/../bar.txt") -> "/bar.txt"
        normalize_path("/../../etc") -> "/etc"
        normalize_path("") -> "/"
    """
    if not path:
        return "/"

    path = path.strip().replace("\\", "/")

    if not path.startswith("/"):
        path = "/" + path

    path = posixpath.normpath(path)

    # posixpath keeps a leading "//" as-is
    if path.startswith("//"):
        path = "/" + path.lstrip("/")

    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_dir, name).

    Examples:
        split_path("/foo/bar.txt") -> ("/foo", "bar.txt")
        split_path("/foo.txt") -> ("/", "foo.txt")
        split_path("/") -> ("/", "")
    """
    path = normalize_path(path)
    if path == "/":
        return "/", ""
    return posixpath.split(path)


def join_path(base: str, *parts: str) -> str:
    """Join *parts* under *base* and normalize the result."""
    return normalize_path(posixpath.join(base, *(p.lstrip("/") for p in parts)))


def is_within(path: str, ancestor: str) -> bool:
    """True when *path* lies strictly below *ancestor*.

    Examples:
        is_within("/a/b", "/a") -> True
        is_within("/ab", "/a") -> False
        is_within("/a", "/") -> True
        is_within("/", "/") -> False
    """
    path = normalize_path(path)
    ancestor = normalize_path(ancestor)
    if path == ancestor:
        return False
    if ancestor == "/":
        return True
    return path.startswith(ancestor + "/")


def compose_path(base_dir: str, local: str) -> str:
    """Prefix an adapter-local path with the backend's absolute base directory.

    ``base_dir`` is a native absolute directory (``/home/user``); ``local`` is
    a normalized adapter path (``/docs/a.txt``).
    """
    local = normalize_path(local)
    base_dir = base_dir.rstrip("/")
    if local == "/":
        return base_dir or "/"
    return base_dir + local


def sort_names(names: list[str]) -> list[str]:
    """Case-insensitive lexicographic order, pseudo-entries removed.

    Ties between names differing only in case fall back to the exact name so
    the order is stable.
    """
    return sorted(
        (n for n in names if n not in (".", "..")),
        key=lambda n: (n.lower(), n),
    )


# =============================================================================
# MIME helpers
# =============================================================================


def guess_mime_type(filename: str, chunk: bytes | None = None) -> str:
    """Guess the MIME type of a file from its name, then its leading bytes."""
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type:
        return mime_type
    if chunk is not None and is_binary_content(chunk, filename):
        return "application/octet-stream"
    if chunk is not None and not chunk:
        return "application/x-empty"
    return "text/plain"


def detect_encoding(chunk: bytes, filename: str = "") -> str:
    """Character encoding of *chunk*, named the way ``file --mime-encoding`` does."""
    if is_binary_content(chunk, filename):
        return "binary"
    try:
        chunk.decode("ascii")
        return "us-ascii"
    except UnicodeDecodeError:
        pass
    try:
        chunk.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError as e:
        # A multi-byte sequence cut off by the sniff window is still UTF-8
        if e.start >= len(chunk) - 3 and len(chunk) >= SNIFF_BYTES:
            return "utf-8"
    return "unknown-8bit"


def is_binary_content(chunk: bytes, filename: str = "") -> bool:
    """Check if content is binary based on extension and leading bytes.

    Uses two-stage detection:
    1. Check known binary extensions (fast)
    2. Analyze content for binary indicators (null bytes, non-printable chars)
    """
    ext = posixpath.splitext(filename)[1].lower()
    if ext in BINARY_EXTENSIONS:
        return True

    if not chunk:
        return False

    if b"\x00" in chunk:
        return True

    non_printable = sum(
        1 for byte in chunk
        if byte < 9 or (13 < byte < 32)
    )

    return (non_printable / len(chunk)) > 0.3


def mime_name(mime_type: str, encoding: str) -> str:
    """Full MIME string with charset, e.g. ``text/plain; charset=utf-8``."""
    return f"{mime_type}; charset={encoding}"
