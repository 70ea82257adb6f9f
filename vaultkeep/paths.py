"""Vault path helpers.

Vault paths are slash-separated, relative to the vault root, case-sensitive
and never start with a slash. The root folder is the empty string.
"""

import posixpath


def normalize(path: str) -> str:
    """Collapse separators, `.` and `..` segments. `..` never escapes the root."""
    parts: list[str] = []
    for part in path.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    return "/".join(parts)


def join(*parts: str) -> str:
    return normalize("/".join(p for p in parts if p))


def parent(path: str) -> str:
    return posixpath.dirname(path)


def name(path: str) -> str:
    return posixpath.basename(path)


def extension(path: str) -> str:
    """Lowercased extension without the dot, or ''."""
    filename = name(path)
    dot = filename.rfind(".")
    return filename[dot + 1 :].lower() if dot > 0 else ""


def stem(path: str) -> str:
    filename = name(path)
    dot = filename.rfind(".")
    return filename[:dot] if dot > 0 else filename


def relative(path: str, start: str) -> str:
    """Express `path` relative to folder `start` using forward slashes."""
    return posixpath.relpath("/" + path, "/" + start)


def is_under(path: str, folder: str) -> bool:
    """True if `path` is inside `folder` (the root contains everything)."""
    return folder == "" or path.startswith(folder + "/")
