"""
The categorisation and naming rules shared by the catalog builder and the
bundle assembler.
"""

ALLOWED_EXTENSIONS = frozenset({"csv", "xlsx", "xls", "txt"})
HIDDEN_PREFIX = "."


def split_path(path: str) -> list[str]:
    """Splits a root-relative catalog path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


def category_of(path: str) -> str:
    """
    Returns the category of a catalog path, which is always its first segment.

    >>> category_of("/Equities/2024/AAPL.csv")
    'Equities'
    """
    segments = split_path(path)
    if not segments:
        raise ValueError(f"Cannot derive a category from empty path '{path}'.")
    return segments[0]


def is_hidden(name: str) -> bool:
    """Checks whether a file or directory name carries the hidden-file marker."""
    return name.startswith(HIDDEN_PREFIX)


def extension_of(name: str) -> str:
    """Returns the lower-cased extension of a file name, without the dot."""
    if "." not in name.lstrip(HIDDEN_PREFIX):
        return ""
    return name.rsplit(".", 1)[1].lower()


def has_allowed_extension(name: str) -> bool:
    """Checks a file name against the catalog's extension allow-list."""
    return extension_of(name) in ALLOWED_EXTENSIONS


def make_entry_path(category: str, *parts: str) -> str:
    """Joins a category and the rest of a relative path into a catalog path."""
    return "/" + "/".join([category, *parts])


def archive_name_for(path: str, name: str) -> str:
    """Derives the archive-internal member name '<category>/<name>' for an entry."""
    return f"{category_of(path)}/{name}"
