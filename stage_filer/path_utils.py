"""Helpers for vault-relative folder paths."""


def normalize_folder_path(path: str) -> str:
    """Strip leading and trailing slashes from a folder path."""
    return path.strip("/")


def is_subfolder_of(child: str, parent: str) -> bool:
    """
    Check if a path is inside a parent folder.

    Args:
        child: The potential child path
        parent: The potential parent path

    Returns:
        True if child is inside parent (or is parent itself)
    """
    normalized_child = normalize_folder_path(child)
    normalized_parent = normalize_folder_path(parent)

    if normalized_child == normalized_parent:
        return True

    return normalized_child.startswith(normalized_parent + "/")


def is_in_folders(file_path: str, folders: list[str]) -> bool:
    """Check if a file path is inside any of the given folders."""
    return any(is_subfolder_of(file_path, folder) for folder in folders)


def get_parent_folder(file_path: str) -> str:
    """Return the parent folder of a path ("" for the vault root)."""
    parent, _, _ = file_path.rpartition("/")
    return parent


def join_path(folder: str, name: str) -> str:
    """Join a folder path and a file name, treating "" as the vault root."""
    folder = normalize_folder_path(folder)
    return f"{folder}/{name}" if folder else name
