"""
file_writer.py — Writes generated Dart files without clobbering existing ones.
"""

import os


def available_path(directory: str, name: str, ext: str = ".dart") -> str:
    """user.dart, then user_1.dart, user_2.dart, ... until the name is free."""
    path = os.path.join(directory, f"{name}{ext}")
    i = 0
    while os.path.exists(path):
        i += 1
        path = os.path.join(directory, f"{name}_{i}{ext}")
    return path


def write_dart_file(content: str, name: str, directory: str) -> str:
    """Write ``content`` to ``<directory>/<name>.dart`` (suffixed on collision); returns the path."""
    os.makedirs(directory, exist_ok=True)
    path = available_path(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def read_dart_file(file_path: str) -> str:
    """Read a source file, stripping a UTF-8 BOM."""
    with open(file_path, "r", encoding="utf-8-sig") as f:
        return f.read()


def overwrite_file(file_path: str, content: str):
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(content)
